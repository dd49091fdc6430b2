"""Application configuration."""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # MongoDB
    mongodb_url: str = "mongodb://localhost:27017"
    mongodb_db_name: str = "manpower_back_office"

    # JWT (verification only, tokens are issued by the auth service)
    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    # Application
    app_name: str = "Manpower Back Office"
    app_version: str = "1.0.0"
    debug: bool = True
    log_level: str = "INFO"

    # CORS
    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    # File Upload
    upload_dir: str = "./uploads"
    max_upload_size_mb: int = 10

    # Out-of-band delivery
    telegram_bot_token: str = ""

    # Notifications
    notification_retention_days: int = 30
    notification_list_limit: int = 50

    # Passport masking
    passport_visible_chars: int = 3
    passport_mask_char: str = "x"

    # Pipeline
    stage_update_max_retries: int = 5
    strict_stage_ids: bool = False

    @property
    def allowed_origins_list(self) -> List[str]:
        """Get allowed origins as a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",")]

    @property
    def notification_retention_seconds(self) -> int:
        """Retention window used by the TTL index and the purge job."""
        return self.notification_retention_days * 24 * 60 * 60

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
