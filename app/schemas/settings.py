"""Settings schemas."""
from pydantic import BaseModel, ConfigDict
from typing import Optional


class CompanySettingsResponse(BaseModel):
    """Tenant privacy settings."""
    is_passport_private: bool


class PassportPrivacyRequest(BaseModel):
    """Set passport privacy explicitly; omit to toggle."""
    is_passport_private: Optional[bool] = None


class NotificationPreferencesRequest(BaseModel):
    """Partial update of a user's notification flags."""

    model_config = ConfigDict(extra="forbid")

    enabled: Optional[bool] = None
    new_job: Optional[bool] = None
    new_employer: Optional[bool] = None
    new_worker: Optional[bool] = None
    new_sub_agent: Optional[bool] = None
