"""User and company database models."""
from pydantic import BaseModel, EmailStr, Field, ConfigDict
from typing import Optional
from datetime import datetime
from enum import Enum
from bson import ObjectId


class PyObjectId(ObjectId):
    """Custom ObjectId type for Pydantic v2."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type, handler):
        from pydantic_core import core_schema
        return core_schema.union_schema([
            core_schema.is_instance_schema(ObjectId),
            core_schema.chain_schema([
                core_schema.str_schema(),
                core_schema.no_info_plain_validator_function(cls.validate),
            ])
        ])

    @classmethod
    def validate(cls, v):
        if isinstance(v, ObjectId):
            return v
        if isinstance(v, str) and ObjectId.is_valid(v):
            return ObjectId(v)
        raise ValueError("Invalid ObjectId")


class UserRole(str, Enum):
    """Roles within a tenant."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EMPLOYEE = "employee"


class NotificationSettings(BaseModel):
    """Per-user out-of-band notification preferences."""
    enabled: bool = True
    new_job: bool = True
    new_employer: bool = True
    new_worker: bool = True
    new_sub_agent: bool = True


class UserModel(BaseModel):
    """User database model."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    company_id: PyObjectId
    email: EmailStr
    full_name: str
    contact_number: Optional[str] = None
    role: UserRole = UserRole.EMPLOYEE
    telegram_chat_id: Optional[str] = None
    notification_settings: NotificationSettings = Field(default_factory=NotificationSettings)
    is_blocked: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


class CompanySettings(BaseModel):
    """Tenant-wide privacy settings."""
    is_passport_private: bool = False


class CompanyModel(BaseModel):
    """Company (tenant) database model."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    name: str
    admin_id: Optional[PyObjectId] = None
    settings: CompanySettings = Field(default_factory=CompanySettings)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
