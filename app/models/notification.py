"""Notification database models."""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime
from enum import Enum
from bson import ObjectId

from app.models.user import PyObjectId


class NotificationCategory(str, Enum):
    """Internal notification categories."""
    GENERAL = "general"
    EMPLOYER = "employer"
    WORKER = "worker"
    JOB_DEMAND = "job-demand"
    SUB_AGENT = "sub-agent"
    SYSTEM = "system"


# Caller-facing labels, matching the feed's filter buttons
CATEGORY_LABELS = {
    NotificationCategory.GENERAL: "System",
    NotificationCategory.EMPLOYER: "Employer",
    NotificationCategory.WORKER: "Worker",
    NotificationCategory.JOB_DEMAND: "Demand",
    NotificationCategory.SUB_AGENT: "Agent",
    NotificationCategory.SYSTEM: "System",
}

# User notification_settings flag consulted for out-of-band delivery
CATEGORY_PREFERENCE_KEYS = {
    NotificationCategory.EMPLOYER: "new_employer",
    NotificationCategory.WORKER: "new_worker",
    NotificationCategory.JOB_DEMAND: "new_job",
    NotificationCategory.SUB_AGENT: "new_sub_agent",
}


def category_label(category: str) -> str:
    try:
        return CATEGORY_LABELS[NotificationCategory(category)]
    except ValueError:
        return "System"


class NotificationModel(BaseModel):
    """Tenant-scoped notification. Immutable except for is_read_by growth."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_default=True,
        json_encoders={ObjectId: str}
    )

    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    company_id: PyObjectId
    created_by: PyObjectId
    category: NotificationCategory = NotificationCategory.SYSTEM
    content: str
    is_read_by: List[PyObjectId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
