"""Notification schemas."""
from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime


class NotificationResponse(BaseModel):
    """Response schema for a notification, as seen by one user."""
    id: str
    company_id: str
    created_by: str
    created_by_name: Optional[str] = None
    category: str
    label: str
    content: str
    is_read: bool
    created_at: datetime


class MarkAllReadResponse(BaseModel):
    """Result of marking the feed as read."""
    success: bool = True
    modified_count: int


class UnreadCountResponse(BaseModel):
    unread: int


class DailyCount(BaseModel):
    day: int        # 1 = Sunday ... 7 = Saturday
    count: int


class CategorySummary(BaseModel):
    """Notification counts for one category over the last week."""
    category: str
    label: str
    daily_counts: List[DailyCount]
    total: int
