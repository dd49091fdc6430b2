"""Notification router."""
from fastapi import APIRouter, Depends
from typing import List

from app.schemas.notification import (
    CategorySummary,
    MarkAllReadResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from app.services.access_policy import Caller
from app.services.notification_service import NotificationService
from app.utils.dependencies import get_current_caller, get_notification_service


router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("/", response_model=List[NotificationResponse])
async def list_notifications(
    caller: Caller = Depends(get_current_caller),
    service: NotificationService = Depends(get_notification_service),
):
    """Latest notifications of the caller's company, with the caller's read state."""
    return await service.list_notifications(caller.company_id, caller.user_id)


@router.patch("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    caller: Caller = Depends(get_current_caller),
    service: NotificationService = Depends(get_notification_service),
):
    """Mark every company notification as read by the caller."""
    modified = await service.mark_all_read(caller.company_id, caller.user_id)
    return MarkAllReadResponse(modified_count=modified)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    caller: Caller = Depends(get_current_caller),
    service: NotificationService = Depends(get_notification_service),
):
    """Number of notifications the caller has not read."""
    return UnreadCountResponse(unread=await service.unread_count(caller.company_id, caller.user_id))


@router.get("/weekly-summary", response_model=List[CategorySummary])
async def weekly_summary(
    caller: Caller = Depends(get_current_caller),
    service: NotificationService = Depends(get_notification_service),
):
    """Notification activity of the last 7 days for the dashboard chart."""
    return await service.weekly_summary(caller.company_id)
