"""Settings router."""
from fastapi import APIRouter, Depends

from app.models.user import NotificationSettings
from app.schemas.settings import (
    CompanySettingsResponse,
    NotificationPreferencesRequest,
    PassportPrivacyRequest,
)
from app.services.access_policy import Caller
from app.services.settings_service import SettingsService
from app.utils.dependencies import get_current_caller, get_settings_service


router = APIRouter(prefix="/api/v1/settings", tags=["Settings"])


@router.get("/company", response_model=CompanySettingsResponse)
async def get_company_settings(
    caller: Caller = Depends(get_current_caller),
    service: SettingsService = Depends(get_settings_service),
):
    """Get the company's privacy settings."""
    company_settings = await service.get_company_settings(caller.company_id)
    return CompanySettingsResponse(**company_settings.model_dump())


@router.patch("/company/passport-privacy", response_model=CompanySettingsResponse)
async def update_passport_privacy(
    request: PassportPrivacyRequest,
    caller: Caller = Depends(get_current_caller),
    service: SettingsService = Depends(get_settings_service),
):
    """Set or toggle passport privacy (administrators only)."""
    if request.is_passport_private is None:
        company_settings = await service.toggle_passport_privacy(caller)
    else:
        company_settings = await service.set_passport_privacy(caller, request.is_passport_private)
    return CompanySettingsResponse(**company_settings.model_dump())


@router.patch("/notifications", response_model=NotificationSettings)
async def update_notification_preferences(
    request: NotificationPreferencesRequest,
    caller: Caller = Depends(get_current_caller),
    service: SettingsService = Depends(get_settings_service),
):
    """Update the caller's notification preferences."""
    return await service.update_notification_preferences(
        caller, request.model_dump(exclude_none=True)
    )
