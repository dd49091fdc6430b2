"""Company privacy settings and per-user notification preferences."""
import logging
from datetime import datetime
from typing import Dict

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.notification import NotificationCategory
from app.models.user import CompanySettings, NotificationSettings
from app.services.access_policy import Caller, can_manage_company_settings
from app.services.notification_service import NotificationService
from app.utils.errors import ForbiddenError, NotFoundError, storage_guard


logger = logging.getLogger(__name__)


class SettingsService:
    """Reads and changes tenant settings."""

    def __init__(self, db: AsyncIOMotorDatabase, notifications: NotificationService):
        self.db = db
        self.notifications = notifications

    async def get_company_settings(self, company_id: ObjectId) -> CompanySettings:
        """Settings as of now; callers read this once per request."""
        with storage_guard("load company settings"):
            company = await self.db.companies.find_one({"_id": company_id}, {"settings": 1})
        if not company:
            raise NotFoundError("Company not found")
        return CompanySettings(**(company.get("settings") or {}))

    async def set_passport_privacy(self, caller: Caller, is_private: bool) -> CompanySettings:
        if not can_manage_company_settings(caller):
            raise ForbiddenError("Only administrators can change company settings")

        with storage_guard("update company settings"):
            result = await self.db.companies.update_one(
                {"_id": caller.company_id},
                {"$set": {"settings.is_passport_private": is_private, "updated_at": datetime.utcnow()}},
            )
        if result.matched_count == 0:
            raise NotFoundError("Company not found")

        logger.info("Company %s passport privacy set to %s by %s", caller.company_id, is_private, caller.user_id)
        state = "private" if is_private else "visible to all staff"
        await self.notifications.emit(
            caller.company_id,
            caller.user_id,
            NotificationCategory.SYSTEM.value,
            f"{caller.display_name} made passport numbers {state}",
        )
        return await self.get_company_settings(caller.company_id)

    async def toggle_passport_privacy(self, caller: Caller) -> CompanySettings:
        if not can_manage_company_settings(caller):
            raise ForbiddenError("Only administrators can change company settings")
        current = await self.get_company_settings(caller.company_id)
        return await self.set_passport_privacy(caller, not current.is_passport_private)

    async def update_notification_preferences(self, caller: Caller, preferences: Dict[str, bool]) -> NotificationSettings:
        """Merge the given flags into the caller's notification settings."""
        with storage_guard("load user"):
            user = await self.db.users.find_one({"_id": caller.user_id}, {"notification_settings": 1})
        if not user:
            raise NotFoundError("User not found")

        merged = NotificationSettings(**{**(user.get("notification_settings") or {}), **preferences})
        with storage_guard("update notification preferences"):
            await self.db.users.update_one(
                {"_id": caller.user_id},
                {"$set": {"notification_settings": merged.model_dump()}},
            )
        return merged
