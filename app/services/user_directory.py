"""Lookup of users who opted in to out-of-band notifications."""
from typing import List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.models.user import UserModel


class UserDirectory:
    """Reads the tenant's user roster and their notification preferences."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    async def list_interested_users(self, company_id: ObjectId, preference_key: str) -> List[UserModel]:
        """Active users of a tenant with both the master switch and `preference_key` enabled.

        Users created before preferences existed have no settings document and
        count as opted in.
        """
        query = {
            "company_id": company_id,
            "is_blocked": {"$ne": True},
            "notification_settings.enabled": {"$ne": False},
            f"notification_settings.{preference_key}": {"$ne": False},
        }
        users = await self.db.users.find(query).to_list(length=None)
        return [UserModel(**u) for u in users]
