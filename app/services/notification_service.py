"""Notification engine: tenant-scoped event feed with per-user read state."""
import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.config import settings
from app.models.notification import (
    CATEGORY_PREFERENCE_KEYS,
    NotificationCategory,
    NotificationModel,
    category_label,
)
from app.schemas.notification import (
    CategorySummary,
    DailyCount,
    NotificationResponse,
)
from app.services.notifier import Notifier, channel_for
from app.services.user_directory import UserDirectory
from app.utils.errors import storage_guard


logger = logging.getLogger(__name__)

# Strong references to in-flight deliveries; the event loop only keeps weak ones
_pending_deliveries: Set[asyncio.Task] = set()


def mongo_day_of_week(moment: datetime) -> int:
    """Day of week numbered like Mongo's $dayOfWeek (1 = Sunday, 7 = Saturday)."""
    return moment.isoweekday() % 7 + 1


class NotificationService:
    """Persists notifications for pipeline and domain events and tracks who read them."""

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        user_directory: Optional[UserDirectory] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.user_directory = user_directory
        self.notifier = notifier

    def _retention_cutoff(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.utcnow()
        return now - timedelta(days=settings.notification_retention_days)

    async def emit(
        self,
        company_id: Optional[ObjectId],
        actor_id: Optional[ObjectId],
        category: str,
        content: Optional[str],
    ) -> Optional[NotificationModel]:
        """Persist a notification. Never raises; a failed emission is logged and dropped."""
        if not company_id or not actor_id or not (content or "").strip():
            logger.warning(
                "Missing required fields for notification: company_id=%s actor_id=%s content=%r",
                company_id, actor_id, content,
            )
            return None

        try:
            try:
                category = NotificationCategory(category)
            except ValueError:
                logger.warning("Unknown notification category %r, filing as system", category)
                category = NotificationCategory.SYSTEM

            notification = NotificationModel(
                company_id=company_id,
                created_by=actor_id,
                category=category,
                content=content.strip(),
            )
            result = await self.db.notifications.insert_one(
                notification.model_dump(by_alias=True, exclude={"id"})
            )
            notification.id = result.inserted_id
        except Exception:
            logger.exception("Notification creation failed for company %s", company_id)
            return None

        self._dispatch(notification)
        return notification

    def _dispatch(self, notification: NotificationModel) -> None:
        """Schedule out-of-band delivery without blocking the caller."""
        preference_key = CATEGORY_PREFERENCE_KEYS.get(NotificationCategory(notification.category))
        if preference_key is None or self.user_directory is None or self.notifier is None:
            return
        task = asyncio.create_task(self._deliver(notification, preference_key))
        _pending_deliveries.add(task)
        task.add_done_callback(_pending_deliveries.discard)

    async def _deliver(self, notification: NotificationModel, preference_key: str) -> None:
        try:
            users = await self.user_directory.list_interested_users(
                notification.company_id, preference_key
            )
        except Exception:
            logger.exception("Could not load recipients for notification %s", notification.id)
            return

        for user in users:
            if user.id == notification.created_by:
                continue
            channel, recipient = channel_for(user)
            try:
                await self.notifier.notify(channel, recipient, notification.content)
            except Exception:
                logger.exception("Delivery of notification %s to %s failed", notification.id, recipient)

    async def wait_for_deliveries(self) -> None:
        """Await background deliveries still in flight (shutdown and tests)."""
        if _pending_deliveries:
            await asyncio.gather(*list(_pending_deliveries), return_exceptions=True)

    async def list_notifications(self, company_id: ObjectId, caller_id: ObjectId) -> List[NotificationResponse]:
        """Most recent notifications of the tenant, newest first, annotated for the caller."""
        limit = settings.notification_list_limit
        with storage_guard("list notifications"):
            docs = await self.db.notifications.find({
                "company_id": company_id,
                "created_at": {"$gte": self._retention_cutoff()},
            }).sort([("created_at", -1), ("_id", -1)]).limit(limit).to_list(length=limit)

            actor_ids = list({d["created_by"] for d in docs})
            names: Dict[ObjectId, str] = {}
            if actor_ids:
                users = await self.db.users.find(
                    {"_id": {"$in": actor_ids}}, {"full_name": 1}
                ).to_list(length=None)
                names = {u["_id"]: u.get("full_name") for u in users}

        return [
            NotificationResponse(
                id=str(d["_id"]),
                company_id=str(d["company_id"]),
                created_by=str(d["created_by"]),
                created_by_name=names.get(d["created_by"]),
                category=d.get("category", NotificationCategory.SYSTEM.value),
                label=category_label(d.get("category", "")),
                content=d["content"],
                is_read=caller_id in (d.get("is_read_by") or []),
                created_at=d["created_at"],
            )
            for d in docs
        ]

    async def mark_all_read(self, company_id: ObjectId, caller_id: ObjectId) -> int:
        """Add the caller to is_read_by of every tenant notification. Idempotent."""
        with storage_guard("mark notifications as read"):
            result = await self.db.notifications.update_many(
                {"company_id": company_id, "is_read_by": {"$ne": caller_id}},
                {"$addToSet": {"is_read_by": caller_id}},
            )
        if result.modified_count:
            logger.info("User %s marked %d notifications as read", caller_id, result.modified_count)
        return result.modified_count

    async def unread_count(self, company_id: ObjectId, caller_id: ObjectId) -> int:
        with storage_guard("count unread notifications"):
            return await self.db.notifications.count_documents({
                "company_id": company_id,
                "created_at": {"$gte": self._retention_cutoff()},
                "is_read_by": {"$ne": caller_id},
            })

    async def weekly_summary(
        self,
        company_id: ObjectId,
        now: Optional[datetime] = None,
    ) -> List[CategorySummary]:
        """Counts of the last 7 days grouped by category and day of week.

        Each notification lands in exactly one bucket, chosen by created_at.
        """
        now = now or datetime.utcnow()
        with storage_guard("summarise notifications"):
            docs = await self.db.notifications.find(
                {"company_id": company_id, "created_at": {"$gte": now - timedelta(days=7)}},
                {"category": 1, "created_at": 1},
            ).to_list(length=None)

        buckets: Dict[str, Dict[int, int]] = defaultdict(lambda: defaultdict(int))
        for d in docs:
            buckets[d.get("category", NotificationCategory.SYSTEM.value)][mongo_day_of_week(d["created_at"])] += 1

        return [
            CategorySummary(
                category=category,
                label=category_label(category),
                daily_counts=[DailyCount(day=day, count=count) for day, count in sorted(days.items())],
                total=sum(days.values()),
            )
            for category, days in sorted(buckets.items())
        ]

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete notifications past the retention window."""
        with storage_guard("purge notifications"):
            result = await self.db.notifications.delete_many(
                {"created_at": {"$lt": self._retention_cutoff(now)}}
            )
        logger.info("Purged %d expired notifications", result.deleted_count)
        return result.deleted_count
