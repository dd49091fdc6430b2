"""Tests for the notification feed, read tracking and delivery fan-out."""
from datetime import date, datetime, time, timedelta

import pytest
from bson import ObjectId

from app.services.notification_service import NotificationService, mongo_day_of_week
from app.services.user_directory import UserDirectory


# Noon of the most recent Wednesday
NOW = datetime.combine(date.today() - timedelta(days=(date.today().weekday() - 2) % 7), time(12))


async def _seed(db, company_id, actor_id, category="worker", content="event", created_at=None, read_by=()):
    result = await db.notifications.insert_one({
        "company_id": company_id,
        "created_by": actor_id,
        "category": category,
        "content": content,
        "is_read_by": list(read_by),
        "created_at": created_at or datetime.utcnow(),
    })
    return result.inserted_id


class TestEmit:

    async def test_persists_with_empty_read_set(self, notifications, admin, db):
        notification = await notifications.emit(admin.company_id, admin.user_id, "employer", "  New employer added  ")

        stored = await db.notifications.find_one({"_id": notification.id})
        assert stored["content"] == "New employer added"
        assert stored["category"] == "employer"
        assert stored["is_read_by"] == []

    @pytest.mark.parametrize("field", ["company_id", "actor_id", "content"])
    async def test_missing_field_writes_nothing(self, notifications, admin, db, field):
        args = {"company_id": admin.company_id, "actor_id": admin.user_id, "category": "worker", "content": "x"}
        args[field] = None if field != "content" else "   "

        assert await notifications.emit(**args) is None
        assert await db.notifications.count_documents({}) == 0

    async def test_unknown_category_is_filed_as_system(self, notifications, admin):
        notification = await notifications.emit(admin.company_id, admin.user_id, "payroll", "Salary run")
        assert notification.category == "system"


class TestFeed:

    async def test_newest_first_with_labels_and_names(self, notifications, db, admin, employee_e):
        now = datetime.utcnow()
        await _seed(db, admin.company_id, admin.user_id, "job-demand", "older", now - timedelta(hours=2))
        await _seed(db, admin.company_id, employee_e.user_id, "general", "newer", now - timedelta(hours=1))

        newest, oldest = await notifications.list_notifications(admin.company_id, admin.user_id)
        assert (newest.content, newest.label, newest.created_by_name) == ("newer", "System", "Ekta Rai")
        assert (oldest.content, oldest.label, oldest.created_by_name) == ("older", "Demand", "Sita Sharma")

    async def test_feed_is_capped(self, notifications, db, admin):
        base = datetime.utcnow() - timedelta(days=1)
        for minute in range(55):
            await _seed(db, admin.company_id, admin.user_id, content=f"event {minute}", created_at=base + timedelta(minutes=minute))

        feed = await notifications.list_notifications(admin.company_id, admin.user_id)

        assert len(feed) == 50
        assert feed[0].content == "event 54"
        assert feed[-1].content == "event 5"

    async def test_feed_is_tenant_scoped(self, notifications, db, admin):
        await _seed(db, ObjectId(), ObjectId(), content="someone else's event")
        assert await notifications.list_notifications(admin.company_id, admin.user_id) == []

    async def test_expired_entries_are_hidden(self, notifications, db, admin):
        await _seed(db, admin.company_id, admin.user_id, content="stale", created_at=datetime.utcnow() - timedelta(days=31))
        await _seed(db, admin.company_id, admin.user_id, content="fresh")

        feed = await notifications.list_notifications(admin.company_id, admin.user_id)
        assert [n.content for n in feed] == ["fresh"]


class TestReadState:

    async def test_mark_all_read_is_per_caller_and_idempotent(self, notifications, db, admin, employee_e):
        for _ in range(3):
            await _seed(db, admin.company_id, admin.user_id)

        assert await notifications.mark_all_read(admin.company_id, employee_e.user_id) == 3
        assert await notifications.mark_all_read(admin.company_id, employee_e.user_id) == 0

        mine = await notifications.list_notifications(admin.company_id, employee_e.user_id)
        theirs = await notifications.list_notifications(admin.company_id, admin.user_id)
        assert all(n.is_read for n in mine)
        assert not any(n.is_read for n in theirs)

        stored = await db.notifications.find_one({})
        assert stored["is_read_by"] == [employee_e.user_id]

    async def test_mark_all_read_leaves_other_tenants_alone(self, notifications, db, admin):
        other_id = await _seed(db, ObjectId(), ObjectId())

        await notifications.mark_all_read(admin.company_id, admin.user_id)

        assert (await db.notifications.find_one({"_id": other_id}))["is_read_by"] == []

    async def test_unread_count(self, notifications, db, admin, employee_e):
        await _seed(db, admin.company_id, admin.user_id, read_by=[employee_e.user_id])
        await _seed(db, admin.company_id, admin.user_id)

        assert await notifications.unread_count(admin.company_id, employee_e.user_id) == 1
        assert await notifications.unread_count(admin.company_id, admin.user_id) == 2


class TestWeeklySummary:

    def test_day_numbering_matches_mongo(self):
        assert mongo_day_of_week(datetime(2026, 10, 11)) == 1  # Sunday
        assert mongo_day_of_week(NOW) == 4
        assert mongo_day_of_week(datetime(2026, 10, 17)) == 7  # Saturday

    async def test_groups_by_category_and_day(self, notifications, db, admin):
        company, actor = admin.company_id, admin.user_id
        await _seed(db, company, actor, "worker", created_at=NOW - timedelta(hours=1))
        await _seed(db, company, actor, "worker", created_at=NOW - timedelta(hours=2))
        await _seed(db, company, actor, "worker", created_at=NOW - timedelta(days=3, hours=2, minutes=30))
        await _seed(db, company, actor, "employer", created_at=NOW - timedelta(days=2) + timedelta(hours=3))
        await _seed(db, company, actor, "worker", created_at=NOW - timedelta(days=8))
        await _seed(db, ObjectId(), actor, "worker", created_at=NOW - timedelta(hours=1))

        summary = await notifications.weekly_summary(company, now=NOW)

        assert [s.category for s in summary] == ["employer", "worker"]
        employer, worker = summary
        assert employer.label == "Employer"
        assert [(d.day, d.count) for d in employer.daily_counts] == [(2, 1)]
        assert [(d.day, d.count) for d in worker.daily_counts] == [(1, 1), (4, 2)]
        assert worker.total == 3

    async def test_empty_week(self, notifications, admin):
        assert await notifications.weekly_summary(admin.company_id, now=NOW) == []


async def test_purge_removes_only_expired(notifications, db, admin):
    await _seed(db, admin.company_id, admin.user_id, content="old", created_at=NOW - timedelta(days=45))
    await _seed(db, admin.company_id, admin.user_id, content="recent", created_at=NOW - timedelta(days=2))

    await notifications.purge_expired(now=NOW)

    remaining = await db.notifications.find({}).to_list(length=None)
    assert [d["content"] for d in remaining] == ["recent"]


class TestFanOut:

    async def test_interested_users_except_actor_are_notified(self, fan_out_notifications, notifier, tenant, admin):
        await fan_out_notifications.emit(admin.company_id, admin.user_id, "worker", "Sita Sharma added a new worker: Hari")
        await fan_out_notifications.wait_for_deliveries()

        recipients = sorted(recipient for _, recipient, _ in notifier.sent)
        assert recipients == ["ekta@himalayanmanpower.com", "faris@himalayanmanpower.com"]
        assert {channel for channel, _, _ in notifier.sent} == {"email"}

    async def test_preferences_are_honoured(self, fan_out_notifications, notifier, db, admin, employee_e, employee_f):
        await db.users.update_one(
            {"_id": employee_f.user_id}, {"$set": {"notification_settings": {"enabled": True, "new_worker": False}}}
        )
        await db.users.update_one({"_id": admin.user_id}, {"$set": {"is_blocked": True}})

        await fan_out_notifications.emit(admin.company_id, employee_e.user_id, "worker", "Ekta Rai added a new worker: Hari")
        await fan_out_notifications.wait_for_deliveries()

        assert notifier.sent == []

    async def test_telegram_users_get_telegram(self, fan_out_notifications, notifier, admin, employee_e):
        await fan_out_notifications.emit(admin.company_id, employee_e.user_id, "employer", "New employer")
        await fan_out_notifications.wait_for_deliveries()

        assert ("telegram", "1001", "New employer") in notifier.sent

    async def test_system_events_stay_in_app(self, fan_out_notifications, notifier, admin):
        await fan_out_notifications.emit(admin.company_id, admin.user_id, "system", "Settings changed")
        await fan_out_notifications.wait_for_deliveries()

        assert notifier.sent == []

    async def test_delivery_failure_is_contained(self, db, admin, employee_e, tenant):
        class FailingNotifier:
            async def notify(self, channel, recipient, message):
                raise ConnectionError("smtp down")

        service = NotificationService(db, UserDirectory(db), FailingNotifier())
        notification = await service.emit(admin.company_id, employee_e.user_id, "worker", "New worker")
        await service.wait_for_deliveries()

        assert notification is not None
        assert await db.notifications.count_documents({}) == 1
