#!/usr/bin/env python3
"""Script to delete notifications older than the retention window.

The TTL index removes expired notifications on its own schedule; run this
from cron to purge deterministically.
"""

import asyncio
from app.database import Database
from app.config import settings
from app.services.notification_service import NotificationService

async def purge_expired_notifications():
    """Delete notifications past retention."""
    await Database.connect()

    service = NotificationService(Database.get_database())
    deleted = await service.purge_expired()
    print(f"✅ Deleted {deleted} notifications older than {settings.notification_retention_days} days")

    await Database.disconnect()

if __name__ == "__main__":
    asyncio.run(purge_expired_notifications())
