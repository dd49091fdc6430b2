"""Database connection and utilities."""
import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from app.config import settings


logger = logging.getLogger(__name__)


class Database:
    """MongoDB database connection manager."""

    client: Optional[AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    async def connect(cls):
        """Connect to MongoDB."""
        cls.client = AsyncIOMotorClient(settings.mongodb_url)
        cls.db = cls.client[settings.mongodb_db_name]
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    @classmethod
    async def disconnect(cls):
        """Disconnect from MongoDB."""
        if cls.client:
            cls.client.close()
            logger.info("Disconnected from MongoDB")

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """Get database instance."""
        if cls.db is None:
            raise RuntimeError("Database not connected. Call connect() first.")
        return cls.db


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Create the indexes the pipeline and notification invariants rely on."""
    # Passport number is the worker's business key across every tenant
    await db.workers.create_index("passport_number", unique=True)
    await db.workers.create_index([("company_id", ASCENDING), ("created_by", ASCENDING)])
    await db.workers.create_index("job_demand_id")

    await db.notifications.create_index(
        "created_at",
        expireAfterSeconds=settings.notification_retention_seconds,
    )
    await db.notifications.create_index([
        ("company_id", ASCENDING),
        ("is_read_by", ASCENDING),
        ("created_at", DESCENDING),
    ])


# Dependency for FastAPI routes
async def get_db() -> AsyncIOMotorDatabase:
    """Get database dependency for routes."""
    return Database.get_database()
