"""Shared fixtures: in-memory Mongo, a seeded tenant and service instances."""
import os

os.environ.setdefault("JWT_SECRET_KEY", "back-office-test-signing-key-0123456789abcdef")
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "")

from datetime import datetime
from typing import Dict, List, Tuple

import pytest
from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from app.database import ensure_indexes
from app.services.access_policy import Caller
from app.services.blob_store import BlobMetadata, BlobStore, IncomingFile
from app.services.notification_service import NotificationService
from app.services.notifier import Notifier
from app.services.pipeline_service import PipelineService
from app.services.settings_service import SettingsService
from app.services.user_directory import UserDirectory
from app.utils.errors import StorageError


class MemoryBlobStore(BlobStore):
    """Keeps blobs in a dict; can be switched to fail."""

    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.fail = False

    async def store(self, content: bytes, metadata: BlobMetadata, filename: str) -> str:
        if self.fail:
            raise StorageError(f"Could not store document {filename}")
        locator = f"mem://{metadata.company_id}/{len(self.blobs) + 1}_{filename}"
        self.blobs[locator] = content
        return locator


class RecordingNotifier(Notifier):
    """Collects (channel, recipient, message) tuples."""

    def __init__(self):
        self.sent: List[Tuple[str, str, str]] = []

    async def notify(self, channel: str, recipient: str, message: str) -> None:
        self.sent.append((channel, recipient, message))


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    database = client[f"test_{ObjectId()}"]
    await ensure_indexes(database)
    yield database


@pytest.fixture
def company_id():
    return ObjectId()


def _user(company_id, full_name, role, **extra):
    return {
        "_id": ObjectId(),
        "company_id": company_id,
        "email": f"{full_name.split()[0].lower()}@himalayanmanpower.com",
        "full_name": full_name,
        "role": role,
        "is_blocked": False,
        "created_at": datetime.utcnow(),
        **extra,
    }


@pytest.fixture
async def tenant(db, company_id):
    """One company with an admin and two employees."""
    await db.companies.insert_one({
        "_id": company_id,
        "name": "Himalayan Manpower",
        "settings": {"is_passport_private": False},
    })
    users = {
        "admin": _user(company_id, "Sita Sharma", "admin", telegram_chat_id="1001"),
        "employee_e": _user(company_id, "Ekta Rai", "employee"),
        "employee_f": _user(company_id, "Faris Khan", "employee"),
    }
    await db.users.insert_many(list(users.values()))
    return users


def _caller(user) -> Caller:
    return Caller(
        user_id=user["_id"],
        company_id=user["company_id"],
        role=user["role"],
        full_name=user["full_name"],
    )


@pytest.fixture
def admin(tenant) -> Caller:
    return _caller(tenant["admin"])


@pytest.fixture
def employee_e(tenant) -> Caller:
    return _caller(tenant["employee_e"])


@pytest.fixture
def employee_f(tenant) -> Caller:
    return _caller(tenant["employee_f"])


@pytest.fixture
def employer_id():
    return ObjectId()


@pytest.fixture
async def job_demand_id(db, company_id):
    demand_id = ObjectId()
    await db.job_demands.insert_one({
        "_id": demand_id,
        "company_id": company_id,
        "job_title": "Construction Helper",
        "workers": [],
    })
    return demand_id


@pytest.fixture
def worker_fields(employer_id):
    """Factory for valid worker registration fields."""
    def make(passport_number="P1234567", **overrides):
        fields = {
            "name": "Ram Bahadur Thapa",
            "dob": "1995-04-12",
            "passport_number": passport_number,
            "contact": "+977-9800000000",
            "address": "Pokhara-8, Kaski",
            "country": "Nepal",
            "employer_id": str(employer_id),
        }
        fields.update(overrides)
        return fields
    return make


@pytest.fixture
def blob_store():
    return MemoryBlobStore()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def notifications(db):
    return NotificationService(db)


@pytest.fixture
def pipeline(db, notifications, blob_store):
    return PipelineService(db, notifications, blob_store)


@pytest.fixture
def settings_service(db, notifications):
    return SettingsService(db, notifications)


@pytest.fixture
def fan_out_notifications(db, notifier):
    return NotificationService(db, UserDirectory(db), notifier)


@pytest.fixture
def upload():
    """Factory for incoming document uploads."""
    def make(filename="passport.pdf", content=b"%PDF-1.4 scan", category="Passport"):
        return IncomingFile(filename=filename, content=content, content_type="application/pdf", category=category)
    return make
