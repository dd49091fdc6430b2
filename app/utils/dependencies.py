"""Authentication and service dependencies."""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from motor.motor_asyncio import AsyncIOMotorDatabase
from bson import ObjectId

from app.database import get_db
from app.utils.security import decode_token
from app.models.user import UserModel
from app.services.access_policy import Caller
from app.services.blob_store import BlobStore, get_blob_store
from app.services.notification_service import NotificationService
from app.services.notifier import Notifier, get_notifier
from app.services.pipeline_service import PipelineService
from app.services.report_service import ReportService
from app.services.settings_service import SettingsService
from app.services.user_directory import UserDirectory


security = HTTPBearer()


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> UserModel:
    """Get current authenticated user from JWT token."""
    token = credentials.credentials
    payload = decode_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("userId") or payload.get("sub")
    if user_id is None or not ObjectId.is_valid(user_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )

    # Fetch user from database
    user_data = await db.users.find_one({"_id": ObjectId(user_id)})
    if user_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return UserModel(**user_data)


async def get_current_caller(
    current_user: UserModel = Depends(get_current_user)
) -> Caller:
    """Get the current user as an access-policy caller (blocked users refused)."""
    if current_user.is_blocked:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is blocked"
        )
    return Caller.from_user(current_user)


def get_notification_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
) -> NotificationService:
    return NotificationService(db, UserDirectory(db), notifier)


def get_pipeline_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
    blob_store: BlobStore = Depends(get_blob_store),
) -> PipelineService:
    return PipelineService(db, notifications, blob_store)


def get_settings_service(
    db: AsyncIOMotorDatabase = Depends(get_db),
    notifications: NotificationService = Depends(get_notification_service),
) -> SettingsService:
    return SettingsService(db, notifications)


def get_report_service(db: AsyncIOMotorDatabase = Depends(get_db)) -> ReportService:
    return ReportService(db)
