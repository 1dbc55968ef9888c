# API Router for the Notification Inbox
import logging

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from lc_application_service.app.api.responses import success
from lc_application_service.app.config import settings
from lc_application_service.app.dependencies.auth import get_current_user
from lc_application_service.app.models import UserDB
from lc_application_service.app.service.exceptions import NotificationNotFoundError
from lc_application_service.infrastructure.database import notification_store
from lc_application_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/notifications", summary="List the caller's notifications", tags=["Notifications"])
async def list_notifications_api(
    unread_only: bool = Query(False, alias="unreadOnly"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    notifications, total, unread = await notification_store.list_notifications_for_user(
        db, current_user.id, unread_only=unread_only, skip=(page - 1) * limit, limit=limit
    )
    return success(
        [notification.to_api() for notification in notifications],
        count=len(notifications),
        total=total,
        unreadCount=unread,
        currentPage=page,
    )


# Registered before /{notification_id}/read so "read-all" is never taken for an id.
@router.put("/notifications/read-all", summary="Mark every notification read", tags=["Notifications"])
async def mark_all_notifications_read_api(
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    modified = await notification_store.mark_all_notifications_read(db, current_user.id)
    return success({"modified": modified}, message="All notifications marked as read")


@router.put("/notifications/{notification_id}/read", summary="Mark one notification read", tags=["Notifications"])
async def mark_notification_read_api(
    notification_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    notification = await notification_store.mark_notification_read(db, current_user.id, notification_id)
    if not notification:
        raise NotificationNotFoundError(notification_id)
    return success(notification.to_api())
