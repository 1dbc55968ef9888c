# Operations for the Notifications Collection and the Mongo-backed notification sink
import logging
from typing import List, Optional, Tuple
import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from lc_application_service.app.config import settings
from lc_application_service.app.models import NotificationDB, NotificationTemplate
from lc_application_service.app.observability import notifications_delivered_counter, notifications_failed_counter
from lc_application_service.app.service.exceptions import NotificationDeliveryError
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink, NotificationOutcome
from lc_application_service.infrastructure.database import user_store

logger = logging.getLogger(__name__)
NOTIFICATIONS_COLLECTION = "notifications"

async def add_notification(db: AsyncIOMotorDatabase, notification: NotificationDB) -> NotificationDB:
    await db[NOTIFICATIONS_COLLECTION].insert_one(notification.model_dump())
    logger.info(f"Notification {notification.id} ({notification.type}) created for user {notification.user}")
    return notification

async def list_notifications_for_user(
    db: AsyncIOMotorDatabase,
    user_id: str,
    unread_only: bool = False,
    skip: int = 0,
    limit: int = 20
) -> Tuple[List[NotificationDB], int, int]:
    """Returns (page, total matching, total unread) for the user's inbox, newest first."""
    query_filter = {"user": user_id}
    if unread_only:
        query_filter["is_read"] = False

    cursor = db[NOTIFICATIONS_COLLECTION].find(query_filter).sort([("created_at", DESCENDING)]).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    total = await db[NOTIFICATIONS_COLLECTION].count_documents(query_filter)
    unread = await db[NOTIFICATIONS_COLLECTION].count_documents({"user": user_id, "is_read": False})
    return [NotificationDB(**doc) for doc in docs], total, unread

async def mark_notification_read(db: AsyncIOMotorDatabase, user_id: str, notification_id: str) -> Optional[NotificationDB]:
    now = datetime.datetime.now(datetime.UTC)
    result = await db[NOTIFICATIONS_COLLECTION].update_one(
        {"id": notification_id, "user": user_id},
        {"$set": {"is_read": True, "read_at": now, "updated_at": now}}
    )
    if result.matched_count == 0:
        logger.warning(f"Notification {notification_id} not found for user {user_id}.")
        return None
    doc = await db[NOTIFICATIONS_COLLECTION].find_one({"id": notification_id})
    return NotificationDB(**doc) if doc else None

async def mark_all_notifications_read(db: AsyncIOMotorDatabase, user_id: str) -> int:
    now = datetime.datetime.now(datetime.UTC)
    result = await db[NOTIFICATIONS_COLLECTION].update_many(
        {"user": user_id, "is_read": False},
        {"$set": {"is_read": True, "read_at": now, "updated_at": now}}
    )
    logger.info(f"Marked {result.modified_count} notifications read for user {user_id}.")
    return result.modified_count


class MongoNotificationSink(AbstractNotificationSink):
    def __init__(self, db: AsyncIOMotorDatabase, max_attempts: int = None):
        self.db = db
        self.max_attempts = max(1, max_attempts or settings.NOTIFICATION_MAX_ATTEMPTS)

    async def notify_user(self, user_id: str, template: NotificationTemplate) -> NotificationDB:
        try:
            notification = await add_notification(self.db, NotificationDB.for_recipient(user_id, template))
        except PyMongoError as e:
            raise NotificationDeliveryError(user_id, str(e)) from e
        notifications_delivered_counter.add(1, {"notification.type": notification.type})
        return notification

    async def _notify_with_retry(self, user_id: str, template: NotificationTemplate) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.notify_user(user_id, template)
                return True
            except NotificationDeliveryError as e:
                logger.warning(
                    f"Notification write for user {user_id} failed (attempt {attempt}/{self.max_attempts}): {e}"
                )
        return False

    async def notify_role(self, role: str, template: NotificationTemplate) -> NotificationOutcome:
        try:
            recipients = await user_store.list_users_by_role(self.db, role)
        except PyMongoError as e:
            logger.error(f"Fan-out '{template.title}' to role {role} skipped; recipients could not be resolved: {e}")
            return NotificationOutcome()
        outcome = NotificationOutcome(recipients=len(recipients))

        for recipient in recipients:
            if await self._notify_with_retry(recipient.id, template):
                outcome.delivered += 1
            else:
                outcome.failed_recipients.append(recipient.id)

        if outcome.failed_recipients:
            notifications_failed_counter.add(outcome.failed, {"notification.type": template.type})
            logger.error(
                f"Fan-out '{template.title}' to role {role}: {outcome.failed} of {outcome.recipients} "
                f"recipients not notified: {outcome.failed_recipients}"
            )
        else:
            logger.info(f"Fan-out '{template.title}' to role {role}: {outcome.delivered} recipients notified.")
        return outcome
