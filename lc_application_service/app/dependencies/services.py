from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from lc_application_service.app.service.interfaces.event_publisher import AbstractEventPublisher
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink
from lc_application_service.infrastructure.database.connection import get_db
from lc_application_service.infrastructure.database.notification_store import MongoNotificationSink
from lc_application_service.infrastructure.kafka import producer


async def get_notification_sink(db: AsyncIOMotorDatabase = Depends(get_db)) -> AbstractNotificationSink:
    """FastAPI dependency provider for the notification sink bound to the request's database."""
    return MongoNotificationSink(db)


async def get_event_publisher() -> AbstractEventPublisher:
    """Kafka publisher when configured, otherwise a publisher that drops events."""
    return producer.get_event_publisher()
