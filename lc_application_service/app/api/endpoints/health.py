# API Router for Health Checks
import datetime
import logging
import time

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from lc_application_service.app.config import settings
from lc_application_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter()

STARTED_AT = time.monotonic()


@router.get("/health", tags=["Monitoring"])
async def health_check(db: AsyncIOMotorDatabase = Depends(get_db)):
    mongodb_status = "connected"
    try:
        await db.command("ping")
    except PyMongoError as e:
        logger.error(f"MongoDB health check ping failed: {e}")
        mongodb_status = "disconnected"
    return {
        "status": "OK",
        "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "components": {"mongodb": mongodb_status},
        "service_name": settings.SERVICE_NAME_API,
    }
