from lc_application_service.app.config import settings
import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from typing import Optional

logger = logging.getLogger(__name__)

# Global client and db variables, managed by connect/close functions
client: Optional[AsyncIOMotorClient] = None
db: Optional[AsyncIOMotorDatabase] = None

async def connect_to_mongo():
    global client, db
    if client is not None and db is not None:
        logger.info("MongoDB connection already established.")
        return

    try:
        logger.info(f"Attempting to connect to MongoDB at {settings.MONGO_DETAILS}...")
        client = AsyncIOMotorClient(settings.MONGO_DETAILS, tz_aware=True)
        # Verify connection by pinging the admin database
        await client.admin.command('ping')
        db = client[settings.DB_NAME]
        logger.info(f"Successfully connected to MongoDB and database '{settings.DB_NAME}' is set.")
    except Exception as e:
        logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
        client = None
        db = None
        raise ConnectionError(f"Failed to connect to MongoDB: {e}")

def close_mongo_connection():
    global client, db
    if client:
        client.close()
        client = None
        db = None
        logger.info("MongoDB connection closed.")

async def ensure_indexes(database: AsyncIOMotorDatabase):
    """Creates the indexes the stores rely on; unique ones back the duplicate checks."""
    await database.applications.create_index([("id", ASCENDING)], unique=True)
    await database.applications.create_index([("reference", ASCENDING)], unique=True)
    await database.applications.create_index([("applicant", ASCENDING)])
    await database.applications.create_index([("status", ASCENDING)])
    await database.applications.create_index([("created_by", ASCENDING)])
    await database.applications.create_index([("created_at", DESCENDING)])

    await database.companies.create_index([("id", ASCENDING)], unique=True)
    await database.companies.create_index([("name", ASCENDING)], unique=True)
    await database.companies.create_index([("registration_number", ASCENDING)], unique=True)

    await database.users.create_index([("id", ASCENDING)], unique=True)
    await database.users.create_index([("role", ASCENDING)])

    await database.notifications.create_index([("id", ASCENDING)], unique=True)
    await database.notifications.create_index([("user", ASCENDING), ("is_read", ASCENDING), ("created_at", DESCENDING)])
    logger.info("MongoDB indexes ensured.")

async def get_db():
    global db
    if db is None:
        logger.warning("Database not initialized. Attempting to connect via get_db().")
        await connect_to_mongo()

    if db is None:
        logger.error("Failed to get database instance in get_db.")
        raise ConnectionError("Database client is not available. Connection might have failed or was not established.")

    # The connection is owned by application startup/shutdown, so nothing to release per request.
    yield db
