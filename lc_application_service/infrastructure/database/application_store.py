# Operations for the Applications Collection
import logging
from typing import Any, Dict, List, Optional, Tuple
import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from lc_application_service.app.models import ApplicationDB, StatusHistoryEntry
from lc_application_service.app.service.exceptions import DuplicateReferenceError

logger = logging.getLogger(__name__)
APPLICATIONS_COLLECTION = "applications"

async def insert_application(db: AsyncIOMotorDatabase, application: ApplicationDB) -> ApplicationDB:
    """Inserts a new application. Raises DuplicateReferenceError if the reference is taken."""
    try:
        await db[APPLICATIONS_COLLECTION].insert_one(application.model_dump())
    except DuplicateKeyError as e:
        logger.warning(f"Duplicate key inserting application {application.id} (reference {application.reference}): {e}")
        raise DuplicateReferenceError(application.reference) from e
    logger.info(f"Application inserted with ID: {application.id}, reference: {application.reference}")
    return application

async def get_application_by_id(db: AsyncIOMotorDatabase, application_id: str) -> Optional[ApplicationDB]:
    doc = await db[APPLICATIONS_COLLECTION].find_one({"id": application_id})
    return ApplicationDB(**doc) if doc else None

async def update_application(
    db: AsyncIOMotorDatabase,
    application_id: str,
    expected_version: int,
    set_fields: Dict[str, Any],
    history_entries: Optional[List[StatusHistoryEntry]] = None
) -> Optional[ApplicationDB]:
    """
    Applies ``set_fields`` (and appends ``history_entries``) only if the stored
    version still equals ``expected_version``; bumps the version.

    Returns the updated application, or None if no document matched (missing
    or modified concurrently).
    """
    update_query: Dict[str, Any] = {
        "$set": {**set_fields, "updated_at": datetime.datetime.now(datetime.UTC)},
        "$inc": {"version": 1},
    }
    if history_entries:
        update_query["$push"] = {"status_history": {"$each": [entry.model_dump() for entry in history_entries]}}

    updated_doc = await db[APPLICATIONS_COLLECTION].find_one_and_update(
        {"id": application_id, "version": expected_version},
        update_query,
        return_document=ReturnDocument.AFTER,
    )
    if not updated_doc:
        logger.warning(f"Application {application_id} not updated: no document at version {expected_version}.")
        return None

    logger.info(f"Application {application_id} updated to version {updated_doc.get('version')}.")
    return ApplicationDB(**updated_doc)

async def delete_application(db: AsyncIOMotorDatabase, application_id: str, expected_version: int) -> bool:
    result = await db[APPLICATIONS_COLLECTION].delete_one({"id": application_id, "version": expected_version})
    if result.deleted_count == 0:
        logger.warning(f"Application {application_id} not deleted: no document at version {expected_version}.")
        return False
    logger.info(f"Application {application_id} deleted.")
    return True

async def find_applications(
    db: AsyncIOMotorDatabase,
    query_filter: Dict[str, Any],
    sort: List[Tuple[str, int]],
    skip: int = 0,
    limit: int = 10
) -> List[ApplicationDB]:
    cursor = db[APPLICATIONS_COLLECTION].find(query_filter).sort(sort).skip(skip).limit(limit)
    docs = await cursor.to_list(length=limit)
    return [ApplicationDB(**doc) for doc in docs]

async def count_applications(db: AsyncIOMotorDatabase, query_filter: Dict[str, Any]) -> int:
    return await db[APPLICATIONS_COLLECTION].count_documents(query_filter)

async def aggregate_applications(db: AsyncIOMotorDatabase, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    cursor = db[APPLICATIONS_COLLECTION].aggregate(pipeline)
    return await cursor.to_list(length=None)
