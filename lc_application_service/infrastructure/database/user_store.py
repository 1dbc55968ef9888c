# Read access to the Users Collection (users are owned by the identity service)
import logging
from typing import Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from lc_application_service.app.models import UserDB

logger = logging.getLogger(__name__)
USERS_COLLECTION = "users"

async def get_user_by_id(db: AsyncIOMotorDatabase, user_id: str) -> Optional[UserDB]:
    doc = await db[USERS_COLLECTION].find_one({"id": user_id})
    return UserDB(**doc) if doc else None

async def get_users_by_ids(db: AsyncIOMotorDatabase, user_ids: Iterable[str]) -> Dict[str, UserDB]:
    ids = list({user_id for user_id in user_ids if user_id})
    if not ids:
        return {}
    docs = await db[USERS_COLLECTION].find({"id": {"$in": ids}}).to_list(length=None)
    return {doc["id"]: UserDB(**doc) for doc in docs}

async def list_users_by_role(db: AsyncIOMotorDatabase, role: str) -> List[UserDB]:
    docs = await db[USERS_COLLECTION].find({"role": role}).to_list(length=None)
    return [UserDB(**doc) for doc in docs]

async def set_user_company(db: AsyncIOMotorDatabase, user_id: str, company_id: str) -> bool:
    result = await db[USERS_COLLECTION].update_one({"id": user_id}, {"$set": {"company": company_id}})
    if result.matched_count == 0:
        logger.warning(f"User {user_id} not found while linking company {company_id}.")
        return False
    logger.info(f"User {user_id} linked to company {company_id}.")
    return True
