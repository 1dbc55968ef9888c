# Operations for the Companies Collection
import logging
from typing import Any, Dict, Iterable, Optional
import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from lc_application_service.app.models import CompanyDB
from lc_application_service.app.service.exceptions import DuplicateCompanyError

logger = logging.getLogger(__name__)
COMPANIES_COLLECTION = "companies"

async def insert_company(db: AsyncIOMotorDatabase, company: CompanyDB) -> CompanyDB:
    try:
        await db[COMPANIES_COLLECTION].insert_one(company.model_dump())
    except DuplicateKeyError as e:
        logger.warning(f"Duplicate company registration for '{company.name}' ({company.registration_number}): {e}")
        raise DuplicateCompanyError("A company with this name or registration number is already registered") from e
    logger.info(f"Company inserted with ID: {company.id}")
    return company

async def get_company_by_id(db: AsyncIOMotorDatabase, company_id: str) -> Optional[CompanyDB]:
    doc = await db[COMPANIES_COLLECTION].find_one({"id": company_id})
    return CompanyDB(**doc) if doc else None

async def get_companies_by_ids(db: AsyncIOMotorDatabase, company_ids: Iterable[str]) -> Dict[str, CompanyDB]:
    ids = list({company_id for company_id in company_ids if company_id})
    if not ids:
        return {}
    docs = await db[COMPANIES_COLLECTION].find({"id": {"$in": ids}}).to_list(length=None)
    return {doc["id"]: CompanyDB(**doc) for doc in docs}

async def update_company(db: AsyncIOMotorDatabase, company_id: str, set_fields: Dict[str, Any]) -> Optional[CompanyDB]:
    try:
        updated_doc = await db[COMPANIES_COLLECTION].find_one_and_update(
            {"id": company_id},
            {"$set": {**set_fields, "updated_at": datetime.datetime.now(datetime.UTC)}},
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError as e:
        raise DuplicateCompanyError("A company with this name or registration number is already registered") from e
    if not updated_doc:
        logger.warning(f"Company {company_id} not found for update.")
        return None
    logger.info(f"Company {company_id} updated: {sorted(set_fields)}")
    return CompanyDB(**updated_doc)
