"""
Read side for LC applications: role-scoped listing, single fetch with related
documents populated, and dashboard aggregates.
"""
import calendar
import datetime
import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from .models import SORTABLE_FIELDS, ListApplicationsQuery
from lc_application_service.app.config import settings
from lc_application_service.app.models import ApplicationDB, ApplicationStatus, CompanyDB, Role, UserDB
from lc_application_service.app.observability import tracer
from lc_application_service.app.service.authorization import ensure_can_access
from lc_application_service.app.service.exceptions import ApplicationNotFoundError
from lc_application_service.infrastructure.database import application_store, company_store, user_store

logger = logging.getLogger(__name__)


def scope_for_actor(actor: UserDB) -> Dict[str, Any]:
    """Plain users only ever see the applications they created."""
    if actor.role == Role.USER.value:
        return {"created_by": actor.id}
    return {}


def build_application_filter(query: ListApplicationsQuery, actor: UserDB) -> Dict[str, Any]:
    query_filter = scope_for_actor(actor)

    if query.status:
        query_filter["status"] = query.status
    if query.type:
        query_filter["type"] = query.type

    if query.start_date or query.end_date:
        created_at: Dict[str, datetime.datetime] = {}
        if query.start_date:
            created_at["$gte"] = query.start_date
        if query.end_date:
            created_at["$lte"] = query.end_date
        query_filter["created_at"] = created_at

    if query.search:
        pattern = re.escape(query.search)
        query_filter["$or"] = [
            {"reference": {"$regex": pattern, "$options": "i"}},
            {"beneficiary.name": {"$regex": pattern, "$options": "i"}},
        ]
    return query_filter


def build_sort(query: ListApplicationsQuery) -> List[tuple]:
    direction = DESCENDING if query.sort_order == "desc" else ASCENDING
    return [(SORTABLE_FIELDS[query.sort_by], direction)]


def company_summary(company: Optional[CompanyDB]) -> Optional[Dict[str, Any]]:
    if company is None:
        return None
    return {"id": company.id, "name": company.name, "registrationNumber": company.registration_number}


def user_summary(user: Optional[UserDB]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "firstName": user.first_name, "lastName": user.last_name, "email": user.email}


async def populate_summaries(db: AsyncIOMotorDatabase, applications: Iterable[ApplicationDB]) -> List[Dict[str, Any]]:
    """Serializes applications with applicant and createdBy replaced by summaries."""
    applications = list(applications)
    companies = await company_store.get_companies_by_ids(db, (app.applicant for app in applications))
    users = await user_store.get_users_by_ids(db, (app.created_by for app in applications))

    records = []
    for application in applications:
        record = application.to_api()
        record["applicant"] = company_summary(companies.get(application.applicant))
        record["createdBy"] = user_summary(users.get(application.created_by))
        records.append(record)
    return records


async def list_applications(db: AsyncIOMotorDatabase, query: ListApplicationsQuery, actor: UserDB) -> Dict[str, Any]:
    with tracer.start_as_current_span("list_applications") as span:
        query_filter = build_application_filter(query, actor)
        span.set_attribute("query.page", query.page)
        span.set_attribute("query.limit", query.limit)

        applications = await application_store.find_applications(
            db, query_filter, build_sort(query), skip=query.skip, limit=query.limit
        )
        total = await application_store.count_applications(db, query_filter)
        data = await populate_summaries(db, applications)

    return {
        "count": len(data),
        "total": total,
        "totalPages": math.ceil(total / query.limit),
        "currentPage": query.page,
        "data": data,
    }


async def get_application_for_actor(db: AsyncIOMotorDatabase, application_id: str, actor: UserDB) -> Dict[str, Any]:
    application = await application_store.get_application_by_id(db, application_id)
    if not application:
        raise ApplicationNotFoundError(application_id)
    ensure_can_access(application, actor)

    company = await company_store.get_company_by_id(db, application.applicant)
    users = await user_store.get_users_by_ids(db, (application.created_by, application.assigned_to))

    record = application.to_api()
    record["applicant"] = company.to_api() if company else None
    record["createdBy"] = user_summary(users.get(application.created_by))
    record["assignedTo"] = user_summary(users.get(application.assigned_to)) if application.assigned_to else None
    return record


async def get_application_with_applicant(db: AsyncIOMotorDatabase, application: ApplicationDB) -> Dict[str, Any]:
    """Serialization used after an update: only the applicant summary is populated."""
    record = application.to_api()
    record["applicant"] = company_summary(await company_store.get_company_by_id(db, application.applicant))
    return record


def months_ago(now: datetime.datetime, months: int) -> datetime.datetime:
    """Same day-of-month ``months`` back, clamped to the end of shorter months."""
    year, month_index = divmod(now.year * 12 + (now.month - 1) - months, 12)
    month = month_index + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


async def get_dashboard_stats(
    db: AsyncIOMotorDatabase,
    actor: UserDB,
    now: Optional[datetime.datetime] = None
) -> Dict[str, Any]:
    scope = scope_for_actor(actor)
    since = months_ago(now or datetime.datetime.now(datetime.UTC), settings.DASHBOARD_MONTHS)

    with tracer.start_as_current_span("get_dashboard_stats"):
        total = await application_store.count_applications(db, scope)
        draft = await application_store.count_applications(db, {**scope, "status": ApplicationStatus.DRAFT.value})
        submitted = await application_store.count_applications(db, {**scope, "status": ApplicationStatus.SUBMITTED.value})
        approved = await application_store.count_applications(db, {**scope, "status": ApplicationStatus.APPROVED.value})

        by_type = await application_store.aggregate_applications(db, [
            {"$match": scope},
            {"$group": {"_id": "$type", "count": {"$sum": 1}}},
        ])
        monthly = await application_store.aggregate_applications(db, [
            {"$match": {**scope, "created_at": {"$gte": since}}},
            {"$group": {
                "_id": {"year": {"$year": "$created_at"}, "month": {"$month": "$created_at"}},
                "count": {"$sum": 1},
            }},
            {"$sort": {"_id.year": 1, "_id.month": 1}},
        ])

    logger.info(f"Dashboard stats computed for user {actor.id}: {total} applications in scope.")
    return {
        "total": total,
        "draft": draft,
        "submitted": submitted,
        "approved": approved,
        "byType": by_type,
        "monthly": monthly,
    }
