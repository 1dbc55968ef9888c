# Company Command Handlers
import logging

from motor.motor_asyncio import AsyncIOMotorDatabase
from opentelemetry import trace
from pydantic import ValidationError as PydanticValidationError

from .models import RegisterCompanyCommand, ReviewCompanyComplianceCommand, UpdateCompanyProfileCommand
from lc_application_service.app.models import CompanyDB, CompanyProfile, UserDB
from lc_application_service.app.service.exceptions import CompanyNotFoundError, ValidationError
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink
from lc_application_service.app.service.strategies.notification_strategies import get_notification_strategy
from lc_application_service.infrastructure.database import company_store, user_store

logger = logging.getLogger(__name__)

PROFILE_FIELDS = frozenset(CompanyProfile.model_fields)


async def get_company_for_actor(db: AsyncIOMotorDatabase, actor: UserDB) -> CompanyDB:
    if not actor.company:
        raise CompanyNotFoundError()
    company = await company_store.get_company_by_id(db, actor.company)
    if not company:
        raise CompanyNotFoundError(actor.company)
    return company


async def handle_register_company(
    db: AsyncIOMotorDatabase,
    command: RegisterCompanyCommand,
    actor: UserDB
) -> CompanyDB:
    trace.get_current_span().set_attribute("command.name", "RegisterCompanyCommand")
    logger.info(f"Handling RegisterCompanyCommand for user {actor.id}")

    if actor.company:
        raise ValidationError("User already has a registered company")

    company = await company_store.insert_company(
        db, CompanyDB(**command.profile.model_dump(), created_by=actor.id)
    )
    await user_store.set_user_company(db, actor.id, company.id)

    logger.info(f"Company registered: {company.name} by {actor.email}")
    return company


async def handle_update_company_profile(
    db: AsyncIOMotorDatabase,
    command: UpdateCompanyProfileCommand,
    actor: UserDB
) -> CompanyDB:
    trace.get_current_span().set_attribute("command.name", "UpdateCompanyProfileCommand")

    company = await company_store.get_company_by_id(db, command.company_id)
    if not company:
        raise CompanyNotFoundError(command.company_id)

    # Changes arrive in API (camelCase) form, so merge them over the current profile in the same form.
    merged = {**company.model_dump(by_alias=True, include=set(PROFILE_FIELDS)), **command.changes}
    try:
        profile = CompanyProfile.model_validate(merged)
    except PydanticValidationError as e:
        raise ValidationError("; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )) from e

    updated = await company_store.update_company(db, company.id, profile.model_dump())
    if not updated:
        raise CompanyNotFoundError(company.id)

    logger.info(f"Company {updated.id} profile updated by {actor.email}")
    return updated


async def handle_review_company_compliance(
    db: AsyncIOMotorDatabase,
    command: ReviewCompanyComplianceCommand,
    actor: UserDB,
    notification_sink: AbstractNotificationSink
) -> CompanyDB:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", "ReviewCompanyComplianceCommand")
    logger.info(f"Handling ReviewCompanyComplianceCommand for company {command.company_id} by {actor.id}")

    set_fields = command.model_dump(include={"compliance_status", "kyc_status", "risk_rating"}, exclude_none=True)
    if not set_fields:
        raise ValidationError("Provide at least one of complianceStatus, kycStatus or riskRating")

    updated = await company_store.update_company(db, command.company_id, set_fields)
    if not updated:
        raise CompanyNotFoundError(command.company_id)

    current_span.add_event("CompanyComplianceReviewed", {"company.id": updated.id, **set_fields})
    await get_notification_strategy().notify_compliance_reviewed(notification_sink, updated)
    return updated
