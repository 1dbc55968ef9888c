# API Router for Companies
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from lc_application_service.app.api.responses import success
from lc_application_service.app.dependencies.auth import get_current_user, require_roles
from lc_application_service.app.dependencies.services import get_notification_sink
from lc_application_service.app.models import CompanyProfile, Role, UserDB
from lc_application_service.app.models.base import CamelModel
from lc_application_service.app.models.company_db import ComplianceStatus, KycStatus, RiskRating
from lc_application_service.app.service.commands import company_handlers
from lc_application_service.app.service.commands import models as command_models
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink
from lc_application_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter()


class ComplianceReviewRequest(CamelModel):
    compliance_status: Optional[ComplianceStatus] = None
    kyc_status: Optional[KycStatus] = None
    risk_rating: Optional[RiskRating] = None


@router.post("/company", status_code=201, summary="Register the caller's company", tags=["Companies"])
async def register_company_api(
    profile: CompanyProfile = Body(...),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    command = command_models.RegisterCompanyCommand(profile=profile)
    company = await company_handlers.handle_register_company(db, command, current_user)
    return success(company.to_api())


@router.get("/company", summary="Fetch the caller's company", tags=["Companies"])
async def get_my_company_api(
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    company = await company_handlers.get_company_for_actor(db, current_user)
    return success(company.to_api())


@router.put("/company", summary="Update the caller's company profile", tags=["Companies"])
async def update_my_company_api(
    changes: Dict[str, Any] = Body(...),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    company = await company_handlers.get_company_for_actor(db, current_user)
    command = command_models.UpdateCompanyProfileCommand(company_id=company.id, changes=changes)
    updated = await company_handlers.handle_update_company_profile(db, command, current_user)
    return success(updated.to_api())


@router.put("/company/{company_id}/compliance", summary="Record a compliance review", tags=["Companies"])
async def review_company_compliance_api(
    company_id: str,
    request_data: ComplianceReviewRequest = Body(...),
    current_user: UserDB = Depends(require_roles(Role.ADMIN.value, Role.COMPLIANCE_OFFICER.value)),
    db: AsyncIOMotorDatabase = Depends(get_db),
    notification_sink: AbstractNotificationSink = Depends(get_notification_sink)
):
    command = command_models.ReviewCompanyComplianceCommand(
        company_id=company_id,
        compliance_status=request_data.compliance_status,
        kyc_status=request_data.kyc_status,
        risk_rating=request_data.risk_rating,
    )
    company = await company_handlers.handle_review_company_compliance(db, command, current_user, notification_sink)
    return success(company.to_api())
