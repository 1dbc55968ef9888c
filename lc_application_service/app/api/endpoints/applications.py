# API Router for LC Applications
import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import ValidationError as PydanticValidationError

from lc_application_service.app.api.responses import success
from lc_application_service.app.config import settings
from lc_application_service.app.dependencies.auth import get_current_user, require_roles
from lc_application_service.app.dependencies.services import get_event_publisher, get_notification_sink
from lc_application_service.app.models import ApplicationStep, Role, UserDB
from lc_application_service.app.models.base import CamelModel
from lc_application_service.app.service.commands import handlers as command_handlers
from lc_application_service.app.service.commands import models as command_models
from lc_application_service.app.service.exceptions import ValidationError
from lc_application_service.app.service.interfaces.event_publisher import AbstractEventPublisher
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink
from lc_application_service.app.service.queries import application_queries
from lc_application_service.app.service.queries.models import ListApplicationsQuery
from lc_application_service.infrastructure.database.connection import get_db

logger = logging.getLogger(__name__)
router = APIRouter()


class UpdateStepRequest(CamelModel):
    step: ApplicationStep
    form_data: Optional[Any] = None


def list_applications_params(
    status: Optional[str] = None,
    type: Optional[str] = None,
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    search: Optional[str] = None,
    page: int = 1,
    limit: int = settings.DEFAULT_PAGE_SIZE,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
) -> ListApplicationsQuery:
    try:
        return ListApplicationsQuery(
            status=status or None,
            type=type or None,
            start_date=start_date or None,
            end_date=end_date or None,
            search=search or None,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    except PydanticValidationError as e:
        raise ValidationError("; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()
        )) from e


@router.get("/applications", summary="List applications visible to the caller", tags=["Applications"])
async def list_applications_api(
    query: ListApplicationsQuery = Depends(list_applications_params),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    page = await application_queries.list_applications(db, query, current_user)
    return success(**page)


@router.get("/applications/stats/dashboard", summary="Dashboard statistics", tags=["Applications"])
async def get_dashboard_stats_api(
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await application_queries.get_dashboard_stats(db, current_user))


@router.get("/applications/admin/pending", summary="Review queue for admins and compliance officers", tags=["Applications"])
async def list_pending_applications_api(
    query: ListApplicationsQuery = Depends(list_applications_params),
    current_user: UserDB = Depends(require_roles(Role.ADMIN.value, Role.COMPLIANCE_OFFICER.value)),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    page = await application_queries.list_applications(db, query, current_user)
    return success(**page)


@router.post("/applications", status_code=201, summary="Create a draft application", tags=["Applications"])
async def create_application_api(
    command: command_models.CreateApplicationCommand = Body(...),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
    notification_sink: AbstractNotificationSink = Depends(get_notification_sink),
    event_publisher: AbstractEventPublisher = Depends(get_event_publisher)
):
    application = await command_handlers.handle_create_application(
        db, command, current_user, notification_sink, event_publisher
    )
    return success(application.to_api())


@router.get("/applications/{application_id}", summary="Fetch one application", tags=["Applications"])
async def get_application_api(
    application_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return success(await application_queries.get_application_for_actor(db, application_id, current_user))


@router.put("/applications/{application_id}", summary="Update status, form data or terms", tags=["Applications"])
async def update_application_api(
    application_id: str,
    changes: command_models.ApplicationChanges = Body(...),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
    notification_sink: AbstractNotificationSink = Depends(get_notification_sink),
    event_publisher: AbstractEventPublisher = Depends(get_event_publisher)
):
    command = command_models.UpdateApplicationCommand(application_id=application_id, changes=changes)
    application = await command_handlers.handle_update_application(
        db, command, current_user, notification_sink, event_publisher
    )
    return success(await application_queries.get_application_with_applicant(db, application))


@router.delete(
    "/applications/{application_id}",
    summary="Delete a draft application",
    tags=["Applications"],
)
async def delete_application_api(
    application_id: str,
    current_user: UserDB = Depends(require_roles(Role.USER.value, Role.ADMIN.value)),
    db: AsyncIOMotorDatabase = Depends(get_db),
    event_publisher: AbstractEventPublisher = Depends(get_event_publisher)
):
    command = command_models.DeleteApplicationCommand(application_id=application_id)
    await command_handlers.handle_delete_application(db, command, current_user, event_publisher)
    return success(message="Application deleted successfully")


@router.put("/applications/{application_id}/step", summary="Advance the wizard step", tags=["Applications"])
async def update_application_step_api(
    application_id: str,
    request_data: UpdateStepRequest = Body(...),
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
    event_publisher: AbstractEventPublisher = Depends(get_event_publisher)
):
    command = command_models.UpdateApplicationStepCommand(
        application_id=application_id,
        step=request_data.step,
        form_data=request_data.form_data,
    )
    application = await command_handlers.handle_update_application_step(db, command, current_user, event_publisher)
    return success(application.to_api())


@router.post("/applications/{application_id}/submit", summary="Submit for compliance review", tags=["Applications"])
async def submit_application_api(
    application_id: str,
    current_user: UserDB = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
    notification_sink: AbstractNotificationSink = Depends(get_notification_sink),
    event_publisher: AbstractEventPublisher = Depends(get_event_publisher)
):
    command = command_models.SubmitApplicationCommand(application_id=application_id)
    application = await command_handlers.handle_submit_application(
        db, command, current_user, notification_sink, event_publisher
    )
    return success(application.to_api(), message="Application submitted successfully")
