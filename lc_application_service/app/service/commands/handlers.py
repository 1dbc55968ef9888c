# Application Lifecycle Command Handlers
import logging
from typing import Any, Dict, List, Optional
from motor.motor_asyncio import AsyncIOMotorDatabase

from opentelemetry import trace

from .models import (
    CreateApplicationCommand,
    DeleteApplicationCommand,
    SubmitApplicationCommand,
    UpdateApplicationCommand,
    UpdateApplicationStepCommand,
)
from lc_application_service.app.config import settings
from lc_application_service.app.models import (
    ApplicationDB,
    ApplicationStatus,
    ApplicationStep,
    FormData,
    StatusHistoryEntry,
    UserDB,
)
from lc_application_service.app.models.application_db import form_section_for_step
from lc_application_service.app.observability import (
    applications_created_counter,
    applications_submitted_counter,
    status_transitions_counter,
)
from lc_application_service.app.service.authorization import ensure_can_access
from lc_application_service.app.service.events import models as event_models
from lc_application_service.app.service.exceptions import (
    ApplicationNotFoundError,
    ConcurrencyConflictError,
    DuplicateReferenceError,
    EventPublishError,
    IncompleteApplicationError,
    InvalidTransitionError,
    ReferenceGenerationError,
    ValidationError,
)
from lc_application_service.app.service.interfaces.event_publisher import AbstractEventPublisher
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink
from lc_application_service.app.service.reference import generate_reference
from lc_application_service.app.service.strategies.notification_strategies import get_notification_strategy
from lc_application_service.infrastructure.database.application_store import (
    delete_application,
    get_application_by_id,
    insert_application,
    update_application,
)

logger = logging.getLogger(__name__)

CREATED_COMMENT = "Application created"
STATUS_UPDATED_COMMENT = "Status updated"
SUBMITTED_COMMENT = "Application submitted for review"


async def _load_application(db: AsyncIOMotorDatabase, application_id: str) -> ApplicationDB:
    application = await get_application_by_id(db, application_id)
    if not application:
        logger.warning(f"Application {application_id} not found.")
        raise ApplicationNotFoundError(application_id)
    return application


async def _persist_changes(
    db: AsyncIOMotorDatabase,
    application: ApplicationDB,
    set_fields: Dict[str, Any],
    history_entries: Optional[List[StatusHistoryEntry]] = None
) -> ApplicationDB:
    updated = await update_application(db, application.id, application.version, set_fields, history_entries)
    if updated is None:
        current = await get_application_by_id(db, application.id)
        if current is None:
            raise ApplicationNotFoundError(application.id)
        raise ConcurrencyConflictError(application.id, application.version, current.version)
    return updated


async def _publish(event_publisher: AbstractEventPublisher, event: event_models.BaseEvent) -> None:
    # The state change is already persisted; a transport failure must not turn it into an error response.
    try:
        await event_publisher.publish(event)
    except EventPublishError as e:
        logger.error(f"Lifecycle event {event.event_type} for application {event.aggregate_id} not published: {e}")
        trace.get_current_span().record_exception(e)


def _metadata(command, actor: UserDB) -> event_models.EventMetaData:
    return event_models.EventMetaData(causation_id=command.command_id, actor_id=actor.id)


async def handle_create_application(
    db: AsyncIOMotorDatabase,
    command: CreateApplicationCommand,
    actor: UserDB,
    notification_sink: AbstractNotificationSink,
    event_publisher: AbstractEventPublisher
) -> ApplicationDB:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", "CreateApplicationCommand")
    current_span.set_attribute("command.id", command.command_id)
    logger.info(f"Handling CreateApplicationCommand: {command.command_id} for user {actor.id}")

    if not actor.company:
        raise ValidationError("Please complete company registration first")

    application_fields = command.model_dump(exclude={"command_id", "reference"})
    supplied_reference = command.reference
    attempts = 1 if supplied_reference else max(1, settings.REFERENCE_MAX_ATTEMPTS)

    application: Optional[ApplicationDB] = None
    for attempt in range(1, attempts + 1):
        candidate = ApplicationDB(
            **application_fields,
            reference=supplied_reference or generate_reference(),
            applicant=actor.company,
            created_by=actor.id,
            status=ApplicationStatus.DRAFT,
            status_history=[
                StatusHistoryEntry(status=ApplicationStatus.DRAFT, changed_by=actor.id, comments=CREATED_COMMENT)
            ],
        )
        try:
            application = await insert_application(db, candidate)
            break
        except DuplicateReferenceError:
            if supplied_reference:
                raise
            logger.warning(f"Reference {candidate.reference} collided (attempt {attempt}/{attempts}); regenerating.")
            current_span.add_event("ReferenceCollision", {"reference": candidate.reference, "attempt": attempt})

    if application is None:
        raise ReferenceGenerationError(attempts)

    applications_created_counter.add(1, {"lc.type": application.type})
    current_span.add_event("ApplicationCreated", {"application.id": application.id, "reference": application.reference})

    await get_notification_strategy().notify_created(notification_sink, application, actor)

    await _publish(event_publisher, event_models.ApplicationCreatedEvent(
        aggregate_id=application.id,
        version=application.version,
        payload=event_models.ApplicationCreatedEventPayload(
            reference=application.reference,
            type=application.type,
            amount=application.amount,
            currency=application.currency,
            applicant=application.applicant,
            created_by=application.created_by,
        ),
        metadata=_metadata(command, actor),
    ))

    logger.info(f"Application created: {application.reference} by {actor.email}")
    return application


async def handle_update_application(
    db: AsyncIOMotorDatabase,
    command: UpdateApplicationCommand,
    actor: UserDB,
    notification_sink: AbstractNotificationSink,
    event_publisher: AbstractEventPublisher
) -> ApplicationDB:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", "UpdateApplicationCommand")
    current_span.set_attribute("command.id", command.command_id)
    logger.info(f"Handling UpdateApplicationCommand for application {command.application_id}")

    changes = command.changes
    application = await _load_application(db, command.application_id)
    ensure_can_access(application, actor, "update")

    if changes.expected_version is not None and changes.expected_version != application.version:
        raise ConcurrencyConflictError(application.id, changes.expected_version, application.version)

    old_status = application.status
    if old_status != ApplicationStatus.DRAFT and changes.status == ApplicationStatus.DRAFT:
        raise InvalidTransitionError(
            application.id, old_status, "revert to draft",
            message="Cannot revert to draft once submitted",
        )

    set_fields: Dict[str, Any] = {}
    history_entries: List[StatusHistoryEntry] = []
    status_changed = changes.status is not None and changes.status != old_status

    if changes.status is not None:
        set_fields["status"] = changes.status
    if status_changed:
        history_entries.append(StatusHistoryEntry(
            status=changes.status,
            changed_by=actor.id,
            comments=changes.status_comments or STATUS_UPDATED_COMMENT,
        ))
        if changes.status == ApplicationStatus.SUBMITTED:
            set_fields["current_step"] = ApplicationStep.SUBMISSION.value

    if changes.form_data is not None:
        set_fields["form_data"] = application.form_data.merged_with(changes.form_data).model_dump()

    # Remaining payload fields are applied after the status logic and win over it.
    set_fields.update(changes.field_changes())

    updated = await _persist_changes(db, application, set_fields, history_entries)

    if status_changed:
        status_transitions_counter.add(1, {"status.to": updated.status})
        current_span.add_event("ApplicationStatusChanged", {"status.from": old_status, "status.to": updated.status})
        outcome = None
        if changes.status == ApplicationStatus.SUBMITTED:
            outcome = await get_notification_strategy().notify_review_required(notification_sink, updated, via_submit=False)
            logger.info(f"Compliance officers notified for {updated.reference}: {outcome.delivered}/{outcome.recipients}")
        await _publish(event_publisher, event_models.ApplicationStatusChangedEvent(
            aggregate_id=updated.id,
            version=updated.version,
            payload=event_models.ApplicationStatusChangedEventPayload(
                reference=updated.reference,
                old_status=old_status,
                new_status=updated.status,
                comments=history_entries[0].comments,
            ),
            metadata=_metadata(command, actor),
        ))

    logger.info(f"Application {updated.reference} updated by {actor.email}: {sorted(set_fields)}")
    return updated


async def handle_update_application_step(
    db: AsyncIOMotorDatabase,
    command: UpdateApplicationStepCommand,
    actor: UserDB,
    event_publisher: AbstractEventPublisher
) -> ApplicationDB:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", "UpdateApplicationStepCommand")
    current_span.set_attribute("application.step", command.step)
    logger.info(f"Handling UpdateApplicationStepCommand for application {command.application_id} -> {command.step}")

    application = await _load_application(db, command.application_id)
    ensure_can_access(application, actor, "update")

    set_fields: Dict[str, Any] = {"current_step": command.step}
    section = form_section_for_step(command.step)
    section_written = None

    if command.form_data is not None:
        if section in FormData.model_fields:
            merged = application.form_data.merged_with(FormData(**{section: command.form_data}))
            set_fields["form_data"] = merged.model_dump()
            section_written = section
        else:
            logger.warning(f"Step {command.step} has no form section; ignoring submitted form data for {application.id}.")

    updated = await _persist_changes(db, application, set_fields)

    await _publish(event_publisher, event_models.ApplicationStepUpdatedEvent(
        aggregate_id=updated.id,
        version=updated.version,
        payload=event_models.ApplicationStepUpdatedEventPayload(
            reference=updated.reference, step=updated.current_step, form_section=section_written,
        ),
        metadata=_metadata(command, actor),
    ))
    return updated


async def handle_submit_application(
    db: AsyncIOMotorDatabase,
    command: SubmitApplicationCommand,
    actor: UserDB,
    notification_sink: AbstractNotificationSink,
    event_publisher: AbstractEventPublisher
) -> ApplicationDB:
    current_span = trace.get_current_span()
    current_span.set_attribute("command.name", "SubmitApplicationCommand")
    current_span.set_attribute("command.id", command.command_id)
    logger.info(f"Handling SubmitApplicationCommand for application {command.application_id}")

    application = await _load_application(db, command.application_id)
    ensure_can_access(application, actor, "submit")

    missing_sections = application.form_data.missing_sections()
    if missing_sections:
        logger.info(f"Submission of {application.id} rejected; missing sections: {missing_sections}")
        raise IncompleteApplicationError(application.id, missing_sections)

    previous_status = application.status
    if previous_status == ApplicationStatus.SUBMITTED:
        # A repeated submit still records its own history row.
        logger.warning(f"Application {application.reference} submitted again while already submitted.")

    updated = await _persist_changes(
        db,
        application,
        {"status": ApplicationStatus.SUBMITTED.value, "current_step": ApplicationStep.SUBMISSION.value},
        [StatusHistoryEntry(status=ApplicationStatus.SUBMITTED, changed_by=actor.id, comments=SUBMITTED_COMMENT)],
    )
    applications_submitted_counter.add(1)
    status_transitions_counter.add(1, {"status.to": updated.status})

    strategy = get_notification_strategy()
    outcome = await strategy.notify_review_required(notification_sink, updated, via_submit=True)
    await strategy.notify_submission_confirmed(notification_sink, updated, actor)
    current_span.add_event(
        "ApplicationSubmitted",
        {"application.id": updated.id, "officers.notified": outcome.delivered, "officers.missed": outcome.failed},
    )

    await _publish(event_publisher, event_models.ApplicationSubmittedEvent(
        aggregate_id=updated.id,
        version=updated.version,
        payload=event_models.ApplicationSubmittedEventPayload(
            reference=updated.reference,
            previous_status=previous_status,
            officers_notified=outcome.delivered,
            officers_missed=outcome.failed_recipients,
        ),
        metadata=_metadata(command, actor),
    ))

    logger.info(f"Application submitted: {updated.reference} by {actor.email}")
    return updated


async def handle_delete_application(
    db: AsyncIOMotorDatabase,
    command: DeleteApplicationCommand,
    actor: UserDB,
    event_publisher: AbstractEventPublisher
) -> str:
    logger.info(f"Handling DeleteApplicationCommand for application {command.application_id}")

    application = await _load_application(db, command.application_id)
    ensure_can_access(application, actor, "delete")

    if application.status != ApplicationStatus.DRAFT:
        raise InvalidTransitionError(
            application.id, application.status, "delete",
            message="Only draft applications can be deleted",
        )

    if not await delete_application(db, application.id, application.version):
        current = await get_application_by_id(db, application.id)
        if current is None:
            raise ApplicationNotFoundError(application.id)
        raise ConcurrencyConflictError(application.id, application.version, current.version)

    await _publish(event_publisher, event_models.ApplicationDeletedEvent(
        aggregate_id=application.id,
        version=application.version,
        payload=event_models.ApplicationDeletedEventPayload(reference=application.reference),
        metadata=_metadata(command, actor),
    ))

    logger.info(f"Application deleted: {application.reference} by {actor.email}")
    return application.id
