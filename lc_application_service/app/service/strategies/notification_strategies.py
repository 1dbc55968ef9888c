import logging
from abc import ABC, abstractmethod
from typing import Optional

from lc_application_service.app.config import settings
from lc_application_service.app.models import (
    ApplicationDB,
    CompanyDB,
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
    Role,
    UserDB,
)
from lc_application_service.app.models.notification_db import NotificationData
from lc_application_service.app.service.exceptions import NotificationDeliveryError
from lc_application_service.app.service.interfaces.notification_sink import AbstractNotificationSink, NotificationOutcome

logger = logging.getLogger(__name__)


def _application_data(application: ApplicationDB) -> NotificationData:
    return NotificationData(application_id=application.id)


async def _notify_user(sink: AbstractNotificationSink, user_id: str, template: NotificationTemplate) -> None:
    # A single-recipient notice never fails the state change that triggered it.
    try:
        await sink.notify_user(user_id, template)
    except NotificationDeliveryError as e:
        logger.error(f"Dropping '{template.title}' notice: {e}")


def application_created_template(application: ApplicationDB) -> NotificationTemplate:
    return NotificationTemplate(
        type=NotificationType.APPLICATION_UPDATE,
        title="New Application Created",
        message=f"Application {application.reference} has been created",
        data=_application_data(application),
    )


def review_required_template(application: ApplicationDB, via_submit: bool) -> NotificationTemplate:
    # Wording differs between the submit action and a status update to "submitted".
    if via_submit:
        message = f"Application {application.reference} is ready for review"
    else:
        message = f"Application {application.reference} needs compliance review"
    return NotificationTemplate(
        type=NotificationType.APPLICATION_UPDATE,
        title="New Application Submitted",
        message=message,
        priority=NotificationPriority.HIGH,
        data=_application_data(application),
    )


def submission_confirmation_template(application: ApplicationDB) -> NotificationTemplate:
    return NotificationTemplate(
        type=NotificationType.APPLICATION_UPDATE,
        title="Application Submitted",
        message=f"Your application {application.reference} has been submitted for review",
        data=_application_data(application),
    )


def compliance_review_template(company_id: str, company_name: str, compliance_status: str) -> NotificationTemplate:
    return NotificationTemplate(
        type=NotificationType.COMPLIANCE_ALERT,
        title="Company Compliance Review Updated",
        message=f"Compliance status of {company_name} is now {compliance_status}",
        priority=NotificationPriority.HIGH,
        data=NotificationData(company_id=company_id),
    )


class NotificationStrategy(ABC):
    @abstractmethod
    async def notify_created(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        pass

    @abstractmethod
    async def notify_review_required(
        self,
        sink: AbstractNotificationSink,
        application: ApplicationDB,
        via_submit: bool
    ) -> NotificationOutcome:
        """Fans out to every compliance officer; returns the batched outcome."""
        pass

    @abstractmethod
    async def notify_submission_confirmed(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        pass

    @abstractmethod
    async def notify_compliance_reviewed(self, sink: AbstractNotificationSink, company: CompanyDB) -> None:
        pass


class StandardNotificationStrategy(NotificationStrategy):
    async def notify_created(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        await _notify_user(sink, actor.id, application_created_template(application))

    async def notify_review_required(
        self,
        sink: AbstractNotificationSink,
        application: ApplicationDB,
        via_submit: bool
    ) -> NotificationOutcome:
        return await sink.notify_role(Role.COMPLIANCE_OFFICER.value, review_required_template(application, via_submit))

    async def notify_submission_confirmed(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        await _notify_user(sink, actor.id, submission_confirmation_template(application))

    async def notify_compliance_reviewed(self, sink: AbstractNotificationSink, company: CompanyDB) -> None:
        await _notify_user(
            sink, company.created_by, compliance_review_template(company.id, company.name, company.compliance_status)
        )


class NoNotificationStrategy(NotificationStrategy):
    async def notify_created(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        logger.info(f"NoNotificationStrategy: notifications disabled, skipping creation notice for {application.id}.")

    async def notify_review_required(
        self,
        sink: AbstractNotificationSink,
        application: ApplicationDB,
        via_submit: bool
    ) -> NotificationOutcome:
        logger.info(f"NoNotificationStrategy: notifications disabled, skipping review fan-out for {application.id}.")
        return NotificationOutcome()

    async def notify_submission_confirmed(self, sink: AbstractNotificationSink, application: ApplicationDB, actor: UserDB) -> None:
        logger.info(f"NoNotificationStrategy: notifications disabled, skipping confirmation for {application.id}.")

    async def notify_compliance_reviewed(self, sink: AbstractNotificationSink, company: CompanyDB) -> None:
        logger.info(f"NoNotificationStrategy: notifications disabled, skipping compliance notice for {company.id}.")


def get_notification_strategy(enabled: Optional[bool] = None) -> NotificationStrategy:
    if enabled is None:
        enabled = settings.NOTIFICATIONS_ENABLED
    return StandardNotificationStrategy() if enabled else NoNotificationStrategy()
