from abc import ABC, abstractmethod
from typing import List

from pydantic import BaseModel, Field

from lc_application_service.app.models import NotificationDB, NotificationTemplate


class NotificationOutcome(BaseModel):
    """Batched result of a fan-out: who was targeted, how many records were written, who was missed."""
    recipients: int = 0
    delivered: int = 0
    failed_recipients: List[str] = Field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failed_recipients)


class AbstractNotificationSink(ABC):
    @abstractmethod
    async def notify_user(self, user_id: str, template: NotificationTemplate) -> NotificationDB:
        """
        Creates one notification addressed to ``user_id``.

        Raises on failure; callers decide whether the failure matters.
        """
        pass

    @abstractmethod
    async def notify_role(self, role: str, template: NotificationTemplate) -> NotificationOutcome:
        """
        Creates one notification per user holding ``role``.

        Never aborts part-way: recipients whose record could not be written
        are reported in the returned outcome.
        """
        pass
