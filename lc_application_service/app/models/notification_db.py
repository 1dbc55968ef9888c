import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import CamelModel, DocumentModel


class NotificationType(str, Enum):
    APPLICATION_UPDATE = "application_update"
    COMPLIANCE_ALERT = "compliance_alert"
    DOCUMENT_UPLOAD = "document_upload"
    DEADLINE = "deadline"
    SYSTEM = "system"
    OTHER = "other"


class NotificationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"


class NotificationData(CamelModel):
    # Back-references used by clients for linking only
    application_id: Optional[str] = None
    document_id: Optional[str] = None
    company_id: Optional[str] = None
    url: Optional[str] = None


class NotificationTemplate(CamelModel):
    """Everything about a notification except its recipient."""
    type: NotificationType
    title: str
    message: str
    priority: NotificationPriority = NotificationPriority.NORMAL
    data: NotificationData = Field(default_factory=NotificationData)


class NotificationDB(DocumentModel, NotificationTemplate):
    user: str # Recipient user id
    is_read: bool = False
    read_at: Optional[datetime.datetime] = None

    @classmethod
    def for_recipient(cls, user_id: str, template: NotificationTemplate) -> "NotificationDB":
        return cls(user=user_id, **template.model_dump())
