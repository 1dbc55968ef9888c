from .application_db import (
    ApplicationDB,
    ApplicationPriority,
    ApplicationStatus,
    ApplicationStep,
    FormData,
    LcType,
    StatusHistoryEntry,
)
from .company_db import CompanyDB, CompanyProfile
from .notification_db import NotificationDB, NotificationTemplate, NotificationType, NotificationPriority
from .user_db import Role, UserDB

__all__ = [
    "ApplicationDB",
    "ApplicationPriority",
    "ApplicationStatus",
    "ApplicationStep",
    "FormData",
    "LcType",
    "StatusHistoryEntry",
    "CompanyDB",
    "CompanyProfile",
    "NotificationDB",
    "NotificationTemplate",
    "NotificationType",
    "NotificationPriority",
    "Role",
    "UserDB",
]
