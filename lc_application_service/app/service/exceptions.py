"""
Custom exceptions for the LC Application service.

The lifecycle engine raises these; translating them to HTTP responses is the
job of ``lc_application_service.app.api.error_handlers``.
"""
from typing import List


class BaseLcServiceError(Exception):
    """Base class for exceptions in this module."""
    pass

class ValidationError(BaseLcServiceError):
    """Raised when a prerequisite state is missing (no company, incomplete forms, ...)."""
    pass

class IncompleteApplicationError(ValidationError):
    """Raised when an application is submitted before every form section is completed."""
    def __init__(self, application_id: str, missing_sections: List[str]):
        self.application_id = application_id
        self.missing_sections = missing_sections
        super().__init__(
            "Please complete all required forms before submission. "
            f"Missing: {', '.join(missing_sections)}."
        )

class DuplicateReferenceError(ValidationError):
    """Raised when an application reference is already taken."""
    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"Application reference '{reference}' already exists.")

class DuplicateCompanyError(ValidationError):
    """Raised when a company with the same name or registration number exists."""
    pass

class AuthenticationError(BaseLcServiceError):
    """Raised when the request carries no valid access token."""
    pass

class AuthorizationError(BaseLcServiceError):
    """Raised on a role or ownership mismatch."""
    pass

class NotFoundError(BaseLcServiceError):
    """Base class for missing resources."""
    pass

class ApplicationNotFoundError(NotFoundError):
    def __init__(self, application_id: str):
        self.application_id = application_id
        super().__init__("Application not found")

class CompanyNotFoundError(NotFoundError):
    def __init__(self, company_id: str = None):
        self.company_id = company_id
        super().__init__("Company not found")

class NotificationNotFoundError(NotFoundError):
    def __init__(self, notification_id: str):
        self.notification_id = notification_id
        super().__init__("Notification not found")

class InvalidTransitionError(BaseLcServiceError):
    """Raised when an operation is attempted on an application in an invalid state."""
    def __init__(self, application_id: str, current_status: str, attempted_action: str, message: str = None):
        self.application_id = application_id
        self.current_status = current_status
        self.attempted_action = attempted_action
        super().__init__(
            message or f"Cannot {attempted_action} for application '{application_id}' in status '{current_status}'."
        )

class ConcurrencyConflictError(BaseLcServiceError):
    """Raised when a version conflict is detected during an update operation."""
    def __init__(self, aggregate_id: str, expected_version: int, actual_version: int = None):
        self.aggregate_id = aggregate_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Concurrency conflict for application '{aggregate_id}'. "
            f"Expected version {expected_version}, but found {actual_version if actual_version is not None else 'a newer one'}."
        )

class ReferenceGenerationError(BaseLcServiceError):
    """Raised when no free application reference could be generated."""
    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate a unique application reference after {attempts} attempts.")

class EventPublishError(BaseLcServiceError):
    """Raised when there's an issue with lifecycle event publication."""
    pass

class NotificationDeliveryError(BaseLcServiceError):
    """Raised by a notification sink when a notification record could not be written."""
    def __init__(self, user_id: str, reason: str):
        self.user_id = user_id
        super().__init__(f"Notification for user '{user_id}' could not be delivered: {reason}")
