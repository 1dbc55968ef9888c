"""Ownership and role checks shared by the lifecycle handlers and the query service."""
from typing import Iterable

from lc_application_service.app.models import ApplicationDB, Role, UserDB
from lc_application_service.app.service.exceptions import AuthorizationError

ELEVATED_ROLES = frozenset({Role.ADMIN.value, Role.COMPLIANCE_OFFICER.value, Role.BANK_OFFICER.value})


def is_owner(application: ApplicationDB, actor: UserDB) -> bool:
    return application.created_by == actor.id


def has_role(actor: UserDB, roles: Iterable[str]) -> bool:
    return actor.role in {getattr(role, "value", role) for role in roles}


def is_elevated(actor: UserDB) -> bool:
    return has_role(actor, ELEVATED_ROLES)


def ensure_can_access(application: ApplicationDB, actor: UserDB, action: str = "access") -> None:
    if not (is_owner(application, actor) or is_elevated(actor)):
        raise AuthorizationError(f"Not authorized to {action} this application")
