from enum import Enum
from typing import Optional

from .base import DocumentModel


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    COMPLIANCE_OFFICER = "compliance_officer"
    BANK_OFFICER = "bank_officer"


class UserDB(DocumentModel):
    # Owned by the identity service; this service only reads users and links their company.
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Role = Role.USER
    company: Optional[str] = None # Company id once registered
    is_active: bool = True
