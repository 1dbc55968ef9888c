import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import CamelModel, DocumentModel


class LegalForm(str, Enum):
    LLC = "LLC"
    CORPORATION = "Corporation"
    PARTNERSHIP = "Partnership"
    SOLE_PROPRIETORSHIP = "Sole Proprietorship"
    OTHER = "Other"


class BusinessType(str, Enum):
    IMPORTER = "Importer"
    EXPORTER = "Exporter"
    TRADER = "Trader"
    MANUFACTURER = "Manufacturer"
    SERVICE_PROVIDER = "Service Provider"


class ComplianceStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class KycStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class RiskRating(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CompanyDocumentType(str, Enum):
    CERTIFICATE = "certificate"
    LICENSE = "license"
    TAX = "tax"
    OTHER = "other"


class CompanyAddress(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: str


class ContactInfo(CamelModel):
    phone: Optional[str] = None
    fax: Optional[str] = None
    website: Optional[str] = None


class BankAccount(CamelModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    account_type: Optional[str] = None
    currency: Optional[str] = None
    iban: Optional[str] = None
    swift_code: Optional[str] = None
    is_primary: bool = False


class AuthorizedSignatory(CamelModel):
    name: Optional[str] = None
    position: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    signature_image: Optional[str] = None


class CompanyDocument(CamelModel):
    type: Optional[CompanyDocumentType] = None
    name: Optional[str] = None
    file_url: Optional[str] = None
    uploaded_at: Optional[datetime.datetime] = None
    expires_at: Optional[datetime.datetime] = None


class CompanyProfile(CamelModel):
    """Fields a company owner may set; compliance fields are reviewed separately."""
    name: str
    registration_number: str
    tax_id: str
    legal_form: Optional[LegalForm] = None
    incorporation_date: Optional[datetime.datetime] = None
    address: CompanyAddress
    contact_info: Optional[ContactInfo] = None
    industry: Optional[str] = None
    business_type: Optional[BusinessType] = None
    annual_revenue: Optional[float] = None
    number_of_employees: Optional[int] = None
    bank_accounts: List[BankAccount] = Field(default_factory=list)
    authorized_signatories: List[AuthorizedSignatory] = Field(default_factory=list)
    documents: List[CompanyDocument] = Field(default_factory=list)


class CompanyDB(DocumentModel, CompanyProfile): # Read/write model for companies
    compliance_status: ComplianceStatus = ComplianceStatus.PENDING
    kyc_status: KycStatus = KycStatus.NOT_STARTED
    risk_rating: RiskRating = RiskRating.MEDIUM
    created_by: str # User id of the registering user
