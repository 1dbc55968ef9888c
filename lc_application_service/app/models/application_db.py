import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import Field, field_validator

from .base import CamelModel, DocumentModel, utc_now


class LcType(str, Enum):
    SIGHT = "sight"
    USANCE = "usance"
    TRANSFERABLE = "transferable"
    STANDBY = "standby"
    REVOLVING = "revolving"


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    ISSUED = "issued"
    AMENDED = "amended"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class ApplicationStep(str, Enum):
    COMPANY_INFO = "company_info"
    LC_DETAILS = "lc_details"
    PARTIES_INFO = "parties_info"
    SHIPPING_INFO = "shipping_info"
    COMPLIANCE = "compliance"
    REVIEW = "review"
    SUBMISSION = "submission"


class ApplicationPriority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


# Steps that must be completed before submission; each fills the form section
# named by the first underscore segment of the step.
REQUIRED_STEPS = (
    ApplicationStep.COMPANY_INFO,
    ApplicationStep.LC_DETAILS,
    ApplicationStep.PARTIES_INFO,
    ApplicationStep.SHIPPING_INFO,
    ApplicationStep.COMPLIANCE,
)


def form_section_for_step(step: str) -> str:
    """``lc_details`` -> ``lc``."""
    return str(getattr(step, "value", step)).split("_")[0]


class BankDetails(CamelModel):
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    swift_code: Optional[str] = None
    iban: Optional[str] = None


class Beneficiary(CamelModel):
    name: Optional[str] = None
    address: Optional[str] = None
    country: Optional[str] = None
    bank_details: Optional[BankDetails] = None


class IssuingBank(CamelModel):
    bank_id: Optional[str] = None
    name: Optional[str] = None
    branch: Optional[str] = None
    contact_person: Optional[str] = None


class AdvisingBank(CamelModel):
    bank_id: Optional[str] = None
    name: Optional[str] = None
    branch: Optional[str] = None


class RequiredDocument(CamelModel):
    document: str
    copies: int = 1
    original_required: bool = True


class Charges(CamelModel):
    issuing: float = 0
    advising: float = 0
    confirmation: float = 0
    amendment: float = 0


class FormData(CamelModel):
    # Each section is an opaque client payload; only presence matters to the lifecycle.
    company: Optional[Any] = None
    lc: Optional[Any] = None
    parties: Optional[Any] = None
    shipping: Optional[Any] = None
    compliance: Optional[Any] = None

    def merged_with(self, update: "FormData") -> "FormData":
        """Shallow merge: sections present in ``update`` replace ours wholesale."""
        merged = self.model_dump()
        merged.update(update.model_dump(exclude_unset=True))
        return FormData(**merged)

    def missing_sections(self) -> List[str]:
        return [
            form_section_for_step(step)
            for step in REQUIRED_STEPS
            if not getattr(self, form_section_for_step(step))
        ]


class ComplianceCheck(CamelModel):
    aml_check: bool = False
    kyc_check: bool = False
    sanctions_check: bool = False
    risk_assessment: Optional[str] = None


class StatusHistoryEntry(CamelModel):
    status: ApplicationStatus
    changed_by: str
    comments: Optional[str] = None
    timestamp: datetime.datetime = Field(default_factory=utc_now)


class ApplicationDB(DocumentModel): # Read/write model for LC applications
    reference: str

    type: LcType
    amount: float = Field(ge=0)
    currency: str = "USD"
    tenor: int = 90 # days
    expiry_date: datetime.datetime
    shipment_date: Optional[datetime.datetime] = None
    latest_shipment_date: Optional[datetime.datetime] = None
    presentation_period: int = 21 # days after shipment
    goods_description: Optional[str] = None
    documents_required: List[RequiredDocument] = Field(default_factory=list)
    additional_conditions: Optional[str] = None
    charges: Charges = Field(default_factory=Charges)

    applicant: str # Company id
    beneficiary: Optional[Beneficiary] = None
    issuing_bank: Optional[IssuingBank] = None
    advising_bank: Optional[AdvisingBank] = None

    status: ApplicationStatus = ApplicationStatus.DRAFT
    current_step: ApplicationStep = ApplicationStep.COMPANY_INFO
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)
    form_data: FormData = Field(default_factory=FormData)
    compliance_check: ComplianceCheck = Field(default_factory=ComplianceCheck)

    created_by: str # User id
    assigned_to: Optional[str] = None
    priority: ApplicationPriority = ApplicationPriority.NORMAL

    version: int = 1 # Optimistic concurrency token, bumped on every write

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, value: str) -> str:
        return value.upper()
