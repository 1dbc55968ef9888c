# Pydantic models for Commands
from pydantic import Field, field_validator
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional
import datetime
import uuid

from lc_application_service.app.models.base import CamelModel
from lc_application_service.app.models.application_db import (
    AdvisingBank,
    ApplicationPriority,
    ApplicationStatus,
    ApplicationStep,
    Beneficiary,
    Charges,
    ComplianceCheck,
    FormData,
    IssuingBank,
    LcType,
    RequiredDocument,
)
from lc_application_service.app.models.company_db import CompanyProfile, ComplianceStatus, KycStatus, RiskRating

class BaseCommand(CamelModel):
    command_id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class CreateApplicationCommand(BaseCommand):
    # applicant and created_by come from the authenticated actor, never from the body
    reference: Optional[str] = None
    type: LcType
    amount: float = Field(ge=0)
    currency: str = "USD"
    tenor: int = 90
    expiry_date: datetime.datetime
    shipment_date: Optional[datetime.datetime] = None
    latest_shipment_date: Optional[datetime.datetime] = None
    presentation_period: int = 21
    goods_description: Optional[str] = None
    documents_required: List[RequiredDocument] = Field(default_factory=list)
    additional_conditions: Optional[str] = None
    charges: Charges = Field(default_factory=Charges)
    beneficiary: Optional[Beneficiary] = None
    issuing_bank: Optional[IssuingBank] = None
    advising_bank: Optional[AdvisingBank] = None
    form_data: FormData = Field(default_factory=FormData)
    priority: ApplicationPriority = ApplicationPriority.NORMAL

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class ApplicationChanges(CamelModel):
    """Body of an application update. Only fields actually sent are applied."""
    expected_version: Optional[int] = None

    status: Optional[ApplicationStatus] = None
    status_comments: Optional[str] = None
    form_data: Optional[FormData] = None

    type: Optional[LcType] = None
    amount: Optional[float] = Field(default=None, ge=0)
    currency: Optional[str] = None
    tenor: Optional[int] = None
    expiry_date: Optional[datetime.datetime] = None
    shipment_date: Optional[datetime.datetime] = None
    latest_shipment_date: Optional[datetime.datetime] = None
    presentation_period: Optional[int] = None
    goods_description: Optional[str] = None
    documents_required: Optional[List[RequiredDocument]] = None
    additional_conditions: Optional[str] = None
    charges: Optional[Charges] = None
    beneficiary: Optional[Beneficiary] = None
    issuing_bank: Optional[IssuingBank] = None
    advising_bank: Optional[AdvisingBank] = None
    current_step: Optional[ApplicationStep] = None
    compliance_check: Optional[ComplianceCheck] = None
    assigned_to: Optional[str] = None
    priority: Optional[ApplicationPriority] = None

    @field_validator("currency")
    @classmethod
    def uppercase_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value

    # Handled by the status/form-data logic rather than copied verbatim
    CONTROL_FIELDS: ClassVar[FrozenSet[str]] = frozenset({"expected_version", "status", "status_comments", "form_data"})
    # Fields the stored document requires; an explicit null is ignored for these
    NON_NULLABLE_FIELDS: ClassVar[FrozenSet[str]] = frozenset({
        "type", "amount", "currency", "tenor", "expiry_date", "presentation_period",
        "documents_required", "charges", "current_step", "compliance_check", "priority",
    })

    def field_changes(self) -> Dict[str, Any]:
        changes = self.model_dump(exclude_unset=True, exclude=set(self.CONTROL_FIELDS))
        return {
            field: value for field, value in changes.items()
            if not (value is None and field in self.NON_NULLABLE_FIELDS)
        }


class UpdateApplicationCommand(BaseCommand):
    application_id: str
    changes: ApplicationChanges


class UpdateApplicationStepCommand(BaseCommand):
    application_id: str
    step: ApplicationStep
    form_data: Optional[Any] = None # Payload for the step's form section


class SubmitApplicationCommand(BaseCommand):
    application_id: str


class DeleteApplicationCommand(BaseCommand):
    application_id: str


class RegisterCompanyCommand(BaseCommand):
    profile: CompanyProfile


class UpdateCompanyProfileCommand(BaseCommand):
    company_id: str
    changes: Dict[str, Any] # Partial API payload, validated against the merged profile


class ReviewCompanyComplianceCommand(BaseCommand):
    company_id: str
    compliance_status: Optional[ComplianceStatus] = None
    kyc_status: Optional[KycStatus] = None
    risk_rating: Optional[RiskRating] = None
