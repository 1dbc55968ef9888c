import datetime

import pytest

from lc_application_service.app.models import (
    ApplicationDB,
    ApplicationStatus,
    CompanyDB,
    FormData,
    Role,
    StatusHistoryEntry,
    UserDB,
)


@pytest.fixture
def complete_form_data():
    return {
        "company": {"name": "Acme Trading"},
        "lc": {"amount": 50000},
        "parties": {"beneficiary": "Globex"},
        "shipping": {"port": "Rotterdam"},
        "compliance": {"aml": True},
    }


@pytest.fixture
def user_factory():
    def _factory(user_id: str = "user-1", role: str = Role.USER.value, company: str = "company-1") -> UserDB:
        return UserDB(
            id=user_id,
            email=f"{user_id}@example.com",
            first_name="Jane",
            last_name="Doe",
            role=role,
            company=company,
        )
    return _factory


@pytest.fixture
def application_factory():
    def _factory(
        application_id: str = "app-1",
        status: str = ApplicationStatus.DRAFT.value,
        created_by: str = "user-1",
        form_data: dict = None,
        version: int = 1,
    ) -> ApplicationDB:
        history = [StatusHistoryEntry(status=ApplicationStatus.DRAFT, changed_by=created_by, comments="Application created")]
        if status != ApplicationStatus.DRAFT.value:
            history.append(StatusHistoryEntry(status=status, changed_by=created_by))
        return ApplicationDB(
            id=application_id,
            reference="LC-2024-12345",
            type="sight",
            amount=50000,
            currency="usd",
            expiry_date=datetime.datetime(2030, 1, 1, tzinfo=datetime.timezone.utc),
            applicant="company-1",
            created_by=created_by,
            status=status,
            status_history=history,
            form_data=FormData(**(form_data or {})),
            version=version,
        )
    return _factory


@pytest.fixture
def company_factory():
    def _factory(company_id: str = "company-1", created_by: str = "user-1") -> CompanyDB:
        return CompanyDB(
            id=company_id,
            name="Acme Trading",
            registration_number="REG-001",
            tax_id="TAX-001",
            address={"street": "1 Harbour Rd", "city": "Rotterdam", "country": "NL"},
            created_by=created_by,
        )
    return _factory
