import pytest

from lc_application_service.app.models import FormData, Role
from lc_application_service.app.models.application_db import form_section_for_step
from lc_application_service.app.service.authorization import ensure_can_access, is_elevated
from lc_application_service.app.service.commands.models import ApplicationChanges, CreateApplicationCommand
from lc_application_service.app.service.exceptions import AuthorizationError
from lc_application_service.app.service.reference import REFERENCE_PATTERN, generate_reference


def test_application_currency_is_uppercased(application_factory):
    assert application_factory().currency == "USD"


def test_api_serialization_is_camel_case(application_factory):
    record = application_factory().to_api()
    assert record["createdBy"] == "user-1"
    assert record["currentStep"] == "company_info"
    assert record["statusHistory"][0]["changedBy"] == "user-1"
    assert "created_by" not in record


def test_generated_reference_format():
    assert REFERENCE_PATTERN.match(generate_reference())


def test_form_section_for_step():
    assert form_section_for_step("lc_details") == "lc"
    assert form_section_for_step("company_info") == "company"
    assert form_section_for_step("compliance") == "compliance"


def test_form_data_missing_sections_uses_presence():
    form_data = FormData(company={"name": "Acme"}, lc={}, parties={"a": 1})
    assert form_data.missing_sections() == ["lc", "shipping", "compliance"]


def test_form_data_merge_replaces_whole_sections_only():
    current = FormData(company={"name": "Acme", "city": "Oslo"}, lc={"amount": 1})
    merged = current.merged_with(FormData(company={"name": "Acme 2"}))
    assert merged.company == {"name": "Acme 2"}
    assert merged.lc == {"amount": 1}


def test_create_command_defaults():
    command = CreateApplicationCommand(type="standby", amount=10, currency="eur", expiryDate="2030-01-01T00:00:00Z")
    assert command.currency == "EUR"
    assert command.tenor == 90
    assert command.presentation_period == 21


def test_create_command_rejects_negative_amount():
    with pytest.raises(ValueError):
        CreateApplicationCommand(type="sight", amount=-1, expiryDate="2030-01-01T00:00:00Z")


def test_field_changes_only_include_sent_fields():
    changes = ApplicationChanges(status="approved", goodsDescription="Rice", amount=None, assignedTo=None)
    assert changes.field_changes() == {"goods_description": "Rice", "assigned_to": None}


def test_owner_and_elevated_roles_can_access(application_factory, user_factory):
    application = application_factory()
    ensure_can_access(application, user_factory())
    ensure_can_access(application, user_factory(user_id="admin-1", role=Role.ADMIN.value))
    assert is_elevated(user_factory(role=Role.BANK_OFFICER.value))


def test_other_plain_user_cannot_access(application_factory, user_factory):
    with pytest.raises(AuthorizationError, match="Not authorized to delete this application"):
        ensure_can_access(application_factory(), user_factory(user_id="user-2"), "delete")
