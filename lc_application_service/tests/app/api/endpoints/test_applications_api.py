import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from lc_application_service.app.main import app
from lc_application_service.app.dependencies.auth import get_current_user
from lc_application_service.app.dependencies.services import get_event_publisher, get_notification_sink
from lc_application_service.app.service.exceptions import (
    ApplicationNotFoundError,
    ConcurrencyConflictError,
    IncompleteApplicationError,
    InvalidTransitionError,
    ValidationError,
)
from lc_application_service.infrastructure.database.connection import get_db

HANDLERS = "lc_application_service.app.service.commands.handlers"
QUERIES = "lc_application_service.app.service.queries.application_queries"


@pytest.fixture
def mock_db():
    return MagicMock()


@pytest.fixture
def actor(user_factory):
    return user_factory()


@pytest.fixture
def client(mock_db, actor):
    app.dependency_overrides[get_db] = lambda: mock_db
    app.dependency_overrides[get_current_user] = lambda: actor
    app.dependency_overrides[get_notification_sink] = lambda: AsyncMock()
    app.dependency_overrides[get_event_publisher] = lambda: AsyncMock()
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- POST /applications ---

@patch(f"{HANDLERS}.handle_create_application", new_callable=AsyncMock)
def test_create_application(mock_create, client, actor, application_factory):
    mock_create.return_value = application_factory()

    response = client.post(
        "/api/applications",
        json={"type": "sight", "amount": 50000, "currency": "usd", "expiryDate": "2030-01-01T00:00:00Z"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["reference"] == "LC-2024-12345"
    assert body["data"]["status"] == "draft"
    command = mock_create.await_args.args[1]
    assert command.currency == "USD"
    assert mock_create.await_args.args[2] is actor


@patch(f"{HANDLERS}.handle_create_application", new_callable=AsyncMock)
def test_create_application_without_company(mock_create, client):
    mock_create.side_effect = ValidationError("Please complete company registration first")

    response = client.post(
        "/api/applications", json={"type": "sight", "amount": 1, "expiryDate": "2030-01-01T00:00:00Z"}
    )

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Please complete company registration first"}


@patch(f"{HANDLERS}.handle_create_application", new_callable=AsyncMock)
def test_create_application_invalid_body(mock_create, client):
    response = client.post("/api/applications", json={"type": "sight"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert {error["field"] for error in body["error"]} >= {"amount", "expiryDate"}
    mock_create.assert_not_awaited()


# --- GET /applications ---

@patch(f"{QUERIES}.list_applications", new_callable=AsyncMock)
def test_list_applications(mock_list, client):
    mock_list.return_value = {"count": 0, "total": 0, "totalPages": 0, "currentPage": 2, "data": []}

    response = client.get("/api/applications", params={"status": "draft", "page": 2, "sortBy": "amount", "sortOrder": "asc"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "count": 0, "total": 0, "totalPages": 0, "currentPage": 2, "data": []}
    query = mock_list.await_args.args[1]
    assert query.status == "draft"
    assert query.page == 2
    assert query.sort_by == "amount"
    assert query.sort_order == "asc"


@patch(f"{QUERIES}.list_applications", new_callable=AsyncMock)
def test_list_applications_rejects_unknown_sort(mock_list, client):
    response = client.get("/api/applications", params={"sortBy": "password"})

    assert response.status_code == 400
    assert "sortBy must be one of" in response.json()["error"]
    mock_list.assert_not_awaited()


@patch(f"{QUERIES}.get_dashboard_stats", new_callable=AsyncMock)
def test_dashboard_stats(mock_stats, client):
    mock_stats.return_value = {"total": 1, "draft": 1, "submitted": 0, "approved": 0, "byType": [], "monthly": []}

    response = client.get("/api/applications/stats/dashboard")

    assert response.status_code == 200
    assert response.json()["data"]["total"] == 1


@patch(f"{QUERIES}.list_applications", new_callable=AsyncMock)
def test_pending_queue_is_restricted(mock_list, client):
    response = client.get("/api/applications/admin/pending")

    assert response.status_code == 403
    mock_list.assert_not_awaited()


@patch(f"{QUERIES}.list_applications", new_callable=AsyncMock)
def test_pending_queue_for_compliance_officer(mock_list, client, user_factory):
    app.dependency_overrides[get_current_user] = lambda: user_factory(user_id="officer-1", role="compliance_officer")
    mock_list.return_value = {"count": 0, "total": 0, "totalPages": 0, "currentPage": 1, "data": []}

    response = client.get("/api/applications/admin/pending")

    assert response.status_code == 200


# --- GET /applications/{id} ---

@patch(f"{QUERIES}.get_application_for_actor", new_callable=AsyncMock)
def test_get_application_not_found(mock_get, client):
    mock_get.side_effect = ApplicationNotFoundError("missing")

    response = client.get("/api/applications/missing")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Application not found"}


# --- PUT /applications/{id} ---

@patch(f"{QUERIES}.get_application_with_applicant", new_callable=AsyncMock)
@patch(f"{HANDLERS}.handle_update_application", new_callable=AsyncMock)
def test_update_application(mock_update, mock_serialize, client, application_factory):
    updated = application_factory(status="submitted", version=2)
    mock_update.return_value = updated
    mock_serialize.return_value = {"id": "app-1", "status": "submitted"}

    response = client.put("/api/applications/app-1", json={"status": "submitted", "statusComments": "Go"})

    assert response.status_code == 200
    assert response.json()["data"] == {"id": "app-1", "status": "submitted"}
    command = mock_update.await_args.args[1]
    assert command.application_id == "app-1"
    assert command.changes.status == "submitted"
    assert command.changes.status_comments == "Go"


@patch(f"{HANDLERS}.handle_update_application", new_callable=AsyncMock)
def test_update_application_revert_to_draft(mock_update, client):
    mock_update.side_effect = InvalidTransitionError(
        "app-1", "submitted", "revert to draft", message="Cannot revert to draft once submitted"
    )

    response = client.put("/api/applications/app-1", json={"status": "draft"})

    assert response.status_code == 400
    assert response.json()["error"] == "Cannot revert to draft once submitted"


@patch(f"{HANDLERS}.handle_update_application", new_callable=AsyncMock)
def test_update_application_conflict(mock_update, client):
    mock_update.side_effect = ConcurrencyConflictError("app-1", 1, 2)

    response = client.put("/api/applications/app-1", json={"expectedVersion": 1, "amount": 10})

    assert response.status_code == 409
    assert response.json()["success"] is False


# --- DELETE /applications/{id} ---

@patch(f"{HANDLERS}.handle_delete_application", new_callable=AsyncMock)
def test_delete_application(mock_delete, client):
    mock_delete.return_value = "app-1"

    response = client.delete("/api/applications/app-1")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Application deleted successfully"}


@patch(f"{HANDLERS}.handle_delete_application", new_callable=AsyncMock)
def test_delete_application_not_allowed_for_officers(mock_delete, client, user_factory):
    app.dependency_overrides[get_current_user] = lambda: user_factory(user_id="officer-1", role="compliance_officer")

    response = client.delete("/api/applications/app-1")

    assert response.status_code == 403
    mock_delete.assert_not_awaited()


# --- PUT /applications/{id}/step ---

@patch(f"{HANDLERS}.handle_update_application_step", new_callable=AsyncMock)
def test_update_step(mock_step, client, application_factory):
    mock_step.return_value = application_factory()

    response = client.put("/api/applications/app-1/step", json={"step": "lc_details", "formData": {"amount": 5}})

    assert response.status_code == 200
    command = mock_step.await_args.args[1]
    assert command.step == "lc_details"
    assert command.form_data == {"amount": 5}


def test_update_step_rejects_unknown_step(client):
    response = client.put("/api/applications/app-1/step", json={"step": "payment"})
    assert response.status_code == 400


# --- POST /applications/{id}/submit ---

@patch(f"{HANDLERS}.handle_submit_application", new_callable=AsyncMock)
def test_submit_application(mock_submit, client, application_factory):
    mock_submit.return_value = application_factory(status="submitted")

    response = client.post("/api/applications/app-1/submit")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Application submitted successfully"
    assert body["data"]["status"] == "submitted"


@patch(f"{HANDLERS}.handle_submit_application", new_callable=AsyncMock)
def test_submit_incomplete_application(mock_submit, client):
    mock_submit.side_effect = IncompleteApplicationError("app-1", ["shipping"])

    response = client.post("/api/applications/app-1/submit")

    assert response.status_code == 400
    assert response.json()["error"].startswith("Please complete all required forms before submission")
