import datetime
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING

from lc_application_service.app.models import Role
from lc_application_service.app.service.exceptions import ApplicationNotFoundError, AuthorizationError
from lc_application_service.app.service.queries import application_queries as queries
from lc_application_service.app.service.queries.models import ListApplicationsQuery

QUERIES = "lc_application_service.app.service.queries.application_queries"


@pytest.fixture
def mock_db():
    return MagicMock()


def test_user_role_is_scoped_to_own_applications(user_factory):
    query_filter = queries.build_application_filter(ListApplicationsQuery(), user_factory())
    assert query_filter == {"created_by": "user-1"}


def test_elevated_roles_are_not_scoped(user_factory):
    officer = user_factory(role=Role.COMPLIANCE_OFFICER.value)
    assert queries.build_application_filter(ListApplicationsQuery(), officer) == {}


def test_filter_combines_status_type_dates_and_search(user_factory):
    start = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
    end = datetime.datetime(2024, 6, 30, tzinfo=datetime.timezone.utc)
    query = ListApplicationsQuery(status="submitted", type="usance", startDate=start, endDate=end, search="LC-2024")

    query_filter = queries.build_application_filter(query, user_factory(role="admin"))

    assert query_filter["status"] == "submitted"
    assert query_filter["type"] == "usance"
    assert query_filter["created_at"] == {"$gte": start, "$lte": end}
    assert query_filter["$or"][0] == {"reference": {"$regex": r"LC\-2024", "$options": "i"}}
    assert query_filter["$or"][1]["beneficiary.name"]["$options"] == "i"


def test_search_is_matched_literally(user_factory):
    query_filter = queries.build_application_filter(ListApplicationsQuery(search="a.*("), user_factory(role="admin"))
    assert query_filter["$or"][0]["reference"]["$regex"] == r"a\.\*\("


def test_sort_maps_api_field_to_storage_field():
    assert queries.build_sort(ListApplicationsQuery()) == [("created_at", DESCENDING)]
    assert queries.build_sort(ListApplicationsQuery(sortBy="expiryDate", sortOrder="asc")) == [("expiry_date", ASCENDING)]


def test_unknown_sort_field_is_rejected():
    with pytest.raises(PydanticValidationError):
        ListApplicationsQuery(sortBy="password")


def test_limit_is_bounded():
    with pytest.raises(PydanticValidationError):
        ListApplicationsQuery(limit=0)
    with pytest.raises(PydanticValidationError):
        ListApplicationsQuery(page=0)


@pytest.mark.asyncio
@patch(f"{QUERIES}.user_store.get_users_by_ids", new_callable=AsyncMock)
@patch(f"{QUERIES}.company_store.get_companies_by_ids", new_callable=AsyncMock)
@patch(f"{QUERIES}.application_store.count_applications", new_callable=AsyncMock)
@patch(f"{QUERIES}.application_store.find_applications", new_callable=AsyncMock)
async def test_list_applications_paginates_and_populates(
    mock_find, mock_count, mock_companies, mock_users, mock_db, user_factory, application_factory, company_factory
):
    actor = user_factory()
    mock_find.return_value = [application_factory("app-1"), application_factory("app-2")]
    mock_count.return_value = 12
    mock_companies.return_value = {"company-1": company_factory()}
    mock_users.return_value = {"user-1": actor}

    page = await queries.list_applications(mock_db, ListApplicationsQuery(page=2, limit=5), actor)

    assert page["count"] == 2
    assert page["total"] == 12
    assert page["totalPages"] == 3
    assert page["currentPage"] == 2
    assert page["data"][0]["applicant"] == {"id": "company-1", "name": "Acme Trading", "registrationNumber": "REG-001"}
    assert page["data"][0]["createdBy"] == {
        "id": "user-1", "firstName": "Jane", "lastName": "Doe", "email": "user-1@example.com",
    }
    mock_find.assert_awaited_once_with(mock_db, {"created_by": "user-1"}, [("created_at", DESCENDING)], skip=5, limit=5)


@pytest.mark.asyncio
@patch(f"{QUERIES}.application_store.get_application_by_id", new_callable=AsyncMock)
async def test_get_application_not_found(mock_get, mock_db, user_factory):
    mock_get.return_value = None
    with pytest.raises(ApplicationNotFoundError):
        await queries.get_application_for_actor(mock_db, "missing", user_factory())


@pytest.mark.asyncio
@patch(f"{QUERIES}.application_store.get_application_by_id", new_callable=AsyncMock)
async def test_get_application_of_other_user_is_forbidden(mock_get, mock_db, user_factory, application_factory):
    mock_get.return_value = application_factory(created_by="someone-else")
    with pytest.raises(AuthorizationError, match="Not authorized to access this application"):
        await queries.get_application_for_actor(mock_db, "app-1", user_factory())


@pytest.mark.asyncio
@patch(f"{QUERIES}.user_store.get_users_by_ids", new_callable=AsyncMock)
@patch(f"{QUERIES}.company_store.get_company_by_id", new_callable=AsyncMock)
@patch(f"{QUERIES}.application_store.get_application_by_id", new_callable=AsyncMock)
async def test_get_application_populates_full_applicant(
    mock_get, mock_company, mock_users, mock_db, user_factory, application_factory, company_factory
):
    officer = user_factory(user_id="officer-1", role=Role.BANK_OFFICER.value)
    mock_get.return_value = application_factory()
    mock_company.return_value = company_factory()
    mock_users.return_value = {"user-1": user_factory()}

    record = await queries.get_application_for_actor(mock_db, "app-1", officer)

    assert record["applicant"]["taxId"] == "TAX-001"
    assert record["createdBy"]["id"] == "user-1"
    assert record["assignedTo"] is None


def test_months_ago_clamps_to_month_end():
    now = datetime.datetime(2024, 8, 31, 12, 0, tzinfo=datetime.timezone.utc)
    assert queries.months_ago(now, 6) == datetime.datetime(2024, 2, 29, 12, 0, tzinfo=datetime.timezone.utc)
    assert queries.months_ago(now, 8) == datetime.datetime(2023, 12, 31, 12, 0, tzinfo=datetime.timezone.utc)


@pytest.mark.asyncio
@patch(f"{QUERIES}.application_store.aggregate_applications", new_callable=AsyncMock)
@patch(f"{QUERIES}.application_store.count_applications", new_callable=AsyncMock)
async def test_dashboard_stats_are_scoped_and_aggregated(mock_count, mock_aggregate, mock_db, user_factory):
    mock_count.side_effect = [10, 4, 3, 2]
    by_type = [{"_id": "sight", "count": 7}, {"_id": "usance", "count": 3}]
    monthly = [{"_id": {"year": 2024, "month": 7}, "count": 4}]
    mock_aggregate.side_effect = [by_type, monthly]
    now = datetime.datetime(2024, 8, 15, tzinfo=datetime.timezone.utc)

    stats = await queries.get_dashboard_stats(mock_db, user_factory(), now=now)

    assert stats == {"total": 10, "draft": 4, "submitted": 3, "approved": 2, "byType": by_type, "monthly": monthly}
    assert mock_count.await_args_list[1].args[1] == {"created_by": "user-1", "status": "draft"}
    monthly_pipeline = mock_aggregate.await_args_list[1].args[1]
    assert monthly_pipeline[0]["$match"] == {
        "created_by": "user-1",
        "created_at": {"$gte": datetime.datetime(2024, 2, 15, tzinfo=datetime.timezone.utc)},
    }
    assert monthly_pipeline[-1] == {"$sort": {"_id.year": 1, "_id.month": 1}}
