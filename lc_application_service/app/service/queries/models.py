# Pydantic models for Queries
from pydantic import Field, field_validator
from typing import Optional
import datetime

from lc_application_service.app.config import settings
from lc_application_service.app.models import ApplicationStatus, LcType
from lc_application_service.app.models.base import CamelModel

# API field name -> stored field name
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "amount": "amount",
    "expiryDate": "expiry_date",
    "reference": "reference",
    "status": "status",
    "type": "type",
    "priority": "priority",
}


class ListApplicationsQuery(CamelModel):
    status: Optional[ApplicationStatus] = None
    type: Optional[LcType] = None
    start_date: Optional[datetime.datetime] = None
    end_date: Optional[datetime.datetime] = None
    search: Optional[str] = None
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE)
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @field_validator("sort_by")
    @classmethod
    def known_sort_field(cls, value: str) -> str:
        if value not in SORTABLE_FIELDS:
            raise ValueError(f"sortBy must be one of: {', '.join(SORTABLE_FIELDS)}")
        return value

    @field_validator("sort_order")
    @classmethod
    def known_sort_order(cls, value: str) -> str:
        value = value.lower()
        if value not in ("asc", "desc"):
            raise ValueError("sortOrder must be 'asc' or 'desc'")
        return value

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit
