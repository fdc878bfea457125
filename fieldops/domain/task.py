"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from fieldops.domain.money import Money


class TaskStatus(StrEnum):
    """Task lifecycle state."""

    PREPARING = "PREPARING"
    READY = "READY"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ON_HOLD = "ON_HOLD"


class Customer(BaseModel):
    """Customer a task is performed for."""

    id: int
    name: str
    phone: str


class GeoLocation(BaseModel):
    """Site where a task is performed."""

    id: int
    name: str | None = None
    address: str | None = None
    lat: float
    lng: float


class Task(BaseModel):
    """Task data transfer object."""

    id: int = Field(..., description="Monotonically increasing task ID")
    title: str = Field(..., description="Task title")
    description: str | None = Field(default=None, description="Detailed task description")
    status: TaskStatus = Field(default=TaskStatus.PREPARING, description="Current lifecycle state")
    assignee_ids: list[str] = Field(default_factory=list, description="External IDs of assigned workers")
    completed_assignee_ids: list[str] | None = Field(
        default=None, description="Assignees at the moment the task was completed"
    )
    customer_id: int | None = None
    customer: Customer | None = None
    geo_location_id: int | None = None
    geo_location: GeoLocation | None = None
    expected_revenue: Money | None = Field(default=None, description="Revenue the task is expected to bring in")
    expected_currency: str = Field(default="VND", description="Currency of the expected revenue")
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    created_by: str | None = None
    searchable_text: str = Field(default="", exclude=True, description="Normalized text used for search")

    @classmethod
    def from_record(
        cls,
        record: dict[str, Any],
        *,
        customer: dict[str, Any] | None = None,
        geo_location: dict[str, Any] | None = None,
    ) -> "Task":
        """Build a Task from a `tasks` row and optional joined rows."""
        data = {key: value for key, value in record.items() if key not in {"deleted_at", "deleted_by"}}
        if customer is not None:
            data["customer"] = Customer.model_validate(customer)
        if geo_location is not None:
            data["geo_location"] = GeoLocation.model_validate(geo_location)
        return cls.model_validate(data)


class TaskSortField(StrEnum):
    CREATED_AT = "created_at"
    UPDATED_AT = "updated_at"
    SCHEDULED_AT = "scheduled_at"
    COMPLETED_AT = "completed_at"
    ID = "id"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class TaskSearchOptions(BaseModel):
    """Filters, free-text search and pagination for listing tasks."""

    search: str | None = Field(default=None, description="Accent-insensitive substring query")
    status: list[TaskStatus] | None = None
    assignee_ids: list[str] | None = Field(default=None, description="Match tasks assigned to any of these users")
    assigned_only: bool = Field(default=False, description="Only tasks assigned to the caller")
    customer_id: int | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    scheduled_from: datetime | None = None
    scheduled_to: datetime | None = None
    completed_from: datetime | None = None
    completed_to: datetime | None = None
    sort_by: TaskSortField = TaskSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    cursor: int | None = Field(default=None, description="ID of the last task on the previous page")
    take: int = Field(default=20, ge=1, le=100)


class TaskPage(BaseModel):
    """One page of a task search."""

    tasks: list[Task]
    next_cursor: int | None = Field(default=None, description="Pass as `cursor` to fetch the next page")
    has_next_page: bool = False
