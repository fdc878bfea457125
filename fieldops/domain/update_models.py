"""Update models for database operations."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from fieldops.core.config import constants
from fieldops.domain.create_models import CustomerInput, GeoLocationInput
from fieldops.domain.task import TaskStatus
from fieldops.domain.user import UserRole


class TaskUpdate(BaseModel):
    """Partial task update. Only fields present in the payload are applied."""

    title: str | None = Field(
        default=None, min_length=constants.TASK_TITLE_MIN_LENGTH, max_length=constants.TASK_TITLE_MAX_LENGTH
    )
    description: str | None = Field(default=None, max_length=5000)
    customer: CustomerInput | None = None
    geo_location: GeoLocationInput | None = None
    scheduled_at: datetime | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.strip()
        if len(v) < constants.TASK_TITLE_MIN_LENGTH:
            raise ValueError(f"Title must be at least {constants.TASK_TITLE_MIN_LENGTH} characters")
        return v

    @model_validator(mode="after")
    def require_some_field(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        if "title" in self.model_fields_set and self.title is None:
            raise ValueError("Title cannot be removed")
        return self


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskAssigneesUpdate(BaseModel):
    assignee_ids: list[str]

    @field_validator("assignee_ids")
    @classmethod
    def dedupe_assignees(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))


class CustomerUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    phone: str | None = Field(default=None, min_length=1, max_length=20)


class ExpectedRevenueUpdate(BaseModel):
    """Set or clear a task's expected revenue."""

    expected_revenue: Decimal | None = Field(default=None, ge=0, le=constants.MAX_MONEY_AMOUNT)
    expected_currency: str = Field(default="VND", min_length=3, max_length=3)


class PaymentUpdate(BaseModel):
    """Admin correction of a payment. An edit reason is always required."""

    amount: Decimal | None = Field(default=None, gt=0, le=constants.MAX_MONEY_AMOUNT)
    notes: str | None = Field(default=None, max_length=constants.PAYMENT_NOTES_MAX_LENGTH)
    invoice_attachment_id: int | None = None
    edit_reason: str = Field(
        ..., min_length=constants.EDIT_REASON_MIN_LENGTH, max_length=constants.EDIT_REASON_MAX_LENGTH
    )

    @model_validator(mode="after")
    def require_changed_field(self) -> "PaymentUpdate":
        if not self.model_fields_set & {"amount", "notes", "invoice_attachment_id"}:
            raise ValueError("At least one of amount, notes or invoice_attachment_id must be provided")
        return self


class UserRolesUpdate(BaseModel):
    roles: list[UserRole] = Field(..., min_length=1)


class UserBanUpdate(BaseModel):
    banned: bool
