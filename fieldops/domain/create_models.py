"""Pydantic models for creating records."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from fieldops.core.config import constants


class CustomerInput(BaseModel):
    """Customer details; matched to an existing customer by (name, phone)."""

    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., min_length=1, max_length=20)

    @field_validator("name", "phone")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Value cannot be blank")
        return v


class GeoLocationInput(BaseModel):
    """Site coordinates plus optional label."""

    name: str | None = Field(default=None, max_length=200)
    address: str | None = Field(default=None, max_length=500)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class TaskCreate(BaseModel):
    """Payload for creating a task."""

    title: str = Field(..., min_length=constants.TASK_TITLE_MIN_LENGTH, max_length=constants.TASK_TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=5000)
    customer: CustomerInput | None = None
    geo_location: GeoLocationInput | None = None
    assignee_ids: list[str] = Field(default_factory=list, description="External IDs of assigned workers")
    scheduled_at: datetime | None = None
    expected_revenue: Decimal | None = Field(default=None, ge=0, le=constants.MAX_MONEY_AMOUNT)
    expected_currency: str = Field(default="VND", min_length=3, max_length=3)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if len(v) < constants.TASK_TITLE_MIN_LENGTH:
            raise ValueError(f"Title must be at least {constants.TASK_TITLE_MIN_LENGTH} characters")
        return v

    @field_validator("assignee_ids")
    @classmethod
    def dedupe_assignees(cls, v: list[str]) -> list[str]:
        """Keep first occurrence order, drop duplicates."""
        return list(dict.fromkeys(v))


class CommentCreate(BaseModel):
    """Comment text posted to a task's activity feed."""

    comment: str = Field(..., min_length=1, max_length=constants.COMMENT_MAX_LENGTH)

    @field_validator("comment")
    @classmethod
    def strip_comment(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment cannot be blank")
        return v


class CheckEventInput(BaseModel):
    """Location and notes reported with a check-in or check-out."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    notes: str | None = Field(default=None, max_length=constants.EVENT_NOTES_MAX_LENGTH)


class PaymentCreate(BaseModel):
    """Payment collected during check-out."""

    amount: Decimal = Field(..., gt=0, le=constants.MAX_MONEY_AMOUNT)
    currency: str = Field(default="VND", min_length=3, max_length=3)
    notes: str | None = Field(default=None, max_length=constants.PAYMENT_NOTES_MAX_LENGTH)
    invoice_attachment_id: int | None = None


class UserCreate(BaseModel):
    """Mirror an identity-provider user into the local directory."""

    id: str = Field(..., min_length=1, description="External user ID")
    name: str = Field(..., min_length=1, max_length=100)
    email: str | None = None
    phone: str | None = None
