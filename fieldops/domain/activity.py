"""Activity (audit log) domain models."""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ActivityAction(StrEnum):
    """What an activity record describes."""

    TASK_CREATED = "TASK_CREATED"
    TASK_UPDATED = "TASK_UPDATED"
    TASK_STATUS_UPDATED = "TASK_STATUS_UPDATED"
    TASK_ASSIGNEES_UPDATED = "TASK_ASSIGNEES_UPDATED"
    TASK_COMMENTED = "TASK_COMMENTED"
    TASK_CHECKED_IN = "TASK_CHECKED_IN"
    TASK_CHECKED_OUT = "TASK_CHECKED_OUT"
    TASK_ATTACHMENTS_UPLOADED = "TASK_ATTACHMENTS_UPLOADED"
    TASK_EXPECTED_REVENUE_UPDATED = "TASK_EXPECTED_REVENUE_UPDATED"
    TASK_DELETED = "TASK_DELETED"
    PAYMENT_COLLECTED = "PAYMENT_COLLECTED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    ACCOUNT_DELETION_INITIATED = "ACCOUNT_DELETION_INITIATED"
    ACCOUNT_DELETION_COMPLETED = "ACCOUNT_DELETION_COMPLETED"
    ACCOUNT_DELETION_ALREADY_DELETED = "ACCOUNT_DELETION_ALREADY_DELETED"
    ACCOUNT_DELETION_FAILED = "ACCOUNT_DELETION_FAILED"


class Activity(BaseModel):
    """Immutable activity record."""

    id: int
    created_at: datetime
    topic: str = Field(..., description="Entity the activity concerns, e.g. TASK_123 or GENERAL")
    user_id: str = Field(..., description="Actor who performed the action")
    action: ActivityAction
    payload: dict[str, Any] = Field(default_factory=dict)


class ActivityPage(BaseModel):
    """One page of an activity feed, newest first."""

    activities: list[Activity]
    next_cursor: int | None = None
    has_next_page: bool = False
