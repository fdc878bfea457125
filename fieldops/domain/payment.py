"""Payment domain models."""

from datetime import datetime

from pydantic import BaseModel, Field

from fieldops.domain.money import Money


class Payment(BaseModel):
    """Money collected for a task."""

    id: int
    task_id: int
    amount: Money
    currency: str = "VND"
    collected_at: datetime
    collected_by: str = Field(..., description="User who collected the payment")
    invoice_attachment_id: int | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class PaymentSummary(BaseModel):
    """Collected vs expected revenue for a task."""

    expected_revenue: Money | None = None
    expected_currency: str = "VND"
    total_collected: Money
    has_payment: bool


class TaskPayments(BaseModel):
    """All payments for a task plus their summary."""

    payments: list[Payment]
    summary: PaymentSummary
