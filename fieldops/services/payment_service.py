"""Payments collected for tasks and expected revenue."""

import logging
from decimal import Decimal
from typing import Any

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.errors import ErrorCode, NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.core.logging import span
from fieldops.domain.activity import ActivityAction
from fieldops.domain.create_models import PaymentCreate
from fieldops.domain.money import serialize_money
from fieldops.domain.payment import Payment, PaymentSummary, TaskPayments
from fieldops.domain.task import Task
from fieldops.domain.update_models import ExpectedRevenueUpdate, PaymentUpdate
from fieldops.domain.user import Actor
from fieldops.services import activity_service, permissions
from fieldops.services.task_lookup import get_task_row, get_viewable_task_row, hydrate_task


logger = logging.getLogger(__name__)

PAYMENT_NOT_FOUND_MESSAGE = "Không tìm thấy thông tin thanh toán"
EDIT_PAYMENT_DENIED_MESSAGE = "Chỉ admin mới có thể chỉnh sửa thanh toán"
SET_REVENUE_DENIED_MESSAGE = "Chỉ admin mới có thể đặt doanh thu dự kiến"


def _money_or_none(value: Decimal | None) -> int | float | None:
    return serialize_money(value) if value is not None else None


async def get_task_payments(*, actor: Actor, task_id: int) -> TaskPayments:
    """List a task's payments, newest first, with collected vs expected totals."""
    with span("payment_service.get_task_payments"):
        row = await get_viewable_task_row(actor=actor, task_id=task_id)
        payment_rows = await db_client.fetch_all(
            "SELECT * FROM payments WHERE task_id = ? ORDER BY collected_at DESC, id DESC",
            (task_id,),
        )
        payments = [Payment.model_validate(payment) for payment in payment_rows]
        expected = Decimal(row["expected_revenue"]) if row["expected_revenue"] is not None else None

        return TaskPayments(
            payments=payments,
            summary=PaymentSummary(
                expected_revenue=expected,
                expected_currency=row["expected_currency"],
                total_collected=sum((payment.amount for payment in payments), Decimal(0)),
                has_payment=bool(payments),
            ),
        )


async def set_expected_revenue(*, actor: Actor, task_id: int, data: ExpectedRevenueUpdate) -> Task:
    """Set or clear the revenue a task is expected to bring in (admin-only)."""
    with span("payment_service.set_expected_revenue"):
        if not permissions.can_manage_payments(actor):
            raise PermissionDeniedError(SET_REVENUE_DENIED_MESSAGE)

        async with db_client.transaction():
            row = await get_task_row(task_id)
            old = Decimal(row["expected_revenue"]) if row["expected_revenue"] is not None else None
            updated = await db_client.update_record(
                collection="tasks",
                record_id=task_id,
                data={"expected_revenue": data.expected_revenue, "expected_currency": data.expected_currency},
            )
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(task_id),
                user_id=actor.id,
                action=ActivityAction.TASK_EXPECTED_REVENUE_UPDATED,
                payload={
                    "oldExpectedRevenue": _money_or_none(old),
                    "newExpectedRevenue": _money_or_none(data.expected_revenue),
                },
            )

        logger.info("Expected revenue set", extra={"task_id": task_id, "user_id": actor.id})
        return await hydrate_task(updated)


async def create_payment(
    *,
    actor: Actor,
    task_id: int,
    data: PaymentCreate,
) -> Payment:
    """Record a collected payment with a PAYMENT_COLLECTED activity.

    Expected to run inside the check-out transaction, which has already
    verified the actor may act on the task.
    """
    record = await db_client.create_record(
        collection="payments",
        data={
            "task_id": task_id,
            "amount": data.amount,
            "currency": data.currency or settings.default_currency,
            "collected_at": db_client.utc_now(),
            "collected_by": actor.id,
            "invoice_attachment_id": data.invoice_attachment_id,
            "notes": data.notes,
        },
    )
    await activity_service.create_activity(
        topic=activity_service.get_activity_topic(task_id),
        user_id=actor.id,
        action=ActivityAction.PAYMENT_COLLECTED,
        payload={
            "paymentId": record["id"],
            "amount": serialize_money(data.amount),
            "currency": record["currency"],
            "hasInvoice": data.invoice_attachment_id is not None,
            "invoiceAttachmentId": data.invoice_attachment_id,
            "notes": data.notes,
        },
    )
    logger.info("Payment collected", extra={"payment_id": record["id"], "task_id": task_id, "user_id": actor.id})
    return Payment.model_validate(record)


async def get_payment_row(payment_id: int) -> dict[str, Any]:
    row = await db_client.fetch_one("SELECT * FROM payments WHERE id = ?", (payment_id,))
    if row is None:
        raise NotFoundError(PAYMENT_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_PAYMENT_NOT_FOUND)
    return row


async def update_payment(*, actor: Actor, payment_id: int, data: PaymentUpdate) -> Payment:
    """Correct a payment (admin-only), logging old and new values with the edit reason.

    Raises:
        PermissionDeniedError: If the actor is not an admin
        NotFoundError: If the payment does not exist
    """
    with span("payment_service.update_payment"):
        if not permissions.can_manage_payments(actor):
            raise PermissionDeniedError(EDIT_PAYMENT_DENIED_MESSAGE)

        async with db_client.transaction():
            original = await get_payment_row(payment_id)
            changes: dict[str, Any] = {}
            audit: dict[str, Any] = {}

            if "amount" in data.model_fields_set and data.amount is not None:
                changes["amount"] = data.amount
                audit["amount"] = {
                    "old": serialize_money(Decimal(original["amount"])),
                    "new": serialize_money(data.amount),
                }
            if "notes" in data.model_fields_set:
                changes["notes"] = data.notes
                audit["notes"] = {"old": original["notes"], "new": data.notes}
            if "invoice_attachment_id" in data.model_fields_set:
                changes["invoice_attachment_id"] = data.invoice_attachment_id
                audit["invoiceAttachmentId"] = {
                    "old": original["invoice_attachment_id"],
                    "new": data.invoice_attachment_id,
                }

            if not changes:
                raise ValidationFailedError(fields={"amount": ["Số tiền không được để trống"]})

            record = await db_client.update_record(collection="payments", record_id=payment_id, data=changes)
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(original["task_id"]),
                user_id=actor.id,
                action=ActivityAction.PAYMENT_UPDATED,
                payload={"paymentId": payment_id, "editReason": data.edit_reason, "changes": audit},
            )

        logger.info("Payment updated", extra={"payment_id": payment_id, "user_id": actor.id})
        return Payment.model_validate(record)
