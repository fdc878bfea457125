"""Unit tests for payment_service."""

from decimal import Decimal

import pytest

from fieldops.core.errors import NotFoundError, PermissionDeniedError
from fieldops.domain.activity import ActivityAction
from fieldops.domain.create_models import CheckEventInput, PaymentCreate
from fieldops.domain.task import TaskStatus
from fieldops.domain.update_models import ExpectedRevenueUpdate, PaymentUpdate
from fieldops.services import activity_service, payment_service, task_event_service, task_service
from tests.helpers import SITE_LAT, SITE_LNG


ON_SITE = CheckEventInput(lat=SITE_LAT, lng=SITE_LNG)


@pytest.fixture
def completed_with_payment(admin, worker, task_factory):
    async def _create(amount: Decimal = Decimal(200000)):
        task = await task_factory(assignee_ids=[worker.id])
        await task_service.update_task_status(actor=admin, task_id=task.id, status=TaskStatus.READY)
        await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE)
        result = await task_event_service.check_out(
            actor=worker, task_id=task.id, data=ON_SITE, payment=PaymentCreate(amount=amount)
        )
        return task, result.payment

    return _create


@pytest.mark.unit
class TestExpectedRevenue:
    """Tests for set_expected_revenue."""

    async def test_admin_sets_revenue(self, admin, task_factory):
        """Test an admin sets expected revenue and the change is logged."""
        task = await task_factory()

        updated = await payment_service.set_expected_revenue(
            actor=admin, task_id=task.id, data=ExpectedRevenueUpdate(expected_revenue=Decimal(750000))
        )

        assert updated.expected_revenue == Decimal(750000)
        page = await activity_service.list_activities(topic=activity_service.get_activity_topic(task.id))
        assert page.activities[0].action == ActivityAction.TASK_EXPECTED_REVENUE_UPDATED
        assert page.activities[0].payload == {"oldExpectedRevenue": 500000, "newExpectedRevenue": 750000}

    async def test_admin_clears_revenue(self, admin, task_factory):
        """Test an admin can clear expected revenue."""
        task = await task_factory()
        updated = await payment_service.set_expected_revenue(
            actor=admin, task_id=task.id, data=ExpectedRevenueUpdate(expected_revenue=None)
        )
        assert updated.expected_revenue is None

    async def test_worker_cannot_set_revenue(self, worker, task_factory):
        """Test workers cannot change expected revenue."""
        task = await task_factory(assignee_ids=[worker.id])
        with pytest.raises(PermissionDeniedError):
            await payment_service.set_expected_revenue(
                actor=worker, task_id=task.id, data=ExpectedRevenueUpdate(expected_revenue=Decimal(1))
            )


@pytest.mark.unit
class TestTaskPayments:
    """Tests for get_task_payments and update_payment."""

    async def test_summary(self, worker, completed_with_payment):
        """Test the payments summary totals collected money against the expected revenue."""
        task, payment = await completed_with_payment()

        result = await payment_service.get_task_payments(actor=worker, task_id=task.id)

        assert [p.id for p in result.payments] == [payment.id]
        assert result.summary.total_collected == Decimal(200000)
        assert result.summary.expected_revenue == Decimal(500000)
        assert result.summary.has_payment is True

    async def test_no_payments(self, admin, task_factory):
        """Test a task without payments reports zero collected."""
        task = await task_factory(expected_revenue=None)

        result = await payment_service.get_task_payments(actor=admin, task_id=task.id)

        assert result.payments == []
        assert result.summary.total_collected == 0
        assert result.summary.expected_revenue is None
        assert result.summary.has_payment is False

    async def test_unassigned_worker_cannot_view(self, other_worker, completed_with_payment):
        """Test workers cannot read payments of tasks they are not on."""
        task, _ = await completed_with_payment()
        with pytest.raises(PermissionDeniedError):
            await payment_service.get_task_payments(actor=other_worker, task_id=task.id)

    async def test_admin_corrects_amount(self, admin, completed_with_payment):
        """Test an admin corrects a payment amount with a reason."""
        task, payment = await completed_with_payment()

        updated = await payment_service.update_payment(
            actor=admin,
            payment_id=payment.id,
            data=PaymentUpdate(amount=Decimal(250000), edit_reason="Khách trả thêm phụ phí"),
        )

        assert updated.amount == Decimal(250000)
        page = await activity_service.list_activities(topic=activity_service.get_activity_topic(task.id))
        audit = page.activities[0]
        assert audit.action == ActivityAction.PAYMENT_UPDATED
        assert audit.payload["editReason"] == "Khách trả thêm phụ phí"
        assert audit.payload["changes"] == {"amount": {"old": 200000, "new": 250000}}

    async def test_worker_cannot_correct(self, worker, completed_with_payment):
        """Test workers cannot correct payments."""
        _, payment = await completed_with_payment()
        with pytest.raises(PermissionDeniedError):
            await payment_service.update_payment(
                actor=worker, payment_id=payment.id, data=PaymentUpdate(notes="x", edit_reason="Sửa ghi chú sai")
            )

    async def test_missing_payment(self, admin):
        """Test correcting an unknown payment raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await payment_service.update_payment(
                actor=admin, payment_id=99, data=PaymentUpdate(notes="x", edit_reason="Sửa ghi chú sai")
            )

    def test_edit_reason_required(self):
        """Test corrections require an edit reason."""
        with pytest.raises(ValueError, match="edit_reason"):
            PaymentUpdate(amount=Decimal(1), edit_reason="ngắn")

    def test_some_change_required(self):
        """Test a correction must change something."""
        with pytest.raises(ValueError, match="At least one of"):
            PaymentUpdate(edit_reason="Không có gì thay đổi")
