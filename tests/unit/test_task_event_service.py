"""Unit tests for check-in and check-out."""

from decimal import Decimal

import pytest

from fieldops.core import db_client
from fieldops.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.domain.activity import ActivityAction
from fieldops.domain.create_models import CheckEventInput, PaymentCreate
from fieldops.domain.task import TaskStatus
from fieldops.services import activity_service, task_event_service, task_service
from fieldops.services.task_lookup import NOT_ASSIGNED_MESSAGE
from tests.helpers import SITE_LAT, SITE_LNG, make_file


ON_SITE = CheckEventInput(lat=SITE_LAT, lng=SITE_LNG, notes="Đã đến nơi")
FAR_AWAY = CheckEventInput(lat=SITE_LAT + 0.01, lng=SITE_LNG)


@pytest.fixture
def ready_task(admin, worker, task_factory):
    """A READY task assigned to `worker`."""

    async def _create(**overrides):
        overrides.setdefault("assignee_ids", [worker.id])
        task = await task_factory(**overrides)
        return await task_service.update_task_status(actor=admin, task_id=task.id, status=TaskStatus.READY)

    return _create


@pytest.mark.unit
class TestCheckIn:
    """Tests for check_in."""

    async def test_check_in_starts_task(self, worker, ready_task, storage):
        """Test check-in moves the task to in progress and logs it."""
        task = await ready_task()

        result = await task_event_service.check_in(
            actor=worker, task_id=task.id, data=ON_SITE, files=[make_file()], storage=storage
        )

        assert result.task.status == TaskStatus.IN_PROGRESS
        assert result.task.started_at is not None
        assert result.distance == pytest.approx(0, abs=1)
        assert result.warnings == []
        assert len(result.attachments) == 1
        assert result.attachments[0].url.startswith("/v1/attachments/view/")

        page = await activity_service.list_activities(topic=activity_service.get_activity_topic(task.id))
        event = page.activities[0]
        assert event.action == ActivityAction.TASK_CHECKED_IN
        assert event.user_id == worker.id
        assert event.payload["notes"] == "Đã đến nơi"
        assert event.payload["geoLocation"]["lat"] == SITE_LAT
        assert event.payload["attachments"][0]["id"] == result.attachments[0].id

    async def test_check_in_far_away_warns_but_succeeds(self, worker, ready_task):
        """Test a distant check-in succeeds with a warning."""
        task = await ready_task()

        result = await task_event_service.check_in(actor=worker, task_id=task.id, data=FAR_AWAY)

        assert result.task.status == TaskStatus.IN_PROGRESS
        assert result.distance > 1000
        assert result.warnings == [f"Bạn đang ở cách vị trí công việc {round(result.distance)}m"]

    async def test_check_in_without_task_location(self, worker, ready_task):
        """Test tasks without a location skip the distance check."""
        task = await ready_task(geo_location=None)

        result = await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE)

        assert result.distance is None
        assert result.warnings == []

    async def test_unassigned_actor_rejected(self, admin, ready_task):
        """Test only assignees may check in, admins included."""
        task = await ready_task()

        with pytest.raises(PermissionDeniedError, match=NOT_ASSIGNED_MESSAGE):
            await task_event_service.check_in(actor=admin, task_id=task.id, data=ON_SITE)

    async def test_task_not_ready(self, worker, task_factory):
        """Test check-in needs a ready task."""
        task = await task_factory(assignee_ids=[worker.id])

        with pytest.raises(PermissionDeniedError, match="chưa sẵn sàng"):
            await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE)

    async def test_missing_task(self, worker):
        """Test check-in on an unknown task raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await task_event_service.check_in(actor=worker, task_id=404, data=ON_SITE)

    async def test_failed_transaction_removes_stored_files(self, worker, ready_task, storage, monkeypatch):
        """Test stored files are removed when the check-in fails."""
        task = await ready_task()

        async def failing_create_activity(**kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(activity_service, "create_activity", failing_create_activity)

        with pytest.raises(RuntimeError):
            await task_event_service.check_in(
                actor=worker, task_id=task.id, data=ON_SITE, files=[make_file()], storage=storage
            )

        assert list(storage.root.rglob("*.jpg")) == []
        assert await db_client.fetch_all("SELECT id FROM attachments") == []
        row = await db_client.get_record(collection="tasks", record_id=task.id)
        assert row["status"] == TaskStatus.READY


@pytest.mark.unit
class TestCheckOut:
    """Tests for check_out."""

    async def test_check_out_completes_task(self, worker, ready_task):
        """Test check-out completes the task."""
        task = await ready_task()
        await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE)

        result = await task_event_service.check_out(actor=worker, task_id=task.id, data=ON_SITE)

        assert result.task.status == TaskStatus.COMPLETED
        assert result.task.completed_assignee_ids == [worker.id]
        assert result.payment is None

    async def test_check_out_requires_own_check_in(self, worker, other_worker, ready_task):
        """Test each worker must check in before checking out."""
        task = await ready_task(assignee_ids=[worker.id, other_worker.id])
        await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE)

        with pytest.raises(ValidationFailedError, match="check-in trước"):
            await task_event_service.check_out(actor=other_worker, task_id=task.id, data=ON_SITE)

    async def test_check_out_before_start(self, worker, ready_task):
        """Test check-out is refused before the task starts."""
        task = await ready_task()

        with pytest.raises(PermissionDeniedError, match="chưa bắt đầu"):
            await task_event_service.check_out(actor=worker, task_id=task.id, data=ON_SITE)

    async def test_check_out_with_payment_and_invoice(self, worker, ready_task, storage):
        """Test check-out records the payment and its invoice files."""
        task = await ready_task()
        await task_event_service.check_in(actor=worker, task_id=task.id, data=ON_SITE, storage=storage)

        result = await task_event_service.check_out(
            actor=worker,
            task_id=task.id,
            data=ON_SITE,
            files=[make_file("after.jpg")],
            payment=PaymentCreate(amount=Decimal(450000), notes="Tiền mặt"),
            invoice=make_file("invoice.pdf", "application/pdf", b"%PDF-1.4"),
            storage=storage,
        )

        assert result.payment is not None
        assert result.payment.amount == Decimal(450000)
        assert result.payment.collected_by == worker.id
        assert len(result.attachments) == 1
        invoice = await db_client.get_record(collection="attachments", record_id=result.payment.invoice_attachment_id)
        assert invoice["original_filename"] == "invoice.pdf"

        page = await activity_service.list_activities(topic=activity_service.get_activity_topic(task.id))
        actions = [a.action for a in page.activities]
        assert actions[:2] == [ActivityAction.TASK_CHECKED_OUT, ActivityAction.PAYMENT_COLLECTED]
        assert page.activities[0].payload["paymentCollected"] is True
        assert page.activities[1].payload["hasInvoice"] is True
