"""On-site check-in and check-out for assigned workers."""

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.errors import PermissionDeniedError, ValidationFailedError
from fieldops.core.geo import verify_location
from fieldops.core.logging import span
from fieldops.core.storage import StorageProvider, get_storage_provider
from fieldops.domain.activity import ActivityAction
from fieldops.domain.attachment import Attachment, UploadedFile
from fieldops.domain.create_models import CheckEventInput, PaymentCreate
from fieldops.domain.payment import Payment
from fieldops.domain.task import Task, TaskStatus
from fieldops.domain.user import Actor
from fieldops.services import activity_service, attachment_service, payment_service, permissions, task_state_machine
from fieldops.services.task_lookup import NOT_ASSIGNED_MESSAGE, get_task_row, hydrate_task


logger = logging.getLogger(__name__)


class TaskEventType(StrEnum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


@dataclass(frozen=True)
class TaskEventConfig:
    """What distinguishes a check-in from a check-out."""

    type: TaskEventType
    required_status: TaskStatus
    target_status: TaskStatus
    action: ActivityAction
    invalid_status_message: str


CHECK_IN = TaskEventConfig(
    type=TaskEventType.CHECK_IN,
    required_status=TaskStatus.READY,
    target_status=TaskStatus.IN_PROGRESS,
    action=ActivityAction.TASK_CHECKED_IN,
    invalid_status_message="Công việc chưa sẵn sàng để check-in",
)

CHECK_OUT = TaskEventConfig(
    type=TaskEventType.CHECK_OUT,
    required_status=TaskStatus.IN_PROGRESS,
    target_status=TaskStatus.COMPLETED,
    action=ActivityAction.TASK_CHECKED_OUT,
    invalid_status_message="Công việc chưa bắt đầu hoặc đã hoàn thành",
)

REQUIRES_CHECK_IN_MESSAGE = "Bạn phải check-in trước khi check-out"


@dataclass
class TaskEventResult:
    """Outcome of a check-in or check-out."""

    type: TaskEventType
    task: Task
    distance: float | None
    attachments: list[Attachment] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    payment: Payment | None = None


async def _has_checked_in(task_id: int, user_id: str) -> bool:
    row = await db_client.fetch_one(
        "SELECT id FROM activities WHERE topic = ? AND action = ? AND user_id = ? LIMIT 1",
        (activity_service.get_activity_topic(task_id), ActivityAction.TASK_CHECKED_IN, user_id),
    )
    return row is not None


def _check_preconditions(actor: Actor, row: dict[str, Any], config: TaskEventConfig) -> None:
    if not permissions.can_check_in_out(actor, row["assignee_ids"]):
        raise PermissionDeniedError(NOT_ASSIGNED_MESSAGE)
    if row["status"] != config.required_status:
        raise PermissionDeniedError(config.invalid_status_message)


async def record_task_event(
    *,
    actor: Actor,
    task_id: int,
    data: CheckEventInput,
    config: TaskEventConfig,
    files: list[UploadedFile] | None = None,
    payment: PaymentCreate | None = None,
    invoice: UploadedFile | None = None,
    storage: StorageProvider | None = None,
) -> TaskEventResult:
    """Record a check-in or check-out.

    Steps:
    1. Verify the task exists, the actor is assigned and the status fits
    2. For check-out, require an earlier check-in by the same actor
    3. Compare the reported position with the task site (warning only)
    4. Store photos and invoice before touching the database
    5. In one transaction: event location, attachments, optional payment,
       the activity and the status change
    6. If the transaction fails, delete the stored files

    Raises:
        NotFoundError: If the task does not exist
        PermissionDeniedError: If the actor is not assigned or the status is wrong
        ValidationFailedError: If a check-out has no prior check-in, or files break limits
    """
    with span(f"task_event_service.{config.type.lower()}"):
        row = await get_task_row(task_id)
        _check_preconditions(actor, row, config)

        if config.type == TaskEventType.CHECK_OUT and not await _has_checked_in(task_id, actor.id):
            raise ValidationFailedError(REQUIRES_CHECK_IN_MESSAGE)

        distance: float | None = None
        warnings: list[str] = []
        if row["geo_location_id"] is not None:
            site = await db_client.get_record(collection="geo_locations", record_id=row["geo_location_id"])
            check = verify_location(
                site["lat"], site["lng"], data.lat, data.lng, threshold_meters=settings.location_threshold_meters
            )
            distance = check.distance
            warnings = check.warnings
            logger.info(
                "GPS verification completed",
                extra={"task_id": task_id, "distance": distance, "within_range": check.within_range},
            )

        files = files or []
        uploads = [*files, invoice] if invoice is not None and payment is not None else list(files)
        storage = storage or get_storage_provider()
        stored: list[attachment_service.StoredFile] = []
        if uploads:
            attachment_service.validate_files(uploads)
            stored = await attachment_service.store_files(task_id=task_id, files=uploads, storage=storage)

        try:
            async with db_client.transaction():
                # Re-check inside the transaction; a concurrent event may have moved the task
                current = await get_task_row(task_id)
                _check_preconditions(actor, current, config)

                event_location = await db_client.create_record(
                    collection="geo_locations",
                    data={"lat": data.lat, "lng": data.lng},
                )
                records = await attachment_service.link_attachments(
                    task_id=task_id, actor=actor, stored=stored, storage=storage
                )
                photo_records = records[: len(files)]

                created_payment = None
                if config.type == TaskEventType.CHECK_OUT and payment is not None:
                    if invoice is not None:
                        payment = payment.model_copy(update={"invoice_attachment_id": records[-1]["id"]})
                    created_payment = await payment_service.create_payment(
                        actor=actor, task_id=task_id, data=payment
                    )

                await activity_service.create_activity(
                    topic=activity_service.get_activity_topic(task_id),
                    user_id=actor.id,
                    action=config.action,
                    payload={
                        "type": config.type,
                        "geoLocation": {"id": event_location["id"], "lat": data.lat, "lng": data.lng},
                        "distanceFromTask": distance,
                        "attachments": [
                            {
                                "id": record["id"],
                                "mimeType": record["mime_type"],
                                "originalFilename": record["original_filename"],
                            }
                            for record in photo_records
                        ],
                        "notes": data.notes,
                        "warnings": warnings or None,
                        "paymentCollected": created_payment is not None,
                    },
                )

                changes = task_state_machine.transition_side_effects(
                    config.target_status, current["assignee_ids"], db_client.utc_now()
                )
                updated = await db_client.update_record(collection="tasks", record_id=task_id, data=changes)
        except Exception:
            if stored:
                logger.warning("Task event failed, removing stored files", extra={"task_id": task_id})
                await attachment_service.discard_files(stored, storage=storage)
            raise

        logger.info(
            "Task event recorded",
            extra={"task_id": task_id, "type": str(config.type), "user_id": actor.id, "status": updated["status"]},
        )
        return TaskEventResult(
            type=config.type,
            task=await hydrate_task(updated),
            distance=distance,
            attachments=[await attachment_service.to_attachment(record, storage=storage) for record in photo_records],
            warnings=warnings,
            payment=created_payment,
        )


async def check_in(
    *,
    actor: Actor,
    task_id: int,
    data: CheckEventInput,
    files: list[UploadedFile] | None = None,
    storage: StorageProvider | None = None,
) -> TaskEventResult:
    """Check in to a READY task, moving it to IN_PROGRESS."""
    return await record_task_event(
        actor=actor, task_id=task_id, data=data, config=CHECK_IN, files=files, storage=storage
    )


async def check_out(
    *,
    actor: Actor,
    task_id: int,
    data: CheckEventInput,
    files: list[UploadedFile] | None = None,
    payment: PaymentCreate | None = None,
    invoice: UploadedFile | None = None,
    storage: StorageProvider | None = None,
) -> TaskEventResult:
    """Check out of an IN_PROGRESS task, completing it and optionally recording a payment."""
    return await record_task_event(
        actor=actor,
        task_id=task_id,
        data=data,
        config=CHECK_OUT,
        files=files,
        payment=payment,
        invoice=invoice,
        storage=storage,
    )
