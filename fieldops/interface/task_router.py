"""Task endpoints: CRUD, search, status, comments, check-in/out and payments."""

import logging
from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import BaseModel, ConfigDict

from fieldops.core.errors import ValidationFailedError
from fieldops.domain.activity import Activity
from fieldops.domain.attachment import Attachment
from fieldops.domain.create_models import CheckEventInput, CommentCreate, PaymentCreate, TaskCreate
from fieldops.domain.payment import Payment, TaskPayments
from fieldops.domain.task import Customer, SortOrder, Task, TaskPage, TaskSearchOptions, TaskSortField, TaskStatus
from fieldops.domain.update_models import (
    CustomerUpdate,
    ExpectedRevenueUpdate,
    TaskAssigneesUpdate,
    TaskStatusUpdate,
    TaskUpdate,
)
from fieldops.domain.user import Actor
from fieldops.interface.auth import get_current_actor
from fieldops.interface.uploads import read_upload, read_uploads
from fieldops.services import attachment_service, payment_service, task_event_service, task_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["tasks"])


class TaskEventResponse(BaseModel):
    """Result of a check-in or check-out."""

    model_config = ConfigDict(from_attributes=True)

    type: task_event_service.TaskEventType
    task: Task
    distance: float | None = None
    attachments: list[Attachment]
    warnings: list[str]
    payment: Payment | None = None


def search_options(
    search: str | None = Query(default=None),
    status_filter: list[TaskStatus] | None = Query(default=None, alias="status"),
    assignee_ids: list[str] | None = Query(default=None),
    assigned_only: bool = Query(default=False),
    customer_id: int | None = Query(default=None),
    created_from: datetime | None = Query(default=None),
    created_to: datetime | None = Query(default=None),
    scheduled_from: datetime | None = Query(default=None),
    scheduled_to: datetime | None = Query(default=None),
    completed_from: datetime | None = Query(default=None),
    completed_to: datetime | None = Query(default=None),
    sort_by: TaskSortField = Query(default=TaskSortField.CREATED_AT),
    sort_order: SortOrder = Query(default=SortOrder.DESC),
    cursor: int | None = Query(default=None),
    take: int = Query(default=20, ge=1, le=100),
) -> TaskSearchOptions:
    """Collect list query parameters into TaskSearchOptions."""
    return TaskSearchOptions(
        search=search,
        status=status_filter,
        assignee_ids=assignee_ids,
        assigned_only=assigned_only,
        customer_id=customer_id,
        created_from=created_from,
        created_to=created_to,
        scheduled_from=scheduled_from,
        scheduled_to=scheduled_to,
        completed_from=completed_from,
        completed_to=completed_to,
        sort_by=sort_by,
        sort_order=sort_order,
        cursor=cursor,
        take=take,
    )


@router.get("/tasks")
async def list_tasks(
    options: TaskSearchOptions = Depends(search_options),
    actor: Actor = Depends(get_current_actor),
) -> TaskPage:
    """Search tasks visible to the caller."""
    return await task_service.search_tasks(actor=actor, options=options)


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskCreate, actor: Actor = Depends(get_current_actor)) -> Task:
    return await task_service.create_task(actor=actor, data=data)


@router.get("/tasks/{task_id}")
async def get_task(task_id: int, actor: Actor = Depends(get_current_actor)) -> Task:
    return await task_service.get_task_for_actor(actor=actor, task_id=task_id)


@router.patch("/tasks/{task_id}")
async def update_task(task_id: int, data: TaskUpdate, actor: Actor = Depends(get_current_actor)) -> Task:
    return await task_service.update_task(actor=actor, task_id=task_id, data=data)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, actor: Actor = Depends(get_current_actor)) -> Response:
    await task_service.delete_task(actor=actor, task_id=task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/tasks/{task_id}/status")
async def update_task_status(
    task_id: int, data: TaskStatusUpdate, actor: Actor = Depends(get_current_actor)
) -> Task:
    return await task_service.update_task_status(actor=actor, task_id=task_id, status=data.status)


@router.put("/tasks/{task_id}/assignees")
async def update_task_assignees(
    task_id: int, data: TaskAssigneesUpdate, actor: Actor = Depends(get_current_actor)
) -> Task:
    return await task_service.update_task_assignees(actor=actor, task_id=task_id, assignee_ids=data.assignee_ids)


@router.post("/tasks/{task_id}/comment", status_code=status.HTTP_201_CREATED)
async def add_task_comment(
    *,
    task_id: int,
    comment: str = Form(...),
    files: list[UploadFile] | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
) -> Activity:
    """Post a comment with optional photos."""
    data = CommentCreate(comment=comment)
    return await task_service.add_task_comment(
        actor=actor, task_id=task_id, comment=data.comment, files=await read_uploads(files)
    )


@router.post("/tasks/{task_id}/check-in")
async def check_in(
    *,
    task_id: int,
    latitude: float = Form(...),
    longitude: float = Form(...),
    notes: str | None = Form(default=None),
    files: list[UploadFile] | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
) -> TaskEventResponse:
    data = CheckEventInput(lat=latitude, lng=longitude, notes=notes)
    result = await task_event_service.check_in(
        actor=actor, task_id=task_id, data=data, files=await read_uploads(files)
    )
    return TaskEventResponse.model_validate(result)


@router.post("/tasks/{task_id}/check-out")
async def check_out(
    *,
    task_id: int,
    latitude: float = Form(...),
    longitude: float = Form(...),
    notes: str | None = Form(default=None),
    files: list[UploadFile] | None = File(default=None),
    payment_collected: bool = Form(default=False),
    payment_amount: Decimal | None = Form(default=None),
    payment_currency: str = Form(default="VND"),
    payment_notes: str | None = Form(default=None),
    invoice: UploadFile | None = File(default=None),
    actor: Actor = Depends(get_current_actor),
) -> TaskEventResponse:
    """Complete a task on site, optionally recording the payment collected."""
    data = CheckEventInput(lat=latitude, lng=longitude, notes=notes)

    payment = None
    invoice_file = None
    if payment_collected:
        if payment_amount is None:
            raise ValidationFailedError(fields={"payment_amount": ["Vui lòng nhập số tiền đã thu"]})
        payment = PaymentCreate(amount=payment_amount, currency=payment_currency, notes=payment_notes)
        if invoice is not None and invoice.filename:
            invoice_file = await read_upload(invoice)

    result = await task_event_service.check_out(
        actor=actor,
        task_id=task_id,
        data=data,
        files=await read_uploads(files),
        payment=payment,
        invoice=invoice_file,
    )
    return TaskEventResponse.model_validate(result)


@router.get("/tasks/{task_id}/payments")
async def get_task_payments(task_id: int, actor: Actor = Depends(get_current_actor)) -> TaskPayments:
    return await payment_service.get_task_payments(actor=actor, task_id=task_id)


@router.put("/tasks/{task_id}/expected-revenue")
async def set_expected_revenue(
    task_id: int, data: ExpectedRevenueUpdate, actor: Actor = Depends(get_current_actor)
) -> Task:
    return await payment_service.set_expected_revenue(actor=actor, task_id=task_id, data=data)


@router.get("/tasks/{task_id}/attachments")
async def list_task_attachments(task_id: int, actor: Actor = Depends(get_current_actor)) -> list[Attachment]:
    return await attachment_service.list_task_attachments(actor=actor, task_id=task_id)


@router.post("/tasks/{task_id}/attachments", status_code=status.HTTP_201_CREATED)
async def upload_task_attachments(
    *,
    task_id: int,
    files: list[UploadFile] = File(...),
    actor: Actor = Depends(get_current_actor),
) -> list[Attachment]:
    return await attachment_service.upload_task_attachments(
        actor=actor, task_id=task_id, files=await read_uploads(files)
    )


@router.patch("/customers/{customer_id}", tags=["customers"])
async def update_customer(
    customer_id: int, data: CustomerUpdate, actor: Actor = Depends(get_current_actor)
) -> Customer:
    return await task_service.update_customer(actor=actor, customer_id=customer_id, data=data)
