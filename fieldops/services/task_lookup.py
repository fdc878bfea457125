"""Task row lookups shared by the task services."""

from collections.abc import Iterable
from typing import Any

from fieldops.core import db_client
from fieldops.core.errors import ErrorCode, NotFoundError, PermissionDeniedError
from fieldops.domain.task import Task
from fieldops.domain.user import Actor
from fieldops.services import permissions


TASK_NOT_FOUND_MESSAGE = "Không tìm thấy công việc"
NOT_ASSIGNED_MESSAGE = "Bạn không được phân công vào công việc này"


async def get_task_row(task_id: int, *, include_deleted: bool = False) -> dict[str, Any]:
    """Fetch a task row.

    Raises:
        NotFoundError: If the task does not exist or is soft-deleted
    """
    query = "SELECT * FROM tasks WHERE id = ?"
    if not include_deleted:
        query += " AND deleted_at IS NULL"
    row = await db_client.fetch_one(query, (task_id,))
    if row is None:
        raise NotFoundError(TASK_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_TASK_NOT_FOUND)
    return row


async def get_viewable_task_row(*, actor: Actor, task_id: int) -> dict[str, Any]:
    """Fetch a task row the actor is allowed to see."""
    row = await get_task_row(task_id)
    if not permissions.can_view_task(actor, row["assignee_ids"]):
        raise PermissionDeniedError(NOT_ASSIGNED_MESSAGE)
    return row


async def _fetch_by_ids(collection: str, ids: Iterable[int]) -> dict[int, dict[str, Any]]:
    unique_ids = sorted(set(ids))
    if not unique_ids:
        return {}
    placeholders = ", ".join("?" for _ in unique_ids)
    rows = await db_client.fetch_all(
        f"SELECT * FROM {collection} WHERE id IN ({placeholders})",  # noqa: S608 - fixed table names
        unique_ids,
    )
    return {row["id"]: row for row in rows}


async def hydrate_tasks(rows: list[dict[str, Any]]) -> list[Task]:
    """Turn task rows into Tasks with their customer and location attached."""
    customers = await _fetch_by_ids("customers", (r["customer_id"] for r in rows if r["customer_id"] is not None))
    locations = await _fetch_by_ids(
        "geo_locations", (r["geo_location_id"] for r in rows if r["geo_location_id"] is not None)
    )
    return [
        Task.from_record(
            row,
            customer=customers.get(row["customer_id"]),
            geo_location=locations.get(row["geo_location_id"]),
        )
        for row in rows
    ]


async def hydrate_task(row: dict[str, Any]) -> Task:
    return (await hydrate_tasks([row]))[0]
