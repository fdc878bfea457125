"""Task service: the single write path for tasks and their searchable text."""

import logging
from typing import Any

from fieldops.core import db_client
from fieldops.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.core.logging import span
from fieldops.core.storage import StorageProvider, get_storage_provider
from fieldops.domain.activity import Activity, ActivityAction
from fieldops.domain.attachment import UploadedFile
from fieldops.domain.create_models import CustomerInput, GeoLocationInput, TaskCreate
from fieldops.domain.task import Customer, SortOrder, Task, TaskPage, TaskSearchOptions, TaskSortField, TaskStatus
from fieldops.domain.update_models import CustomerUpdate, TaskUpdate
from fieldops.domain.user import Actor
from fieldops.services import activity_service, attachment_service, permissions, search_index, task_state_machine
from fieldops.services.task_lookup import (
    NOT_ASSIGNED_MESSAGE,
    get_task_row,
    get_viewable_task_row,
    hydrate_task,
    hydrate_tasks,
)


logger = logging.getLogger(__name__)

ADMIN_ONLY_MESSAGE = "Chỉ admin mới có thể thực hiện thao tác này"
CUSTOMER_NOT_FOUND_MESSAGE = "Không tìm thấy khách hàng"
COMMENT_MAX_FILES = 5


def _require_allowed(actor: Actor, allowed: bool) -> None:
    if not allowed:
        logger.warning("Admin-only task operation denied", extra={"user_id": actor.id})
        raise PermissionDeniedError(ADMIN_ONLY_MESSAGE)


async def _ensure_users_exist(assignee_ids: list[str]) -> None:
    if not assignee_ids:
        return
    placeholders = ", ".join("?" for _ in assignee_ids)
    rows = await db_client.fetch_all(
        f"SELECT id FROM users WHERE banned = 0 AND id IN ({placeholders})",  # noqa: S608 - placeholders only
        assignee_ids,
    )
    missing = set(assignee_ids) - {row["id"] for row in rows}
    if missing:
        raise ValidationFailedError(
            fields={"assignee_ids": [f"Không tìm thấy nhân viên: {user_id}" for user_id in sorted(missing)]}
        )


async def upsert_customer(customer: CustomerInput) -> dict[str, Any]:
    """Return the customer matching (name, phone), creating it if needed."""
    existing = await db_client.fetch_one(
        "SELECT * FROM customers WHERE name = ? AND phone = ?",
        (customer.name, customer.phone),
    )
    if existing:
        return existing
    return await db_client.create_record(
        collection="customers",
        data={"name": customer.name, "phone": customer.phone},
    )


async def _create_location(location: GeoLocationInput) -> dict[str, Any]:
    return await db_client.create_record(collection="geo_locations", data=location.model_dump())


async def _persist_searchable_text(row: dict[str, Any]) -> None:
    text = await search_index.compute_for_task(row)
    await db_client.execute("UPDATE tasks SET searchable_text = ? WHERE id = ?", (text, row["id"]))


async def create_task(*, actor: Actor, data: TaskCreate) -> Task:
    """Create a task in PREPARING state (admin-only).

    The customer is matched by (name, phone) or created; a location is
    always created fresh. Searchable text and the TASK_CREATED activity are
    written in the same transaction as the task.

    Raises:
        PermissionDeniedError: If the actor is not an admin
        ValidationFailedError: If an assignee is unknown or banned
    """
    with span("task_service.create_task"):
        _require_allowed(actor, permissions.can_create_task(actor))
        await _ensure_users_exist(data.assignee_ids)

        async with db_client.transaction():
            customer = await upsert_customer(data.customer) if data.customer else None
            location = await _create_location(data.geo_location) if data.geo_location else None

            row = await db_client.create_record(
                collection="tasks",
                data={
                    "title": data.title,
                    "description": data.description,
                    "status": task_state_machine.INITIAL_STATUS,
                    "assignee_ids": data.assignee_ids,
                    "customer_id": customer["id"] if customer else None,
                    "geo_location_id": location["id"] if location else None,
                    "scheduled_at": data.scheduled_at,
                    "expected_revenue": data.expected_revenue,
                    "expected_currency": data.expected_currency,
                    "created_by": actor.id,
                },
            )
            await _persist_searchable_text(row)
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(row["id"]),
                user_id=actor.id,
                action=ActivityAction.TASK_CREATED,
                payload={"title": data.title, "assigneeIds": data.assignee_ids},
            )

        logger.info("Created task", extra={"task_id": row["id"], "user_id": actor.id})
        return await hydrate_task(await get_task_row(row["id"]))


async def get_task(*, task_id: int) -> Task:
    """Fetch a live task without permission checks.

    Raises:
        NotFoundError: If the task does not exist or was deleted
    """
    return await hydrate_task(await get_task_row(task_id))


async def get_task_for_actor(*, actor: Actor, task_id: int) -> Task:
    """Fetch a task the actor may view (admin or assigned)."""
    return await hydrate_task(await get_viewable_task_row(actor=actor, task_id=task_id))


async def update_task(*, actor: Actor, task_id: int, data: TaskUpdate) -> Task:
    """Apply a partial update (admin-only) and refresh searchable text.

    Only fields present in the payload change. Passing `customer` or
    `geo_location` as null unlinks it.
    """
    with span("task_service.update_task"):
        _require_allowed(actor, permissions.can_update_task(actor))
        fields_set = data.model_fields_set

        async with db_client.transaction():
            await get_task_row(task_id)

            changes: dict[str, Any] = {}
            for field in ("title", "description", "scheduled_at"):
                if field in fields_set:
                    changes[field] = getattr(data, field)
            if "customer" in fields_set:
                customer = await upsert_customer(data.customer) if data.customer else None
                changes["customer_id"] = customer["id"] if customer else None
            if "geo_location" in fields_set:
                location = await _create_location(data.geo_location) if data.geo_location else None
                changes["geo_location_id"] = location["id"] if location else None

            row = await db_client.update_record(collection="tasks", record_id=task_id, data=changes)
            await _persist_searchable_text(row)
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(task_id),
                user_id=actor.id,
                action=ActivityAction.TASK_UPDATED,
                payload={"changedFields": sorted(fields_set)},
            )

        logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(fields_set)})
        return await get_task(task_id=task_id)


async def update_customer(*, actor: Actor, customer_id: int, data: CustomerUpdate) -> Customer:
    """Rename or re-number a customer and refresh every linked task's searchable text."""
    with span("task_service.update_customer"):
        _require_allowed(actor, permissions.can_update_task(actor))
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not changes:
            raise ValidationFailedError(fields={"customer": ["Không có thay đổi"]})

        async with db_client.transaction():
            current = await db_client.fetch_one("SELECT * FROM customers WHERE id = ?", (customer_id,))
            if current is None:
                raise NotFoundError(CUSTOMER_NOT_FOUND_MESSAGE)

            merged = {**current, **changes}
            clash = await db_client.fetch_one(
                "SELECT id FROM customers WHERE name = ? AND phone = ? AND id != ?",
                (merged["name"], merged["phone"], customer_id),
            )
            if clash:
                raise ValidationFailedError(
                    fields={"customer": ["Khách hàng với tên và số điện thoại này đã tồn tại"]}
                )

            record = await db_client.update_record(collection="customers", record_id=customer_id, data=changes)
            rows = await db_client.fetch_all("SELECT * FROM tasks WHERE customer_id = ?", (customer_id,))
            for row in rows:
                await _persist_searchable_text(row)

        logger.info("Updated customer", extra={"customer_id": customer_id, "tasks_refreshed": len(rows)})
        return Customer.model_validate(record)


async def update_task_assignees(*, actor: Actor, task_id: int, assignee_ids: list[str]) -> Task:
    """Replace a task's assignees (admin-only)."""
    with span("task_service.update_task_assignees"):
        _require_allowed(actor, permissions.can_update_assignees(actor))
        assignee_ids = list(dict.fromkeys(assignee_ids))
        await _ensure_users_exist(assignee_ids)

        async with db_client.transaction():
            row = await get_task_row(task_id)
            await db_client.update_record(collection="tasks", record_id=task_id, data={"assignee_ids": assignee_ids})
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(task_id),
                user_id=actor.id,
                action=ActivityAction.TASK_ASSIGNEES_UPDATED,
                payload={"oldAssigneeIds": row["assignee_ids"], "newAssigneeIds": assignee_ids},
            )

        logger.info("Updated task assignees", extra={"task_id": task_id, "assignee_ids": assignee_ids})
        return await get_task(task_id=task_id)


async def update_task_status(*, actor: Actor, task_id: int, status: TaskStatus) -> Task:
    """Move a task to a new status.

    The transition check, row update and TASK_STATUS_UPDATED activity run in
    one transaction; any failure leaves both the task and the log untouched.

    Raises:
        NotFoundError: If the task does not exist or was deleted
        PermissionDeniedError: If the transition is not allowed for this actor
    """
    with span("task_service.update_task_status"):
        async with db_client.transaction():
            row = await get_task_row(task_id)
            current = TaskStatus(row["status"])
            task_state_machine.ensure_transition_allowed(actor, current, status, row["assignee_ids"])

            changes = task_state_machine.transition_side_effects(status, row["assignee_ids"], db_client.utc_now())
            await db_client.update_record(collection="tasks", record_id=task_id, data=changes)
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(task_id),
                user_id=actor.id,
                action=ActivityAction.TASK_STATUS_UPDATED,
                payload={"oldStatus": current, "newStatus": status},
            )

        logger.info(
            "Task status updated",
            extra={"task_id": task_id, "old_status": str(current), "new_status": str(status), "user_id": actor.id},
        )
        return await get_task(task_id=task_id)


async def add_task_comment(
    *,
    actor: Actor,
    task_id: int,
    comment: str,
    files: list[UploadedFile] | None = None,
    storage: StorageProvider | None = None,
) -> Activity:
    """Post a comment, with up to five photos, to the task's activity feed.

    Photos are stored before the transaction and removed again if it fails.
    """
    with span("task_service.add_task_comment"):
        row = await get_task_row(task_id)
        if not permissions.can_comment_on_task(actor, row["assignee_ids"]):
            raise PermissionDeniedError(NOT_ASSIGNED_MESSAGE)

        files = files or []
        stored: list[attachment_service.StoredFile] = []
        if files:
            attachment_service.validate_files(files, max_files=COMMENT_MAX_FILES)
            storage = storage or get_storage_provider()
            stored = await attachment_service.store_files(task_id=task_id, files=files, storage=storage)

        try:
            async with db_client.transaction():
                records = []
                if stored and storage is not None:
                    records = await attachment_service.link_attachments(
                        task_id=task_id, actor=actor, stored=stored, storage=storage
                    )
                activity = await activity_service.create_activity(
                    topic=activity_service.get_activity_topic(task_id),
                    user_id=actor.id,
                    action=ActivityAction.TASK_COMMENTED,
                    payload={"comment": comment, "attachmentIds": [record["id"] for record in records]},
                )
        except Exception:
            if stored and storage is not None:
                await attachment_service.discard_files(stored, storage=storage)
            raise

        return activity


async def delete_task(*, actor: Actor, task_id: int) -> None:
    """Soft-delete a task (admin-only). Deleted tasks drop out of every listing."""
    with span("task_service.delete_task"):
        _require_allowed(actor, permissions.can_update_task(actor))
        async with db_client.transaction():
            row = await get_task_row(task_id)
            await db_client.update_record(
                collection="tasks",
                record_id=task_id,
                data={"deleted_at": db_client.utc_now(), "deleted_by": actor.id},
            )
            await activity_service.create_activity(
                topic=activity_service.get_activity_topic(task_id),
                user_id=actor.id,
                action=ActivityAction.TASK_DELETED,
                payload={"title": row["title"]},
            )
        logger.info("Deleted task", extra={"task_id": task_id, "user_id": actor.id})


def _assigned_to_any_clause(user_ids: list[str]) -> tuple[str, list[Any]]:
    placeholders = ", ".join("?" for _ in user_ids)
    return (
        f"EXISTS (SELECT 1 FROM json_each(tasks.assignee_ids) WHERE json_each.value IN ({placeholders}))",
        list(user_ids),
    )


async def _cursor_clause(options: TaskSearchOptions) -> tuple[str, list[Any]]:
    """Keyset condition selecting rows after the cursor task in sort order."""
    comparator = "<" if options.sort_order == SortOrder.DESC else ">"
    if options.sort_by == TaskSortField.ID:
        return f"tasks.id {comparator} ?", [options.cursor]

    column = options.sort_by.value
    anchor = await db_client.fetch_one(
        f"SELECT COALESCE({column}, '') AS sort_key FROM tasks WHERE id = ?",  # noqa: S608 - enum column
        (options.cursor,),
    )
    if anchor is None:
        raise ValidationFailedError(fields={"cursor": ["Con trỏ phân trang không hợp lệ"]})

    key = f"COALESCE(tasks.{column}, '')"
    return (
        f"({key} {comparator} ? OR ({key} = ? AND tasks.id {comparator} ?))",
        [anchor["sort_key"], anchor["sort_key"], options.cursor],
    )


async def search_tasks(*, actor: Actor, options: TaskSearchOptions) -> TaskPage:
    """Filter, search and page through live tasks.

    Free text matches as a substring of the task's searchable text after the
    same accent folding used when indexing. Non-admins only ever see tasks
    they are assigned to.
    """
    with span("task_service.search_tasks"):
        conditions = ["tasks.deleted_at IS NULL"]
        params: list[Any] = []

        def add(clause: str, values: list[Any]) -> None:
            conditions.append(clause)
            params.extend(values)

        if options.assigned_only or not permissions.can_list_all_tasks(actor):
            add(*_assigned_to_any_clause([actor.id]))
        if options.assignee_ids:
            add(*_assigned_to_any_clause(options.assignee_ids))
        if options.status:
            add(f"tasks.status IN ({', '.join('?' for _ in options.status)})", [s.value for s in options.status])
        if options.customer_id is not None:
            add("tasks.customer_id = ?", [options.customer_id])

        for column, lower, upper in (
            ("created_at", options.created_from, options.created_to),
            ("scheduled_at", options.scheduled_from, options.scheduled_to),
            ("completed_at", options.completed_from, options.completed_to),
        ):
            if lower is not None:
                add(f"tasks.{column} >= ?", [db_client.format_timestamp(lower)])
            if upper is not None:
                add(f"tasks.{column} <= ?", [db_client.format_timestamp(upper)])

        query = search_index.normalize_query(options.search)
        if query:
            escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            add("tasks.searchable_text LIKE ? ESCAPE '\\'", [f"%{escaped}%"])

        if options.cursor is not None:
            add(*await _cursor_clause(options))

        direction = "DESC" if options.sort_order == SortOrder.DESC else "ASC"
        if options.sort_by == TaskSortField.ID:
            order_by = f"tasks.id {direction}"
        else:
            order_by = f"COALESCE(tasks.{options.sort_by.value}, '') {direction}, tasks.id {direction}"

        sql = f"SELECT * FROM tasks WHERE {' AND '.join(conditions)} ORDER BY {order_by} LIMIT ?"  # noqa: S608
        rows = await db_client.fetch_all(sql, [*params, options.take + 1])

        has_next_page = len(rows) > options.take
        page_rows = rows[: options.take]
        tasks = await hydrate_tasks(page_rows)

        logger.debug("Searched tasks", extra={"count": len(tasks), "user_id": actor.id, "search": query})
        return TaskPage(
            tasks=tasks,
            next_cursor=page_rows[-1]["id"] if has_next_page else None,
            has_next_page=has_next_page,
        )

