"""Searchable text maintenance for tasks."""

import logging
from collections.abc import Mapping
from typing import Any

from fieldops.core import db_client
from fieldops.core.logging import span
from fieldops.core.text_utils import collapse_whitespace, normalize_for_search


logger = logging.getLogger(__name__)


def build_searchable_text(
    task_id: int,
    title: str,
    description: str | None = None,
    customer: Mapping[str, Any] | None = None,
    location: Mapping[str, Any] | None = None,
) -> str:
    """Build the normalized text a task is searched by.

    Joins, in order: task ID, title, description, customer name, customer
    phone, location address, location name. Empty parts are skipped.
    """
    parts: list[str | None] = [str(task_id), title, description]
    if customer:
        parts.extend([customer.get("name"), customer.get("phone")])
    if location:
        parts.extend([location.get("address"), location.get("name")])

    joined = " ".join(part for part in parts if part and part.strip())
    return collapse_whitespace(normalize_for_search(joined))


def normalize_query(query: str | None) -> str | None:
    """Normalize a search query the same way task text is indexed.

    Returns None for an empty or whitespace-only query, meaning no filter.
    """
    if query is None:
        return None
    normalized = collapse_whitespace(normalize_for_search(query))
    return normalized or None


async def compute_for_task(task: Mapping[str, Any]) -> str:
    """Load a task row's customer and location and build its searchable text."""
    customer = None
    if task.get("customer_id") is not None:
        customer = await db_client.get_record(collection="customers", record_id=task["customer_id"])
    location = None
    if task.get("geo_location_id") is not None:
        location = await db_client.get_record(collection="geo_locations", record_id=task["geo_location_id"])
    return build_searchable_text(task["id"], task["title"], task.get("description"), customer, location)


async def refresh_task(task_id: int) -> str:
    """Recompute and persist searchable text for one task."""
    task = await db_client.get_record(collection="tasks", record_id=task_id)
    text = await compute_for_task(task)
    await db_client.execute("UPDATE tasks SET searchable_text = ? WHERE id = ?", (text, task_id))
    return text


async def backfill_searchable_text(*, batch_size: int = 100) -> int:
    """Rebuild searchable text for every task, soft-deleted ones included.

    Returns:
        Number of tasks whose text changed
    """
    with span("search_index.backfill_searchable_text"):
        updated = 0
        last_id = 0
        while True:
            rows = await db_client.fetch_all(
                "SELECT * FROM tasks WHERE id > ? ORDER BY id LIMIT ?",
                (last_id, batch_size),
            )
            if not rows:
                break

            async with db_client.transaction():
                for row in rows:
                    text = await compute_for_task(row)
                    if text != row["searchable_text"]:
                        await db_client.execute("UPDATE tasks SET searchable_text = ? WHERE id = ?", (text, row["id"]))
                        updated += 1

            last_id = rows[-1]["id"]
            logger.info("Backfilled searchable text batch", extra={"last_id": last_id, "updated": updated})

        return updated
