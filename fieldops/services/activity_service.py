"""Append-only activity log."""

import logging
from typing import Any

from fieldops.core import db_client
from fieldops.core.config import constants
from fieldops.core.errors import PermissionDeniedError
from fieldops.core.logging import span
from fieldops.domain.activity import Activity, ActivityAction, ActivityPage
from fieldops.domain.user import Actor
from fieldops.services import permissions
from fieldops.services.task_lookup import get_viewable_task_row


logger = logging.getLogger(__name__)

GENERAL_TOPIC = "GENERAL"


def get_activity_topic(task_id: int | None = None) -> str:
    """Topic string for a task's feed, or the general feed."""
    if task_id is None:
        return GENERAL_TOPIC
    return f"TASK_{task_id}"


async def create_activity(
    *,
    topic: str,
    user_id: str,
    action: ActivityAction,
    payload: dict[str, Any] | None = None,
) -> Activity:
    """Append an activity record.

    Call inside `db_client.transaction()` to tie the record to the change it describes.
    """
    record = await db_client.create_record(
        collection="activities",
        data={"topic": topic, "user_id": user_id, "action": action, "payload": payload or {}},
    )
    logger.info("Activity recorded", extra={"topic": topic, "action": str(action), "user_id": user_id})
    return Activity.model_validate(record)


async def list_activities(
    *,
    topic: str,
    cursor: int | None = None,
    take: int = constants.DEFAULT_PAGE_SIZE,
) -> ActivityPage:
    """List a topic's activities newest first.

    Args:
        topic: Feed to read (see get_activity_topic)
        cursor: ID of the last activity from the previous page
        take: Page size, clamped to 1..MAX_PAGE_SIZE

    Returns:
        ActivityPage with the next cursor when more records exist
    """
    with span("activity_service.list_activities"):
        take = max(1, min(take, constants.MAX_PAGE_SIZE))
        query = "SELECT * FROM activities WHERE topic = ?"
        params: list[Any] = [topic]
        if cursor is not None:
            query += " AND id < ?"
            params.append(cursor)
        query += " ORDER BY id DESC LIMIT ?"
        params.append(take + 1)

        rows = await db_client.fetch_all(query, params)
        has_next_page = len(rows) > take
        activities = [Activity.model_validate(row) for row in rows[:take]]
        return ActivityPage(
            activities=activities,
            next_cursor=activities[-1].id if has_next_page else None,
            has_next_page=has_next_page,
        )


def parse_task_topic(topic: str) -> int | None:
    """Task ID from a TASK_<id> topic, or None for any other topic."""
    prefix, _, raw_id = topic.partition("_")
    if prefix != "TASK" or not raw_id.isdigit():
        return None
    return int(raw_id)


async def list_activities_for_actor(
    *,
    actor: Actor,
    topic: str,
    cursor: int | None = None,
    take: int = constants.DEFAULT_PAGE_SIZE,
) -> ActivityPage:
    """List a feed the actor may read.

    Task feeds follow task visibility; every other feed is admin-only.

    Raises:
        NotFoundError: If a task topic names a missing task
        PermissionDeniedError: If the actor may not read the feed
    """
    task_id = parse_task_topic(topic)
    if task_id is not None:
        await get_viewable_task_row(actor=actor, task_id=task_id)
    elif not permissions.is_admin(actor):
        raise PermissionDeniedError
    return await list_activities(topic=topic, cursor=cursor, take=take)
