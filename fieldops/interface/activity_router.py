"""Activity feed endpoints."""

from fastapi import APIRouter, Depends, Query

from fieldops.core.config import constants
from fieldops.domain.activity import ActivityPage
from fieldops.domain.user import Actor
from fieldops.interface.auth import get_current_actor
from fieldops.services import activity_service


router = APIRouter(prefix="/v1/activities", tags=["activities"])


@router.get("")
async def list_activities(
    topic: str = Query(..., min_length=1, description="TASK_<id> or GENERAL"),
    cursor: int | None = Query(default=None),
    take: int = Query(default=constants.DEFAULT_PAGE_SIZE, ge=1, le=constants.MAX_PAGE_SIZE),
    actor: Actor = Depends(get_current_actor),
) -> ActivityPage:
    """Read a feed newest first, paging with the ID of the last activity seen."""
    return await activity_service.list_activities_for_actor(actor=actor, topic=topic, cursor=cursor, take=take)
