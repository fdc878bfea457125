"""Pure state transition rules for the task lifecycle."""

from collections.abc import Collection
from datetime import datetime
from typing import Any

from fieldops.core.errors import PermissionDeniedError
from fieldops.domain.task import TaskStatus
from fieldops.domain.user import Actor
from fieldops.services import permissions


INITIAL_STATUS = TaskStatus.PREPARING

# Transitions any admin may perform, regardless of assignment
ADMIN_TRANSITIONS: set[tuple[TaskStatus, TaskStatus]] = {(TaskStatus.PREPARING, TaskStatus.READY)}

# Execution-phase transitions, open to anyone assigned to the task
ASSIGNEE_TRANSITIONS: set[tuple[TaskStatus, TaskStatus]] = {
    (TaskStatus.READY, TaskStatus.IN_PROGRESS),
    (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
}

TRANSITION_DENIED_MESSAGE = "Bạn không có quyền chuyển trạng thái công việc này"


def can_transition(
    actor: Actor,
    current: TaskStatus,
    target: TaskStatus,
    assignee_ids: Collection[str],
) -> bool:
    """Whether the actor may move a task from `current` to `target`.

    Admins may prepare tasks (PREPARING to READY), put any task on hold and
    release a held task to any status. Execution transitions (READY to
    IN_PROGRESS, IN_PROGRESS to COMPLETED) require the actor to be assigned,
    whatever their roles. Role and assignment checks combine with OR.
    """
    if permissions.is_admin(actor) and (
        (current, target) in ADMIN_TRANSITIONS or target == TaskStatus.ON_HOLD or current == TaskStatus.ON_HOLD
    ):
        return True

    return (current, target) in ASSIGNEE_TRANSITIONS and permissions.is_assigned(actor, assignee_ids)


def ensure_transition_allowed(
    actor: Actor,
    current: TaskStatus,
    target: TaskStatus,
    assignee_ids: Collection[str],
) -> None:
    """Raise PermissionDeniedError unless `can_transition` allows the move.

    Illegal transitions are reported as a permission problem, not an invalid state.
    """
    if not can_transition(actor, current, target, assignee_ids):
        raise PermissionDeniedError(TRANSITION_DENIED_MESSAGE)


def transition_side_effects(target: TaskStatus, assignee_ids: Collection[str], now: datetime) -> dict[str, Any]:
    """Row fields to set alongside the new status."""
    fields: dict[str, Any] = {"status": target}
    if target == TaskStatus.IN_PROGRESS:
        fields["started_at"] = now
    elif target == TaskStatus.COMPLETED:
        fields["completed_at"] = now
        fields["completed_assignee_ids"] = list(assignee_ids)
    return fields
