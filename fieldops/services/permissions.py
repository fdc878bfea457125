"""Permission predicates over actors and task assignees.

Every predicate is pure and total: it answers True or False and never raises
for an ordinary denial. "Is admin" and "is assigned" are independent checks.
"""

from collections.abc import Collection

from fieldops.domain.user import Actor, UserRole


def is_admin(actor: Actor) -> bool:
    return UserRole.ADMIN in actor.roles


def is_worker(actor: Actor) -> bool:
    return UserRole.WORKER in actor.roles


def is_assigned(actor: Actor, assignee_ids: Collection[str]) -> bool:
    """Whether the actor's ID appears in the task's assignee list."""
    return actor.id in assignee_ids


def can_create_task(actor: Actor) -> bool:
    return is_admin(actor)


def can_list_all_tasks(actor: Actor) -> bool:
    """Admins see every task; everyone else sees only tasks they are assigned to."""
    return is_admin(actor)


def can_view_task(actor: Actor, assignee_ids: Collection[str]) -> bool:
    return is_admin(actor) or is_assigned(actor, assignee_ids)


def can_update_task(actor: Actor) -> bool:
    return is_admin(actor)


def can_update_assignees(actor: Actor) -> bool:
    return is_admin(actor)


def can_comment_on_task(actor: Actor, assignee_ids: Collection[str]) -> bool:
    return is_admin(actor) or is_assigned(actor, assignee_ids)


def can_upload_attachment(actor: Actor, assignee_ids: Collection[str]) -> bool:
    return is_admin(actor) or is_assigned(actor, assignee_ids)


def can_delete_attachment(actor: Actor, uploaded_by: str) -> bool:
    """Admins may delete any attachment; others only their own uploads."""
    return is_admin(actor) or actor.id == uploaded_by


def can_check_in_out(actor: Actor, assignee_ids: Collection[str]) -> bool:
    """Only people assigned to the task may check in or out, admins included."""
    return is_assigned(actor, assignee_ids)


def can_manage_payments(actor: Actor) -> bool:
    return is_admin(actor)


def can_view_payments(actor: Actor, assignee_ids: Collection[str]) -> bool:
    return is_admin(actor) or is_assigned(actor, assignee_ids)


def can_view_reports(actor: Actor) -> bool:
    return is_admin(actor)


def can_manage_users(actor: Actor) -> bool:
    return is_admin(actor)
