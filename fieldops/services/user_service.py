"""User directory mirroring the identity provider."""

import logging

from fieldops.core import db_client
from fieldops.core.errors import ErrorCode, NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.core.logging import span
from fieldops.domain.create_models import UserCreate
from fieldops.domain.user import Actor, User, UserRole
from fieldops.services import permissions


logger = logging.getLogger(__name__)

USER_NOT_FOUND_MESSAGE = "Không tìm thấy nhân viên"


def _require_user_admin(actor: Actor) -> None:
    if not permissions.can_manage_users(actor):
        logger.warning("Non-admin attempted user management", extra={"user_id": actor.id})
        raise PermissionDeniedError


async def get_user(*, user_id: str) -> User:
    """Fetch a user by external ID.

    Raises:
        NotFoundError: If no such user exists
    """
    try:
        record = await db_client.get_record(collection="users", record_id=user_id)
    except db_client.RecordNotFoundError as err:
        raise NotFoundError(USER_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_USER_NOT_FOUND) from err
    return User.model_validate(record)


async def find_user(*, user_id: str) -> User | None:
    """Fetch a user by external ID, or None."""
    record = await db_client.fetch_one("SELECT * FROM users WHERE id = ?", (user_id,))
    return User.model_validate(record) if record else None


async def create_user(*, actor: Actor, data: UserCreate) -> User:
    """Add a user to the directory with the worker role (admin-only).

    Raises:
        PermissionDeniedError: If the actor is not an admin
        ValidationFailedError: If the ID is already taken
    """
    with span("user_service.create_user"):
        _require_user_admin(actor)

        if await find_user(user_id=data.id):
            raise ValidationFailedError(fields={"id": ["Mã nhân viên đã tồn tại"]})

        record = await db_client.create_record(
            collection="users",
            data={
                "id": data.id,
                "name": data.name.strip(),
                "email": data.email,
                "phone": data.phone,
                "roles": [UserRole.WORKER.value],
                "banned": False,
            },
        )
        logger.info("Created user", extra={"user_id": data.id, "created_by": actor.id})
        return User.model_validate(record)


async def ensure_user(*, actor: Actor, name: str | None = None) -> User:
    """Return the local user for an authenticated actor, creating it on first sight."""
    existing = await find_user(user_id=actor.id)
    if existing:
        return existing

    record = await db_client.create_record(
        collection="users",
        data={
            "id": actor.id,
            "name": name or actor.id,
            "roles": sorted(role.value for role in actor.roles) or [UserRole.WORKER.value],
            "banned": False,
        },
    )
    logger.info("Registered user from identity token", extra={"user_id": actor.id})
    return User.model_validate(record)


async def list_users(*, include_banned: bool = False) -> list[User]:
    """List users ordered by name."""
    query = "SELECT * FROM users"
    if not include_banned:
        query += " WHERE banned = 0"
    query += " ORDER BY name, id"
    return [User.model_validate(row) for row in await db_client.fetch_all(query)]


async def update_user_roles(*, actor: Actor, user_id: str, roles: list[UserRole]) -> User:
    """Replace a user's roles (admin-only).

    Raises:
        PermissionDeniedError: If the actor is not an admin
        ValidationFailedError: If roles is empty
        NotFoundError: If the user does not exist
    """
    with span("user_service.update_user_roles"):
        _require_user_admin(actor)
        if not roles:
            raise ValidationFailedError(fields={"roles": ["Phải có ít nhất một vai trò"]})

        await get_user(user_id=user_id)
        record = await db_client.update_record(
            collection="users",
            record_id=user_id,
            data={"roles": sorted({role.value for role in roles})},
        )
        logger.info("Updated user roles", extra={"user_id": user_id, "roles": record["roles"], "by": actor.id})
        return User.model_validate(record)


async def set_user_banned(*, actor: Actor, user_id: str, banned: bool) -> User:
    """Ban or unban a user (admin-only). Admins cannot ban themselves."""
    with span("user_service.set_user_banned"):
        _require_user_admin(actor)
        if banned and user_id == actor.id:
            raise ValidationFailedError("Bạn không thể tự khóa tài khoản của mình")

        await get_user(user_id=user_id)
        record = await db_client.update_record(collection="users", record_id=user_id, data={"banned": banned})
        logger.info("Updated user ban status", extra={"user_id": user_id, "banned": banned, "by": actor.id})
        return User.model_validate(record)
