"""User directory endpoints."""

from fastapi import APIRouter, Depends, Query, status

from fieldops.domain.create_models import UserCreate
from fieldops.domain.update_models import UserBanUpdate, UserRolesUpdate
from fieldops.domain.user import Actor, User
from fieldops.interface.auth import get_current_actor, require_admin
from fieldops.services import user_service


router = APIRouter(prefix="/v1/users", tags=["users"])


@router.get("/me")
async def get_me(actor: Actor = Depends(get_current_actor)) -> User:
    return await user_service.get_user(user_id=actor.id)


@router.get("")
async def list_users(
    include_banned: bool = Query(default=False),
    _admin: Actor = Depends(require_admin),
) -> list[User]:
    return await user_service.list_users(include_banned=include_banned)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(data: UserCreate, actor: Actor = Depends(get_current_actor)) -> User:
    return await user_service.create_user(actor=actor, data=data)


@router.put("/{user_id}/roles")
async def update_user_roles(user_id: str, data: UserRolesUpdate, actor: Actor = Depends(get_current_actor)) -> User:
    return await user_service.update_user_roles(actor=actor, user_id=user_id, roles=data.roles)


@router.put("/{user_id}/ban")
async def set_user_banned(user_id: str, data: UserBanUpdate, actor: Actor = Depends(get_current_actor)) -> User:
    return await user_service.set_user_banned(actor=actor, user_id=user_id, banned=data.banned)
