"""Account endpoints for the signed-in user."""

from fastapi import APIRouter, Depends

from fieldops.domain.user import AccountDeletion, Actor
from fieldops.interface.auth import get_account_actor
from fieldops.services import account_service


router = APIRouter(prefix="/v1/account", tags=["account"])


@router.delete("")
async def delete_account(actor: Actor = Depends(get_account_actor)) -> AccountDeletion:
    return await account_service.delete_account(actor=actor)
