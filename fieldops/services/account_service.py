"""Self-service account closure."""

import logging

from fieldops.core import db_client
from fieldops.core.logging import span
from fieldops.domain.activity import ActivityAction
from fieldops.domain.user import AccountDeletion, Actor
from fieldops.services import activity_service, user_service


logger = logging.getLogger(__name__)


async def _record(user_id: str, action: ActivityAction, payload: dict | None = None) -> None:
    await activity_service.create_activity(
        topic=activity_service.get_activity_topic(),
        user_id=user_id,
        action=action,
        payload=payload,
    )


async def delete_account(*, actor: Actor) -> AccountDeletion:
    """Close the actor's own account.

    The local user is marked deleted and banned, so their tokens stop
    working. Tasks, check-ins, payments and activities they took part in
    are kept. Every attempt is written to the general feed; repeating the
    call reports `already_deleted` instead of failing.
    """
    with span("account_service.delete_account"):
        user = await user_service.find_user(user_id=actor.id)
        if user is not None and user.deleted_at is not None:
            await _record(actor.id, ActivityAction.ACCOUNT_DELETION_ALREADY_DELETED)
            logger.info("Account already deleted", extra={"user_id": actor.id})
            return AccountDeletion(user_id=actor.id, already_deleted=True)

        await _record(actor.id, ActivityAction.ACCOUNT_DELETION_INITIATED)
        try:
            async with db_client.transaction():
                if user is None:
                    await user_service.ensure_user(actor=actor)
                await db_client.update_record(
                    collection="users",
                    record_id=actor.id,
                    data={"banned": True, "deleted_at": db_client.utc_now()},
                )
                await _record(actor.id, ActivityAction.ACCOUNT_DELETION_COMPLETED)
        except Exception as err:
            logger.exception("Account deletion failed", extra={"user_id": actor.id})
            await _record(actor.id, ActivityAction.ACCOUNT_DELETION_FAILED, {"error": type(err).__name__})
            raise

        logger.info("Account deleted", extra={"user_id": actor.id})
        return AccountDeletion(user_id=actor.id)
