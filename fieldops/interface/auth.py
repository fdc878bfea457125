"""Identity boundary: bearer tokens in, Actor out."""

import logging
from typing import Protocol

from fastapi import Depends, Header
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from fieldops.core.config import settings
from fieldops.core.errors import ErrorCode, PermissionDeniedError, UnauthenticatedError
from fieldops.domain.user import Actor, UserRole
from fieldops.services import permissions, user_service


logger = logging.getLogger(__name__)

BANNED_MESSAGE = "Tài khoản của bạn đã bị khóa"


class IdentityProvider(Protocol):
    """Turns an opaque credential into an Actor. Never sees passwords."""

    def verify(self, token: str) -> Actor:
        """Return the actor for a token, or raise UnauthenticatedError."""
        ...


class SignedTokenIdentityProvider:
    """Identity carried in itsdangerous-signed tokens of the form {id, roles}."""

    salt = "identity"

    def _serializer(self) -> URLSafeTimedSerializer:
        secret = settings.require_credential("secret_key", "Identity token signing")
        return URLSafeTimedSerializer(secret, salt=self.salt)

    def issue_token(self, *, user_id: str, roles: list[UserRole] | list[str]) -> str:
        """Sign a token for tooling and tests."""
        return self._serializer().dumps({"id": user_id, "roles": [str(role) for role in roles]})

    def verify(self, token: str) -> Actor:
        try:
            claims = self._serializer().loads(token, max_age=settings.identity_token_max_age_seconds)
        except (BadSignature, SignatureExpired) as err:
            logger.warning("identity_token_rejected", extra={"reason": type(err).__name__})
            raise UnauthenticatedError from err

        if not isinstance(claims, dict) or not claims.get("id"):
            raise UnauthenticatedError
        return Actor(id=str(claims["id"]), roles=claims.get("roles") or [])


token_signer = SignedTokenIdentityProvider()
identity_provider: IdentityProvider = token_signer


def issue_token(user_id: str, roles: list[UserRole] | list[str]) -> str:
    """Issue a signed identity token."""
    return token_signer.issue_token(user_id=user_id, roles=roles)


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise UnauthenticatedError
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise UnauthenticatedError
    return token.strip()


async def get_current_actor(authorization: str | None = Header(default=None)) -> Actor:
    """Resolve the request's actor.

    Token claims register a user on first sight; afterwards the local
    directory's roles are authoritative so role changes apply immediately.

    Raises:
        UnauthenticatedError: If the token is missing or invalid (401)
        PermissionDeniedError: If the user is banned (403)
    """
    claimed = identity_provider.verify(_bearer_token(authorization))
    user = await user_service.ensure_user(actor=claimed)
    if user.banned:
        logger.warning("banned_user_request", extra={"user_id": user.id})
        raise PermissionDeniedError(BANNED_MESSAGE, code=ErrorCode.ERR_USER_BANNED)
    return user.to_actor()


async def get_account_actor(authorization: str | None = Header(default=None)) -> Actor:
    """Resolve the actor closing their own account.

    Like `get_current_actor`, but an already closed account still gets
    through so that repeated closure requests stay idempotent.
    """
    claimed = identity_provider.verify(_bearer_token(authorization))
    user = await user_service.find_user(user_id=claimed.id)
    if user is None:
        return claimed
    if user.banned and user.deleted_at is None:
        logger.warning("banned_user_request", extra={"user_id": user.id})
        raise PermissionDeniedError(BANNED_MESSAGE, code=ErrorCode.ERR_USER_BANNED)
    return user.to_actor()


async def require_admin(actor: Actor = Depends(get_current_actor)) -> Actor:
    """Dependency that only lets admins through."""
    if not permissions.is_admin(actor):
        raise PermissionDeniedError
    return actor


async def require_report_viewer(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not permissions.can_view_reports(actor):
        raise PermissionDeniedError
    return actor
