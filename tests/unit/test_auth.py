"""Unit tests for identity token handling."""

import pytest
from itsdangerous import URLSafeTimedSerializer

from fieldops.core import db_client
from fieldops.core.errors import ErrorCode, PermissionDeniedError, UnauthenticatedError
from fieldops.domain.user import UserRole
from fieldops.interface.auth import get_current_actor, identity_provider, issue_token, require_admin
from fieldops.services import user_service
from tests.helpers import TEST_SECRET_KEY


@pytest.mark.unit
class TestSignedTokenIdentityProvider:
    """Tests for token issue and verification."""

    def test_round_trip(self):
        """Test an issued token verifies back to the same actor."""
        token = issue_token("w1", [UserRole.WORKER, UserRole.ADMIN])

        actor = identity_provider.verify(token)

        assert actor.id == "w1"
        assert actor.roles == {UserRole.WORKER, UserRole.ADMIN}

    def test_tampered_token(self):
        """Test a modified token is rejected."""
        token = issue_token("w1", [UserRole.WORKER])

        with pytest.raises(UnauthenticatedError):
            identity_provider.verify(("B" if token[0] == "A" else "A") + token[1:])

    def test_token_signed_with_other_secret(self):
        """Test tokens signed with another secret are rejected."""
        forged = URLSafeTimedSerializer("wrong-secret", salt="identity").dumps({"id": "w1", "roles": ["admin"]})

        with pytest.raises(UnauthenticatedError):
            identity_provider.verify(forged)

    def test_token_without_id(self):
        """Test tokens without a user ID are rejected."""
        token = URLSafeTimedSerializer(TEST_SECRET_KEY, salt="identity").dumps({"roles": ["admin"]})

        with pytest.raises(UnauthenticatedError):
            identity_provider.verify(token)

    def test_expired_token(self, monkeypatch, test_settings):
        """Test a token past its max age is rejected."""
        token = issue_token("w1", [UserRole.WORKER])
        monkeypatch.setattr(test_settings, "identity_token_max_age_seconds", -1)

        with pytest.raises(UnauthenticatedError):
            identity_provider.verify(token)

    def test_unknown_roles_ignored(self):
        """Test unknown role claims are dropped."""
        actor = identity_provider.verify(issue_token("w1", ["worker", "superuser"]))

        assert actor.roles == {UserRole.WORKER}


@pytest.mark.unit
class TestGetCurrentActor:
    """Tests for the request identity dependency."""

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Token abc"])
    async def test_missing_or_malformed_header(self, db, header):
        """Test missing or non-bearer Authorization headers are rejected."""
        with pytest.raises(UnauthenticatedError):
            await get_current_actor(authorization=header)

    async def test_registers_user_on_first_sight(self, db):
        """Test a new token holder is added to the directory."""
        actor = await get_current_actor(authorization=f"Bearer {issue_token('new-worker', [UserRole.WORKER])}")

        assert actor.id == "new-worker"
        user = await user_service.get_user(user_id="new-worker")
        assert user.roles == [UserRole.WORKER]

    async def test_local_roles_are_authoritative(self, worker):
        """Test directory roles override the token's role claims."""
        token = issue_token(worker.id, [UserRole.ADMIN])

        actor = await get_current_actor(authorization=f"Bearer {token}")

        assert actor.roles == {UserRole.WORKER}

    async def test_banned_user_rejected(self, worker):
        """Test banned users get ERR_USER_BANNED."""
        await db_client.update_record(collection="users", record_id=worker.id, data={"banned": True})

        with pytest.raises(PermissionDeniedError) as exc_info:
            await get_current_actor(authorization=f"Bearer {issue_token(worker.id, [UserRole.WORKER])}")

        assert exc_info.value.code == ErrorCode.ERR_USER_BANNED

    async def test_require_admin(self, admin, worker):
        """Test the admin dependency lets only admins through."""
        assert await require_admin(actor=admin) == admin

        with pytest.raises(PermissionDeniedError):
            await require_admin(actor=worker)
