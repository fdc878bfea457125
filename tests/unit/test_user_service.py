"""Unit tests for user_service."""

import pytest

from fieldops.core.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.domain.create_models import UserCreate
from fieldops.domain.user import Actor, UserRole
from fieldops.services import user_service


@pytest.mark.unit
class TestCreateUser:
    """Tests for create_user and ensure_user."""

    async def test_admin_creates_worker(self, admin):
        """Test an admin adds a worker with a trimmed name."""
        user = await user_service.create_user(actor=admin, data=UserCreate(id="u-1", name="  Lý Thị Hoa "))

        assert user.name == "Lý Thị Hoa"
        assert user.roles == [UserRole.WORKER]
        assert not user.banned

    async def test_duplicate_id_rejected(self, admin, worker):
        """Test an existing ID cannot be created again."""
        with pytest.raises(ValidationFailedError):
            await user_service.create_user(actor=admin, data=UserCreate(id=worker.id, name="Trùng"))

    async def test_worker_cannot_create(self, worker):
        """Test workers cannot add users."""
        with pytest.raises(PermissionDeniedError):
            await user_service.create_user(actor=worker, data=UserCreate(id="u-2", name="Mới"))

    async def test_ensure_user_registers_once(self, db):
        """Test token roles apply only on first registration."""
        actor = Actor(id="new-admin", roles=["admin"])

        first = await user_service.ensure_user(actor=actor)
        second = await user_service.ensure_user(actor=Actor(id="new-admin", roles=["worker"]))

        assert first.roles == [UserRole.ADMIN]
        assert second.roles == [UserRole.ADMIN]

    async def test_ensure_user_defaults_to_worker(self, db):
        """Test a token without roles registers a worker."""
        user = await user_service.ensure_user(actor=Actor(id="plain"))
        assert user.roles == [UserRole.WORKER]


@pytest.mark.unit
class TestManageUsers:
    """Tests for listing, roles and bans."""

    async def test_list_excludes_banned(self, admin, worker, other_worker):
        """Test banned users are hidden unless asked for."""
        await user_service.set_user_banned(actor=admin, user_id=other_worker.id, banned=True)

        active = await user_service.list_users()
        everyone = await user_service.list_users(include_banned=True)

        assert other_worker.id not in [u.id for u in active]
        assert other_worker.id in [u.id for u in everyone]

    async def test_update_roles(self, admin, worker):
        """Test roles are replaced and deduplicated."""
        user = await user_service.update_user_roles(
            actor=admin, user_id=worker.id, roles=[UserRole.WORKER, UserRole.ADMIN, UserRole.ADMIN]
        )
        assert user.roles == [UserRole.ADMIN, UserRole.WORKER]

    async def test_update_roles_missing_user(self, admin):
        """Test changing roles of an unknown user raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await user_service.update_user_roles(actor=admin, user_id="ghost", roles=[UserRole.WORKER])

    async def test_cannot_ban_self(self, admin):
        """Test admins cannot ban themselves."""
        with pytest.raises(ValidationFailedError):
            await user_service.set_user_banned(actor=admin, user_id=admin.id, banned=True)

    async def test_get_missing_user(self, db):
        """Test fetching an unknown user raises NotFoundError."""
        with pytest.raises(NotFoundError):
            await user_service.get_user(user_id="ghost")
