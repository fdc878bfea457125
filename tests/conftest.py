"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncIterator

import pytest

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.storage import LocalDiskProvider
from fieldops.domain.task import Task
from fieldops.domain.user import Actor, UserRole
from fieldops.services import task_service
from tests.helpers import TEST_SECRET_KEY, create_user, make_task_create


@pytest.fixture(autouse=True)
def test_settings(tmp_path, monkeypatch):
    """Point the database and upload root at a per-test temp directory."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "fieldops.db"))
    monkeypatch.setattr(settings, "upload_root", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings, "secret_key", TEST_SECRET_KEY)
    monkeypatch.setattr(settings, "default_timezone", "Asia/Ho_Chi_Minh")
    return settings


@pytest.fixture
async def db(test_settings) -> AsyncIterator[None]:
    """Fresh schema in a temp SQLite file; connection closed afterwards."""
    await db_client.init_db()
    yield
    await db_client.close_connection()


@pytest.fixture
def storage(tmp_path) -> LocalDiskProvider:
    return LocalDiskProvider(tmp_path / "uploads")


@pytest.fixture
async def admin(db) -> Actor:
    return (await create_user("admin", roles=[UserRole.ADMIN], name="Quản trị")).to_actor()


@pytest.fixture
async def worker(db) -> Actor:
    return (await create_user("worker", name="Nguyễn Văn An")).to_actor()


@pytest.fixture
async def other_worker(db) -> Actor:
    return (await create_user("other", name="Trần Thị Bình")).to_actor()


@pytest.fixture
def task_factory(admin):
    """Create tasks through the service as the admin."""

    async def _create(**overrides) -> Task:
        return await task_service.create_task(actor=admin, data=make_task_create(**overrides))

    return _create
