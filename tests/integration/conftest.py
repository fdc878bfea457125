"""Pytest configuration and fixtures for integration tests."""

from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from fieldops.domain.user import UserRole
from fieldops.interface.auth import issue_token
from fieldops.main import app


AuthHeaders = dict[str, str]


@pytest.fixture
def client(test_settings) -> Generator[TestClient, None, None]:
    """TestClient with the app lifespan running against the temp database."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers() -> Callable[..., AuthHeaders]:
    """Build Authorization headers carrying a signed identity token."""

    def _headers(user_id: str, *roles: UserRole) -> AuthHeaders:
        token = issue_token(user_id, list(roles) or [UserRole.WORKER])
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def admin_headers(client, auth_headers) -> AuthHeaders:
    headers = auth_headers("admin", UserRole.ADMIN)
    assert client.get("/v1/users/me", headers=headers).status_code == 200
    return headers


@pytest.fixture
def worker_headers(client, auth_headers) -> AuthHeaders:
    """Worker registered in the directory so tasks can be assigned to them."""
    headers = auth_headers("worker")
    assert client.get("/v1/users/me", headers=headers).status_code == 200
    return headers


@pytest.fixture
def other_worker_headers(client, auth_headers) -> AuthHeaders:
    headers = auth_headers("other")
    assert client.get("/v1/users/me", headers=headers).status_code == 200
    return headers
