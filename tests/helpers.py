"""Builders shared by unit and integration tests."""

from decimal import Decimal

from fieldops.core import db_client
from fieldops.domain.attachment import UploadedFile
from fieldops.domain.create_models import CustomerInput, GeoLocationInput, TaskCreate
from fieldops.domain.user import User, UserRole


TEST_SECRET_KEY = "test-secret-key-for-signing"

SITE_LAT = 10.7769
SITE_LNG = 106.7009


async def create_user(user_id: str, *, roles: list[UserRole] | None = None, name: str | None = None) -> User:
    """Insert a user row directly."""
    record = await db_client.create_record(
        collection="users",
        data={
            "id": user_id,
            "name": name or user_id.capitalize(),
            "email": f"{user_id}@example.com",
            "roles": [role.value for role in roles or [UserRole.WORKER]],
            "banned": False,
        },
    )
    return User.model_validate(record)


def make_task_create(**overrides) -> TaskCreate:
    data = {
        "title": "Sửa điều hòa",
        "description": "Máy lạnh phòng khách không mát",
        "customer": CustomerInput(name="Lê Văn Cường", phone="0901234567"),
        "geo_location": GeoLocationInput(name="Nhà khách", address="12 Đường Lê Lợi", lat=SITE_LAT, lng=SITE_LNG),
        "assignee_ids": [],
        "expected_revenue": Decimal(500000),
    }
    data.update(overrides)
    return TaskCreate(**data)


def make_file(
    name: str = "photo.jpg", content_type: str = "image/jpeg", data: bytes = b"\xff\xd8fake-jpeg"
) -> UploadedFile:
    return UploadedFile(filename=name, content_type=content_type, data=data)
