"""User and actor domain models."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator


MAX_NAME_LENGTH = 100


class UserRole(StrEnum):
    """Role granted by the identity provider."""

    ADMIN = "admin"
    WORKER = "worker"


class Actor(BaseModel):
    """Authenticated identity performing an operation.

    Roles are a set: one actor may be both admin and worker.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="External user ID from the identity provider")
    roles: frozenset[UserRole] = Field(default=frozenset(), description="Role claims carried by the identity")

    @field_validator("roles", mode="before")
    @classmethod
    def drop_unknown_roles(cls, v: object) -> object:
        """Ignore role claims outside the known set instead of failing the request."""
        if isinstance(v, list | tuple | set | frozenset):
            known = {role.value for role in UserRole}
            return frozenset(role for role in v if role in known)
        return v


class User(BaseModel):
    """User data transfer object."""

    id: str = Field(..., description="External user ID")
    name: str = Field(..., description="Display name")
    email: str | None = Field(default=None, description="Email address")
    phone: str | None = Field(default=None, description="Phone number")
    roles: list[UserRole] = Field(default_factory=lambda: [UserRole.WORKER], description="Granted roles")
    banned: bool = Field(default=False, description="Banned users cannot authenticate")
    deleted_at: datetime | None = Field(default=None, description="Set when the user closed their own account")
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def validate_name_usable(cls, v: str) -> str:
        """Validate name is non-empty after trimming and not too long."""
        v = v.strip()

        if not v:
            raise ValueError("Name cannot be empty")

        if len(v) > MAX_NAME_LENGTH:
            raise ValueError(f"Name too long (max {MAX_NAME_LENGTH} characters)")

        return v

    def to_actor(self) -> Actor:
        """Actor view of this user with the locally stored roles."""
        return Actor(id=self.id, roles=frozenset(self.roles))


class AccountDeletion(BaseModel):
    """Outcome of closing an account."""

    user_id: str
    already_deleted: bool = False
