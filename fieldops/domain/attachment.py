"""Attachment domain models."""

from datetime import datetime

from pydantic import BaseModel, Field


class Attachment(BaseModel):
    """File linked to a task."""

    id: int
    task_id: int | None = None
    provider: str
    pathname: str = Field(..., description="Storage key")
    size: int
    mime_type: str
    original_filename: str
    uploaded_by: str
    created_at: datetime
    url: str | None = Field(default=None, description="Signed, time-limited view URL")


class UploadedFile(BaseModel):
    """File contents received from a caller, before storage."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
