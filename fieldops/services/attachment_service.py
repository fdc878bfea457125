"""Task attachments: validation, storage and linking."""

import hashlib
import logging
import re
import uuid
from dataclasses import dataclass
from typing import Any

from fieldops.core import db_client
from fieldops.core.config import settings
from fieldops.core.errors import ErrorCode, NotFoundError, PermissionDeniedError, ValidationFailedError
from fieldops.core.logging import span
from fieldops.core.storage import StorageProvider, get_storage_provider, resolve_signed_key
from fieldops.domain.activity import ActivityAction
from fieldops.domain.attachment import Attachment, UploadedFile
from fieldops.domain.user import Actor
from fieldops.services import activity_service, permissions
from fieldops.services.task_lookup import NOT_ASSIGNED_MESSAGE, get_task_row, get_viewable_task_row


logger = logging.getLogger(__name__)

ATTACHMENT_NOT_FOUND_MESSAGE = "Không tìm thấy tệp đính kèm"
_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")
_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class StoredFile:
    """A file written to storage but not yet linked to a task."""

    key: str
    file: UploadedFile
    file_hash: str


def validate_files(files: list[UploadedFile], *, max_files: int | None = None) -> None:
    """Check file count, per-file and total size, and MIME type.

    Raises:
        ValidationFailedError: With per-file messages under the "files" field
    """
    limit = max_files or settings.upload_max_files
    errors: list[str] = []

    if not files:
        errors.append("Cần ít nhất một tệp")
    if len(files) > limit:
        errors.append(f"Tối đa {limit} tệp mỗi lần tải lên")

    max_file_bytes = settings.upload_max_per_file_mb * _BYTES_PER_MB
    for file in files:
        if file.size == 0:
            errors.append(f"{file.filename}: tệp rỗng")
        elif file.size > max_file_bytes:
            errors.append(f"{file.filename}: vượt quá {settings.upload_max_per_file_mb}MB")
        if file.content_type not in settings.upload_allowed_mime_types:
            errors.append(f"{file.filename}: định dạng {file.content_type} không được hỗ trợ")

    if sum(file.size for file in files) > settings.upload_max_total_mb * _BYTES_PER_MB:
        errors.append(f"Tổng dung lượng vượt quá {settings.upload_max_total_mb}MB")

    if errors:
        raise ValidationFailedError(fields={"files": errors})


def _storage_key(task_id: int, filename: str) -> str:
    safe_name = _UNSAFE_FILENAME_CHARS.sub("_", filename).strip("._") or "file"
    return f"tasks/{task_id}/{uuid.uuid4().hex}-{safe_name}"


async def store_files(
    *,
    task_id: int,
    files: list[UploadedFile],
    storage: StorageProvider,
) -> list[StoredFile]:
    """Write files to storage. On failure, already-written objects are removed."""
    stored: list[StoredFile] = []
    try:
        for file in files:
            key = await storage.put(
                key=_storage_key(task_id, file.filename), body=file.data, content_type=file.content_type
            )
            stored.append(StoredFile(key=key, file=file, file_hash=hashlib.sha256(file.data).hexdigest()))
    except Exception:
        await discard_files(stored, storage=storage)
        raise
    return stored


async def discard_files(stored: list[StoredFile], *, storage: StorageProvider) -> None:
    """Best-effort removal of stored objects that were never linked."""
    for item in stored:
        try:
            await storage.delete(item.key)
        except Exception as e:
            logger.error("Failed to remove orphaned object", extra={"key": item.key, "error": str(e)})


async def link_attachments(
    *,
    task_id: int,
    actor: Actor,
    stored: list[StoredFile],
    storage: StorageProvider,
) -> list[dict[str, Any]]:
    """Insert attachment rows for stored files. Run inside a transaction."""
    records = []
    for item in stored:
        record = await db_client.create_record(
            collection="attachments",
            data={
                "task_id": task_id,
                "provider": storage.name,
                "pathname": item.key,
                "size": item.file.size,
                "mime_type": item.file.content_type,
                "original_filename": item.file.filename,
                "file_hash": item.file_hash,
                "uploaded_by": actor.id,
            },
        )
        records.append(record)
    return records


async def to_attachment(record: dict[str, Any], *, storage: StorageProvider) -> Attachment:
    """Attachment model with a freshly signed view URL."""
    url = await storage.get_signed_url(record["pathname"], filename=record["original_filename"])
    return Attachment.model_validate({**record, "url": url})


async def upload_task_attachments(
    *,
    actor: Actor,
    task_id: int,
    files: list[UploadedFile],
    storage: StorageProvider | None = None,
) -> list[Attachment]:
    """Store files and link them to a task with one activity record.

    Storage happens first; linking rows and the activity commit together. If
    linking fails the stored objects are deleted again.

    Raises:
        NotFoundError: If the task does not exist
        PermissionDeniedError: If the actor is neither admin nor assigned
        ValidationFailedError: If the files break the upload limits
    """
    with span("attachment_service.upload_task_attachments"):
        storage = storage or get_storage_provider()
        row = await get_task_row(task_id)
        if not permissions.can_upload_attachment(actor, row["assignee_ids"]):
            raise PermissionDeniedError(NOT_ASSIGNED_MESSAGE)
        validate_files(files)

        stored = await store_files(task_id=task_id, files=files, storage=storage)
        try:
            async with db_client.transaction():
                records = await link_attachments(task_id=task_id, actor=actor, stored=stored, storage=storage)
                await activity_service.create_activity(
                    topic=activity_service.get_activity_topic(task_id),
                    user_id=actor.id,
                    action=ActivityAction.TASK_ATTACHMENTS_UPLOADED,
                    payload={
                        "attachmentIds": [record["id"] for record in records],
                        "filenames": [record["original_filename"] for record in records],
                    },
                )
        except Exception:
            logger.warning("Linking attachments failed, removing stored files", extra={"task_id": task_id})
            await discard_files(stored, storage=storage)
            raise

        logger.info("Uploaded attachments", extra={"task_id": task_id, "count": len(records), "user_id": actor.id})
        return [await to_attachment(record, storage=storage) for record in records]


async def list_task_attachments(
    *,
    actor: Actor,
    task_id: int,
    storage: StorageProvider | None = None,
) -> list[Attachment]:
    """List a task's live attachments, oldest first, with signed URLs."""
    storage = storage or get_storage_provider()
    await get_viewable_task_row(actor=actor, task_id=task_id)
    rows = await db_client.fetch_all(
        "SELECT * FROM attachments WHERE task_id = ? AND deleted_at IS NULL ORDER BY id",
        (task_id,),
    )
    return [await to_attachment(row, storage=storage) for row in rows]


async def get_attachment_row(attachment_id: int) -> dict[str, Any]:
    row = await db_client.fetch_one(
        "SELECT * FROM attachments WHERE id = ? AND deleted_at IS NULL",
        (attachment_id,),
    )
    if row is None:
        raise NotFoundError(ATTACHMENT_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_ATTACHMENT_NOT_FOUND)
    return row


async def delete_attachment(*, actor: Actor, attachment_id: int) -> None:
    """Soft-delete an attachment. Allowed for admins and the uploader.

    The stored object is kept so historic activity entries stay resolvable.
    """
    with span("attachment_service.delete_attachment"):
        row = await get_attachment_row(attachment_id)
        if not permissions.can_delete_attachment(actor, row["uploaded_by"]):
            raise PermissionDeniedError
        await db_client.update_record(
            collection="attachments",
            record_id=attachment_id,
            data={"deleted_at": db_client.utc_now(), "deleted_by": actor.id},
        )
        logger.info("Deleted attachment", extra={"attachment_id": attachment_id, "user_id": actor.id})


async def resolve_view_token(token: str) -> dict[str, Any]:
    """Verify a signed view token and return the live attachment row it refers to.

    Raises:
        NotFoundError: If the token is invalid, expired or the attachment is gone
    """
    signed = resolve_signed_key(token)
    row = await db_client.fetch_one(
        "SELECT * FROM attachments WHERE pathname = ? AND deleted_at IS NULL",
        (signed.key,),
    )
    if row is None:
        raise NotFoundError(ATTACHMENT_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_ATTACHMENT_NOT_FOUND)
    return row
