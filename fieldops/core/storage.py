"""Attachment storage providers."""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from fieldops.core.config import settings
from fieldops.core.errors import ErrorCode, NotFoundError, UpstreamError


logger = logging.getLogger(__name__)

VIEW_URL_PREFIX = "/v1/attachments/view/"


@dataclass(frozen=True)
class SignedObject:
    """Payload recovered from a signed view token."""

    key: str
    filename: str | None = None


class StorageProvider(Protocol):
    """Object storage used for task attachments."""

    name: str

    async def put(self, *, key: str, body: bytes, content_type: str) -> str:
        """Store an object and return its key."""
        ...

    async def delete(self, key: str) -> None:
        """Remove an object. Missing objects are ignored."""
        ...

    async def get_signed_url(self, key: str, *, expires_in: int | None = None, filename: str | None = None) -> str:
        """Return a time-limited URL for viewing the object."""
        ...


def _view_serializer() -> URLSafeTimedSerializer:
    secret = settings.require_credential("secret_key", "Attachment URL signing")
    return URLSafeTimedSerializer(secret, salt="attachment-view")


class LocalDiskProvider:
    """Stores objects as files under the configured upload root."""

    name = "local-disk"

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or settings.upload_root).resolve()

    def path_for(self, key: str) -> Path:
        """Absolute file path for a key, refusing keys that escape the root."""
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            msg = f"Storage key escapes upload root: {key}"
            raise ValueError(msg)
        return path

    async def put(self, *, key: str, body: bytes, content_type: str) -> str:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, body)
        except OSError as e:
            logger.error("Failed to store object", extra={"key": key, "error": str(e)})
            raise UpstreamError from e
        logger.info("Stored object", extra={"key": key, "size": len(body), "content_type": content_type})
        return key

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        await asyncio.to_thread(path.unlink, missing_ok=True)
        logger.info("Deleted object", extra={"key": key})

    async def get_signed_url(self, key: str, *, expires_in: int | None = None, filename: str | None = None) -> str:
        payload: dict[str, str | int] = {"key": key, "ttl": expires_in or settings.attachment_url_ttl_seconds}
        if filename:
            payload["filename"] = filename
        return f"{VIEW_URL_PREFIX}{_view_serializer().dumps(payload)}"


def resolve_signed_key(token: str) -> SignedObject:
    """Verify a view token and return the object it points at.

    Raises:
        NotFoundError: If the token is invalid or older than its embedded TTL
    """
    serializer = _view_serializer()
    try:
        payload, signed_at = serializer.loads(token, return_timestamp=True)
        ttl = int(payload.get("ttl", settings.attachment_url_ttl_seconds))
        # Re-check with the token's own lifetime now that the signature is trusted
        serializer.loads(token, max_age=ttl)
    except (BadSignature, SignatureExpired) as err:
        logger.warning("Rejected attachment view token")
        raise NotFoundError("Không tìm thấy tệp đính kèm", code=ErrorCode.ERR_ATTACHMENT_NOT_FOUND) from err
    logger.debug("Resolved attachment view token", extra={"key": payload["key"], "signed_at": str(signed_at)})
    return SignedObject(key=payload["key"], filename=payload.get("filename"))


def get_storage_provider() -> StorageProvider:
    """Return the storage provider selected by settings.storage_provider."""
    if settings.storage_provider in {"local", "local-disk"}:
        return LocalDiskProvider()

    msg = f"Unsupported storage provider: {settings.storage_provider}"
    raise ValueError(msg)
