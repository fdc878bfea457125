"""Attachment viewing and deletion."""

import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import FileResponse

from fieldops.core.errors import ErrorCode, NotFoundError
from fieldops.core.storage import LocalDiskProvider, get_storage_provider
from fieldops.domain.user import Actor
from fieldops.interface.auth import get_current_actor
from fieldops.services import attachment_service


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/attachments", tags=["attachments"])


@router.get("/view/{token}")
async def view_attachment(token: str) -> FileResponse:
    """Serve a stored file. The signed token is the credential."""
    row = await attachment_service.resolve_view_token(token)
    storage = get_storage_provider()
    if not isinstance(storage, LocalDiskProvider):
        raise NotFoundError(attachment_service.ATTACHMENT_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_ATTACHMENT_NOT_FOUND)

    path = storage.path_for(row["pathname"])
    if not path.is_file():
        logger.error("Attachment object missing", extra={"attachment_id": row["id"], "key": row["pathname"]})
        raise NotFoundError(attachment_service.ATTACHMENT_NOT_FOUND_MESSAGE, code=ErrorCode.ERR_ATTACHMENT_NOT_FOUND)

    return FileResponse(
        path,
        media_type=row["mime_type"],
        filename=row["original_filename"],
        content_disposition_type="inline",
    )


@router.delete("/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(attachment_id: int, actor: Actor = Depends(get_current_actor)) -> Response:
    await attachment_service.delete_attachment(actor=actor, attachment_id=attachment_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
