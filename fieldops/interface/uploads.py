"""Convert multipart uploads into domain files."""

from fastapi import UploadFile

from fieldops.domain.attachment import UploadedFile


async def read_upload(upload: UploadFile) -> UploadedFile:
    data = await upload.read()
    return UploadedFile(
        filename=upload.filename or "file",
        content_type=upload.content_type or "application/octet-stream",
        data=data,
    )


async def read_uploads(uploads: list[UploadFile] | None) -> list[UploadedFile]:
    """Read every non-empty upload field. Browsers send an empty part for an unused file input."""
    files = []
    for upload in uploads or []:
        if not upload.filename and not upload.size:
            continue
        files.append(await read_upload(upload))
    return files
