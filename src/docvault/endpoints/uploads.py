"""Authenticated upload endpoint."""

import logging
import typing

import fastapi

from docvault import errors, models, storage
from docvault.storage import paths

LOGGER = logging.getLogger(__name__)

uploads_router = fastapi.APIRouter(tags=['Uploads'])


@uploads_router.post('/r2-upload')
async def create_upload(
    file: typing.Annotated[
        fastapi.UploadFile | None,
        fastapi.File(),
    ] = None,
    file_path: typing.Annotated[
        str | None,
        fastapi.Form(alias='filePath'),
    ] = None,
    folder: typing.Annotated[str | None, fastapi.Form()] = None,
) -> models.UploadResult:
    """Upload a file to the bucket.

    Accepts a multipart upload with the file bytes and the destination
    ``filePath``. ``folder`` is only applied when ``filePath`` has no
    folder of its own. The file is buffered in memory so its SHA-256
    can be signed before the request is sent.

    Returns:
        The stored path, its URL and the size in bytes.

    Raises:
        400: Missing file or path, invalid path or oversized file.
        500: Object store credentials are not configured.
        502: The object store rejected or failed the upload.

    """
    if file is None or not file_path:
        raise errors.ValidationError(
            'Missing required fields: file or filePath'
        )

    key = paths.resolve(file_path, folder)
    if file.size is not None:
        storage.check_upload_size(file.size)
    data = await file.read()
    result = await storage.upload(key, data, file.content_type)
    LOGGER.info('File uploaded successfully: %s (%d bytes)', key, result.size)
    return result
