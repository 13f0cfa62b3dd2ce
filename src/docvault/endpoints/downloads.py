"""Presigned download URL endpoint."""

import logging

import fastapi

from docvault import errors, models, storage

LOGGER = logging.getLogger(__name__)

downloads_router = fastapi.APIRouter(tags=['Downloads'])


@downloads_router.post('/r2-download')
async def create_signed_url(
    request: models.PresignRequest,
) -> models.PresignResult:
    """Mint a time-limited GET URL for one object.

    The URL carries its own SigV4 authorization in the query string and
    stays valid for ``expiresIn`` seconds (default one hour). Expiry is
    enforced by the object store.

    Raises:
        400: Missing ``filePath`` or out of range ``expiresIn``.
        500: Object store credentials are not configured.

    """
    if not request.file_path:
        raise errors.ValidationError('Missing required field: filePath')

    signed_url = storage.presigned_url(request.file_path, request.expires_in)
    LOGGER.info('Generated signed URL for: %s', request.file_path)
    return models.PresignResult(signed_url=signed_url)
