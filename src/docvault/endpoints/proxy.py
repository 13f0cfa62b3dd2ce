"""Streaming download proxy endpoint."""

import logging

import fastapi
from fastapi import responses

from docvault import models, storage

LOGGER = logging.getLogger(__name__)

proxy_router = fastapi.APIRouter(tags=['Downloads'])


async def _stream(
    url: str | None,
    filename: str | None,
) -> responses.StreamingResponse:
    download = await storage.open_download(url, filename)
    # Content-Type travels in headers so text types get no added charset
    return responses.StreamingResponse(
        download.body, headers=download.headers
    )


@proxy_router.get('/proxy-download')
async def proxy_download(
    url: str | None = None,
    filename: str | None = None,
) -> responses.StreamingResponse:
    """Relay an object store file as an attachment.

    Parameters:
        url: Object store URL, usually a presigned URL.
        filename: Name offered to the browser's "save as" dialog.

    Raises:
        400: Missing URL or a host outside the object store domain.
        502: The object store fetch failed.

    """
    return await _stream(url, filename)


@proxy_router.post('/proxy-download')
async def proxy_download_post(
    request: models.ProxyRequest,
) -> responses.StreamingResponse:
    """Relay an object store file as an attachment (JSON body)."""
    return await _stream(request.url, request.filename)
