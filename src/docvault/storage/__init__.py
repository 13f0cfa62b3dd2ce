"""Object storage module for signed uploads and downloads.

Provides SigV4-signed access to a private S3-compatible bucket:
authenticated uploads, presigned download URLs and a streaming download
proxy. Requests are signed locally; no vendor SDK is involved.
"""

import datetime
import logging

from docvault import models

from . import client, proxy, validation

LOGGER = logging.getLogger(__name__)

__all__ = [
    'aclose',
    'check_upload_size',
    'initialize',
    'open_download',
    'presigned_url',
    'upload',
]


async def initialize() -> None:
    """Initialize the storage module.

    Creates the StorageClient singleton, which snapshots the
    credentials from the environment and opens the HTTP client.

    """
    LOGGER.info('Initializing storage module')
    storage_client = client.StorageClient.get_instance()
    await storage_client.initialize()
    LOGGER.info('Storage module initialized')


async def aclose() -> None:
    """Clean up storage module resources."""
    LOGGER.info('Closing storage module')
    if client.StorageClient._instance is not None:
        await client.StorageClient._instance.aclose()
    client.StorageClient._instance = None
    LOGGER.info('Storage module closed')


def check_upload_size(size: int) -> None:
    """Reject an upload by its declared size before the body is read.

    Raises:
        errors.ValidationError: The size exceeds ``max_file_size``.

    """
    storage_client = client.StorageClient.get_instance()
    validation.validate_file_size(size, storage_client.storage_settings)


async def upload(
    key: str,
    data: bytes,
    content_type: str | None = None,
) -> models.UploadResult:
    """Upload bytes to the bucket.

    Args:
        key: Object path relative to the bucket
        data: File content as bytes
        content_type: MIME type of the file

    Returns:
        The upload result

    """
    storage_client = client.StorageClient.get_instance()
    return await storage_client.upload(key, data, content_type)


def presigned_url(
    key: str,
    expires_in: int | None = None,
    now: datetime.datetime | None = None,
) -> str:
    """Generate a presigned GET URL for an object.

    Args:
        key: Object path relative to the bucket
        expires_in: URL expiration time in seconds (default: 1 hour)
        now: Signing instant, defaults to the current time

    Returns:
        Presigned URL string

    """
    storage_client = client.StorageClient.get_instance()
    return storage_client.presigned_url(key, expires_in, now)


async def open_download(
    url: str | None,
    filename: str | None = None,
) -> proxy.ProxiedDownload:
    """Start relaying an object store file through this service.

    Args:
        url: Object store URL, usually a presigned URL
        filename: Download filename presented to the caller

    Returns:
        The open download

    """
    storage_client = client.StorageClient.get_instance()
    return await proxy.open_download(
        storage_client.http_client,
        url,
        filename,
        validation.allowed_proxy_hosts(storage_client.storage_settings),
    )
