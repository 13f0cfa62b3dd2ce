"""Input validation for storage operations."""

import logging

import httpx

from docvault import errors, settings
from docvault.storage import signing

LOGGER = logging.getLogger(__name__)


def validate_path(path: str | None) -> str:
    """Check that an object path is usable.

    Args:
        path: Object path relative to the bucket

    Returns:
        The path, unchanged.

    Raises:
        errors.ValidationError: If the path is empty or contains empty,
            ``.`` or ``..`` segments.

    """
    if not path:
        raise errors.ValidationError('Missing required field: filePath')
    for segment in path.split('/'):
        if segment in ('', '.', '..'):
            raise errors.ValidationError(
                f'Invalid file path {path!r}: empty or relative segment'
            )
    return path


def validate_file_size(
    size: int,
    storage_settings: settings.Storage,
) -> None:
    """Check that a file size in bytes is within limits."""
    if size > storage_settings.max_file_size:
        max_mb = storage_settings.max_file_size / (1024 * 1024)
        raise errors.ValidationError(
            f'File size {size} bytes exceeds maximum of {max_mb:.0f} MB'
        )


def validate_expires_in(expires_in: int) -> int:
    """Check a presigned URL lifetime in seconds."""
    if not 1 <= expires_in <= signing.MAX_EXPIRES_IN:
        raise errors.ValidationError(
            f'expiresIn must be between 1 and {signing.MAX_EXPIRES_IN} '
            f'seconds, got {expires_in}'
        )
    return expires_in


def allowed_proxy_hosts(storage_settings: settings.Storage) -> list[str]:
    """Return the domains the download proxy may fetch from."""
    domains = [
        domain.lower().strip('.')
        for domain in storage_settings.proxy_allowed_domains
        if domain
    ]
    if storage_settings.endpoint_url:
        host = httpx.URL(storage_settings.endpoint_url).host
        if host:
            domains.append(host.lower())
    return domains


def validate_proxy_target(
    url: str | None,
    allowed_domains: list[str],
) -> httpx.URL:
    """Check that a download proxy target points at the object store.

    The host must equal one of ``allowed_domains`` or be a subdomain of
    one. Substring matches such as ``r2.cloudflarestorage.com.evil.com``
    are rejected.

    Raises:
        errors.ValidationError: If the URL is missing, malformed or
            targets another host.

    """
    if not url:
        raise errors.ValidationError("Missing 'url' parameter")
    try:
        target = httpx.URL(url)
    except httpx.InvalidURL as err:
        raise errors.ValidationError(f'Invalid URL: {err}') from err
    host = target.host.lower()
    if target.scheme not in ('http', 'https') or not host:
        raise errors.ValidationError(
            'Invalid URL: must be an absolute http(s) URL'
        )
    for domain in allowed_domains:
        if host == domain or host.endswith(f'.{domain}'):
            return target
    LOGGER.warning('Rejected download proxy target host %s', host)
    raise errors.ValidationError(
        'Invalid URL: must be an object storage file URL'
    )
