"""Streaming download proxy for object store files.

Fetches an allowlisted object store URL server-side and relays the body
chunk by chunk, so callers can force a "save as" download without the
browser holding credentials and without the whole object in memory.

"""

import collections.abc
import dataclasses
import logging
from urllib import parse

import httpx

from docvault import errors
from docvault.storage import validation

LOGGER = logging.getLogger(__name__)

DEFAULT_FILENAME = 'download'

# Upstream headers relayed to the caller as-is
_COPIED_HEADERS = ('content-length', 'content-encoding')


@dataclasses.dataclass
class ProxiedDownload:
    """An open upstream response ready to be relayed."""

    filename: str
    headers: dict[str, str]
    body: collections.abc.AsyncIterator[bytes]


def filename_from_url(url: httpx.URL) -> str:
    """Return the decoded last path segment of a URL."""
    segment = url.path.rsplit('/', 1)[-1]
    return segment or DEFAULT_FILENAME


def content_disposition(filename: str) -> str:
    """Build an RFC 6266 attachment disposition for a UTF-8 filename."""
    return f"attachment; filename*=UTF-8''{parse.quote(filename, safe='')}"


async def _relay(
    response: httpx.Response,
    url: httpx.URL,
) -> collections.abc.AsyncIterator[bytes]:
    """Yield raw upstream chunks and always close the upstream response.

    Chunks are pulled only when the consumer asks for the next one, so a
    slow client slows the upstream read. Cancellation on client
    disconnect runs the ``finally`` block and releases the connection.

    """
    sent = 0
    try:
        async for chunk in response.aiter_raw():
            sent += len(chunk)
            yield chunk
    except httpx.HTTPError as err:
        LOGGER.error(
            'Download from %s failed after %d bytes: %s',
            url.host,
            sent,
            err,
        )
        raise errors.StreamingError(
            f'Upstream stream failed after {sent} bytes'
        ) from err
    finally:
        await response.aclose()
    LOGGER.debug('Relayed %d bytes from %s', sent, url.host)


async def open_download(
    http_client: httpx.AsyncClient,
    url: str | None,
    filename: str | None,
    allowed_domains: list[str],
) -> ProxiedDownload:
    """Validate the target, start the upstream fetch and wait for headers.

    No request is made when the URL fails validation.

    Args:
        http_client: Client used for the upstream request
        url: Object store URL to fetch, typically a presigned URL
        filename: Download filename, defaults to the URL's last segment
        allowed_domains: Object store domains the proxy may contact

    Returns:
        The open download; its ``body`` must be fully consumed or closed.

    Raises:
        errors.ValidationError: The URL is missing or not allowed.
        errors.UpstreamTransportError: The store was unreachable or
            answered with a non-2xx status.

    """
    target = validation.validate_proxy_target(url, allowed_domains)
    LOGGER.info('Proxying download from %s%s', target.host, target.path)

    request = http_client.build_request('GET', target)
    try:
        response = await http_client.send(request, stream=True)
    except httpx.HTTPError as err:
        LOGGER.error('Download from %s failed: %s', target.host, err)
        raise errors.UpstreamTransportError(
            'Failed to fetch object store file'
        ) from err

    if not response.is_success:
        try:
            body = (await response.aread()).decode('utf-8', 'replace')
        except httpx.HTTPError:
            body = ''
        finally:
            await response.aclose()
        LOGGER.error(
            'Download from %s failed with %d: %s',
            target.host,
            response.status_code,
            body,
        )
        raise errors.UpstreamTransportError(
            'Failed to fetch object store file',
            status=response.status_code,
            body=body,
        )

    download_name = filename or filename_from_url(target)
    headers = {
        'Content-Disposition': content_disposition(download_name),
        'Content-Type': response.headers.get(
            'content-type', 'application/octet-stream'
        ),
    }
    for name in _COPIED_HEADERS:
        value = response.headers.get(name)
        if value:
            headers[name.title()] = value
    return ProxiedDownload(
        filename=download_name,
        headers=headers,
        body=_relay(response, target),
    )
