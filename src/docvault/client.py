"""HTTP client for the docvault storage endpoints.

Used by the rest of the application to upload documents, obtain
presigned download URLs and build proxied download links without
holding object store credentials.
"""

import collections.abc
import logging
import mimetypes
import pathlib
import typing

import httpx

from docvault import models
from docvault.storage import paths

LOGGER = logging.getLogger(__name__)


class StorageServiceError(Exception):
    """Raised when a docvault endpoint answers with an error."""

    def __init__(
        self,
        status_code: int,
        message: str,
        missing: list[str] | None = None,
    ) -> None:
        super().__init__(f'{message} ({status_code})')
        self.status_code = status_code
        self.message = message
        self.missing = missing or []


class DocumentStorageClient:
    """Async client for the upload, presign and proxy endpoints.

    Args:
        base_url: Root URL of the docvault service
        headers: Extra headers sent with every request, e.g.
            ``authorization`` or ``apikey``
        http_client: Client to use instead of creating one

    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = httpx.URL(base_url.rstrip('/') + '/')
        self._headers = headers or {}
        self._client = http_client or httpx.AsyncClient()
        self._owns_client = http_client is None

    async def __aenter__(self) -> typing.Self:
        return self

    async def __aexit__(self, *_args: typing.Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _url(self, endpoint: str) -> httpx.URL:
        return self._base_url.join(endpoint)

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        message = response.reason_phrase or 'Request failed'
        missing: list[str] | None = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get('error', message)
            missing = body.get('missing')
        LOGGER.error(
            'docvault request to %s failed: %s',
            response.request.url.path,
            message,
        )
        raise StorageServiceError(response.status_code, message, missing)

    async def upload(
        self,
        file_path: str,
        data: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> models.UploadResult:
        """Upload a file to the fixed bucket.

        Args:
            file_path: Full object path including the folder, e.g.
                ``application-documents/app1_1700000000000.pdf``
            data: File content
            filename: Name sent with the multipart part, defaults to the
                last segment of ``file_path``
            content_type: MIME type, guessed from the name if omitted

        Returns:
            The upload result with the object's URL.

        Raises:
            StorageServiceError: The service rejected the upload.

        """
        if filename is None:
            filename = pathlib.PurePosixPath(file_path).name
        if content_type is None:
            content_type = (
                mimetypes.guess_type(filename)[0]
                or 'application/octet-stream'
            )
        form = {'filePath': file_path}
        folder = paths.folder_of(file_path)
        if folder:
            form['folder'] = folder

        response = await self._client.post(
            self._url('r2-upload'),
            data=form,
            files={'file': (filename, data, content_type)},
            headers=self._headers,
        )
        self._raise_for_error(response)
        return models.UploadResult.model_validate(response.json())

    async def signed_url(
        self,
        file_path: str,
        expires_in: int = 3600,
    ) -> str:
        """Get a presigned download URL for an object.

        Raises:
            StorageServiceError: The service could not sign the URL.

        """
        response = await self._client.post(
            self._url('r2-download'),
            json={'filePath': file_path, 'expiresIn': expires_in},
            headers=self._headers,
        )
        self._raise_for_error(response)
        result = models.PresignResult.model_validate(response.json())
        return result.signed_url

    def download_url(self, url: str, filename: str | None = None) -> str:
        """Build the proxy URL that downloads ``url`` as an attachment."""
        params = {'url': url}
        if filename:
            params['filename'] = filename
        return str(self._url('proxy-download').copy_merge_params(params))

    async def download(
        self,
        url: str,
        filename: str | None = None,
    ) -> collections.abc.AsyncIterator[bytes]:
        """Stream a file through the download proxy.

        Raises:
            StorageServiceError: The proxy refused or failed the fetch.

        """
        params = {'url': url}
        if filename:
            params['filename'] = filename
        async with self._client.stream(
            'GET',
            self._url('proxy-download'),
            params=params,
            headers=self._headers,
        ) as response:
            if not response.is_success:
                await response.aread()
                self._raise_for_error(response)
            async for chunk in response.aiter_bytes():
                yield chunk
