"""Storage client singleton for signed object store operations."""

import asyncio
import datetime
import logging
import typing

import httpx

from docvault import errors, models, settings
from docvault.storage import credentials as credentials_
from docvault.storage import signing, validation

LOGGER = logging.getLogger(__name__)


class StorageClient:
    """Singleton client for the private object store bucket.

    Requests are signed locally with SigV4 and sent with httpx. The
    client owns one ``httpx.AsyncClient`` for its lifetime; the bucket
    comes from settings and is never chosen by callers.

    """

    _instance: typing.ClassVar[typing.Optional['StorageClient']] = None
    _lock: typing.ClassVar[asyncio.Lock] = asyncio.Lock()

    def __init__(
        self,
        credential_provider: credentials_.CredentialProvider | None = None,
        storage_settings: settings.Storage | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = storage_settings or settings.Storage()
        self._credentials = (
            credential_provider or credentials_.SettingsCredentialProvider()
        )
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._initialized = False

    @classmethod
    def get_instance(cls) -> 'StorageClient':
        """Get the singleton StorageClient instance.

        Returns:
            The singleton StorageClient instance.

        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def storage_settings(self) -> settings.Storage:
        return self._settings

    @property
    def http_client(self) -> httpx.AsyncClient:
        """The shared HTTP client, created on first use."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
            self._owns_http_client = True
        return self._http_client

    async def initialize(self) -> None:
        """Create the HTTP client used for object store requests."""
        if self._initialized:
            return

        async with self._lock:
            if self._initialized:
                return
            _ = self.http_client
            LOGGER.debug(
                'Storage client using bucket %s',
                self._settings.bucket,
            )
            self._initialized = True

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""
        async with self._lock:
            if self._owns_http_client and self._http_client is not None:
                await self._http_client.aclose()
                self._http_client = None
            self._initialized = False
            LOGGER.debug('Storage client closed')

    def endpoint(self) -> tuple[str, str]:
        """Return the ``(scheme, host)`` of the object store endpoint.

        Raises:
            errors.ConfigurationError: If credentials are missing.

        """
        if self._settings.endpoint_url:
            url = httpx.URL(self._settings.endpoint_url)
            return url.scheme, url.netloc.decode('ascii')
        account_id = self._credentials.get().account_id
        return 'https', f'{account_id}.{self._settings.endpoint_domain}'

    def locate(self, key: str) -> tuple[str, str, str]:
        """Return the ``(host, path, url)`` of an object in the bucket.

        ``path`` is the encoded request path that gets signed and ``url``
        is the unsigned object URL.

        """
        scheme, host = self.endpoint()
        path = signing.encode_object_path(self._settings.bucket, key)
        return host, path, f'{scheme}://{host}{path}'

    async def upload(
        self,
        key: str,
        data: bytes,
        content_type: str | None = None,
        now: datetime.datetime | None = None,
    ) -> models.UploadResult:
        """Write bytes to an object with a signed ``PUT``.

        Args:
            key: Object path relative to the bucket
            data: File content as bytes
            content_type: MIME type of the file
            now: Signing instant, defaults to the current time

        Returns:
            The upload result including the object's URL.

        Raises:
            errors.ValidationError: Invalid path or oversized file.
            errors.ConfigurationError: Credentials are missing.
            errors.UpstreamAuthError: The store rejected the signature.
            errors.UploadFailed: The store answered with another failure.
            errors.UpstreamTransportError: The store was unreachable.

        """
        validation.validate_path(key)
        validation.validate_file_size(len(data), self._settings)
        credentials = self._credentials.get()
        host, path, url = self.locate(key)

        headers = signing.sign_headers(
            credentials,
            'PUT',
            host,
            path,
            signing.hash_payload(data),
            now or datetime.datetime.now(datetime.UTC),
        )
        headers['Content-Type'] = (
            content_type or self._settings.default_content_type
        )

        try:
            response = await self.http_client.put(
                url,
                headers=headers,
                content=data,
            )
        except httpx.HTTPError as err:
            LOGGER.error('Upload of %s failed: %s', key, err)
            raise errors.UpstreamTransportError(
                f'Object store request failed: {err}'
            ) from err

        if not response.is_success:
            LOGGER.error(
                'Upload of %s rejected with %d: %s',
                key,
                response.status_code,
                response.text,
            )
            error_class: type[errors.UpstreamError] = errors.UploadFailed
            if response.status_code in (401, 403):
                error_class = errors.UpstreamAuthError
            raise error_class(
                f'Upload failed: {response.status_code}',
                status=response.status_code,
                body=response.text,
            )

        LOGGER.info(
            'Uploaded %s to bucket %s (%d bytes)',
            key,
            self._settings.bucket,
            len(data),
        )
        return models.UploadResult(
            path=key,
            public_url=url,
            size=len(data),
        )

    def presigned_url(
        self,
        key: str,
        expires_in: int | None = None,
        now: datetime.datetime | None = None,
    ) -> str:
        """Generate a presigned GET URL for an object.

        Args:
            key: Object path relative to the bucket
            expires_in: URL lifetime in seconds, defaults to the
                configured ``default_expires_in``
            now: Signing instant, defaults to the current time

        Returns:
            Presigned URL string

        """
        validation.validate_path(key)
        if expires_in is None:
            expires_in = self._settings.default_expires_in
        validation.validate_expires_in(expires_in)
        credentials = self._credentials.get()
        host, path, url = self.locate(key)
        query = signing.presign_query(
            credentials,
            host,
            path,
            expires_in,
            now or datetime.datetime.now(datetime.UTC),
        )
        LOGGER.debug('Presigned %s for %d seconds', key, expires_in)
        return f'{url}?{query}'
