"""Error taxonomy for storage operations and its HTTP rendering.

Every failure raised by the storage layer derives from
:class:`StorageError` and carries an :class:`ErrorKind`. The exception
handlers in this module turn them into the JSON error shape returned by
all endpoints.

"""

import enum
import logging
import typing

import fastapi
from fastapi import exceptions as fastapi_exceptions
from fastapi import responses
from starlette import types

from docvault import models

LOGGER = logging.getLogger(__name__)


class ErrorKind(enum.StrEnum):
    CONFIGURATION = 'configuration'
    VALIDATION = 'validation'
    UPSTREAM_AUTH = 'upstream_auth'
    UPSTREAM_TRANSPORT = 'upstream_transport'
    STREAMING = 'streaming'


class StorageError(Exception):
    """Base class for all storage layer failures."""

    kind: typing.ClassVar[ErrorKind]

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> models.ErrorResponse:
        return models.ErrorResponse(
            error=self.message,
            kind=self.kind.value,
        )


class ConfigurationError(StorageError):
    """Credentials or settings required for signing are absent."""

    kind = ErrorKind.CONFIGURATION

    def __init__(
        self,
        missing: list[str],
        message: str = 'Server configuration error',
    ) -> None:
        super().__init__(message)
        self.missing = missing

    def to_response(self) -> models.ErrorResponse:
        response = super().to_response()
        response.missing = self.missing
        return response


class ValidationError(StorageError):
    """The caller supplied a missing or unacceptable value."""

    kind = ErrorKind.VALIDATION


class UpstreamError(StorageError):
    """The object store answered with a failure or was unreachable."""

    kind = ErrorKind.UPSTREAM_TRANSPORT

    def __init__(
        self,
        message: str,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status = status
        self.body = body

    def to_response(self) -> models.ErrorResponse:
        response = super().to_response()
        response.status = self.status
        response.detail = self.body or None
        return response


class UpstreamAuthError(UpstreamError):
    """The object store rejected the request signature."""

    kind = ErrorKind.UPSTREAM_AUTH


class UpstreamTransportError(UpstreamError):
    """Network failure or non-2xx answer from the object store."""


class UploadFailed(UpstreamTransportError):
    """The object store did not accept an upload."""


class StreamingError(StorageError):
    """The upstream body failed after the response started streaming."""

    kind = ErrorKind.STREAMING


def status_code_for(error: StorageError) -> int:
    """Map an error to the HTTP status code returned to the caller."""
    match error.kind:
        case ErrorKind.CONFIGURATION:
            return 500
        case ErrorKind.VALIDATION:
            return 400
        case ErrorKind.UPSTREAM_AUTH:
            status = getattr(error, 'status', None)
            return status if status else 403
        case ErrorKind.UPSTREAM_TRANSPORT:
            return 502
        case ErrorKind.STREAMING:
            return 502
    typing.assert_never(error.kind)


def _json_response(
    status_code: int,
    body: models.ErrorResponse,
) -> responses.JSONResponse:
    return responses.JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


async def storage_error_handler(
    _request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    error = typing.cast(StorageError, exc)
    status_code = status_code_for(error)
    if status_code >= 500:
        LOGGER.error('%s error: %s', error.kind, error.message)
    else:
        LOGGER.debug('%s error: %s', error.kind, error.message)
    return _json_response(status_code, error.to_response())


async def request_validation_handler(
    _request: fastapi.Request,
    exc: Exception,
) -> responses.JSONResponse:
    error = typing.cast(fastapi_exceptions.RequestValidationError, exc)
    fields = sorted(
        {
            '.'.join(str(part) for part in detail['loc'][1:])
            for detail in error.errors()
            if len(detail.get('loc', ())) > 1
        }
    )
    message = 'Invalid request'
    if fields:
        message = f'Invalid request: {", ".join(fields)}'
    return _json_response(
        400,
        models.ErrorResponse(
            error=message,
            kind=ErrorKind.VALIDATION.value,
        ),
    )


class UnexpectedErrorMiddleware:
    """Render unhandled exceptions as the JSON 500 error body.

    Installed inside ``CORSMiddleware`` so the 500 carries the CORS
    headers. Exceptions raised after the response has started, such as a
    failed download relay, are re-raised so the server aborts the
    connection.

    """

    def __init__(self, app: types.ASGIApp) -> None:
        self.app = app

    async def __call__(
        self,
        scope: types.Scope,
        receive: types.Receive,
        send: types.Send,
    ) -> None:
        if scope['type'] != 'http':
            await self.app(scope, receive, send)
            return

        started = False

        async def send_wrapper(message: types.Message) -> None:
            nonlocal started
            if message['type'] == 'http.response.start':
                started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if started:
                raise
            LOGGER.exception('Unexpected error handling request')
            response = responses.JSONResponse(
                status_code=500,
                content={'error': str(exc) or 'Unknown error'},
            )
            await response(scope, receive, send)


def setup_exception_handlers(app: fastapi.FastAPI) -> None:
    """Register the JSON error handlers on the application."""
    app.add_exception_handler(StorageError, storage_error_handler)
    app.add_exception_handler(
        fastapi_exceptions.RequestValidationError,
        request_validation_handler,
    )
