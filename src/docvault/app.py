import contextlib
import logging
import typing

import fastapi
from fastapi.middleware import cors

from docvault import endpoints, errors, storage, version

LOGGER = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = [
    'authorization',
    'x-client-info',
    'apikey',
    'content-type',
]
CORS_EXPOSE_HEADERS = [
    'Content-Length',
    'Content-Disposition',
    'Content-Type',
]


@contextlib.asynccontextmanager
async def fastapi_lifespan(
    *_args: typing.Any, **_kwargs: typing.Any
) -> typing.AsyncIterator[None]:  # pragma: nocover
    """This is invoked by FastAPI for us to control startup and shutdown."""
    await storage.initialize()
    LOGGER.debug('Startup complete')
    yield
    try:
        await storage.aclose()
    except Exception as err:  # noqa: BLE001 - shutdown must not raise
        LOGGER.warning('Storage shutdown failed: %s', err)
    LOGGER.debug('Clean shutdown complete')


def create_app() -> fastapi.FastAPI:
    app = fastapi.FastAPI(
        title='docvault',
        lifespan=fastapi_lifespan,
        version=version,
        redoc_url='/docs',
        docs_url=None,
    )

    # Added first so CORSMiddleware wraps it and 500s get CORS headers
    app.add_middleware(errors.UnexpectedErrorMiddleware)
    app.add_middleware(
        cors.CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['GET', 'POST', 'OPTIONS'],
        allow_headers=CORS_ALLOW_HEADERS,
        expose_headers=CORS_EXPOSE_HEADERS,
    )
    errors.setup_exception_handlers(app)

    for router in endpoints.routers:
        app.include_router(router)

    return app
