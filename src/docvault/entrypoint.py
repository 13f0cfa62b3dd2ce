import logging.config
import pathlib
import tomllib
import typing
from importlib import resources

import typer
import uvicorn

from docvault import errors, settings, version
from docvault.storage import client

main = typer.Typer()


class UvicornParameters(typing.TypedDict):
    factory: bool
    host: str
    log_config: dict[str, typing.Any]
    port: int
    reload: typing.NotRequired[bool]
    reload_dirs: typing.NotRequired[list[str]]
    reload_excludes: typing.NotRequired[list[str]]
    proxy_headers: typing.NotRequired[bool]
    headers: typing.NotRequired[list[tuple[str, str]]]
    date_header: typing.NotRequired[bool]
    server_header: typing.NotRequired[bool]
    ws: typing.Literal[
        'auto', 'none', 'websockets', 'websockets-sansio', 'wsproto'
    ]


def load_log_config() -> dict[str, typing.Any]:
    """Read the logging dictConfig shipped with the package."""
    log_config_file = resources.files('docvault') / 'log-config.toml'
    return tomllib.loads(log_config_file.read_text())


@main.command()
def serve(
    *,
    dev: bool = False,
) -> None:
    """Start the docvault HTTP server"""
    config = settings.ServerConfig()
    log_config = load_log_config()

    params: UvicornParameters = {
        'factory': True,
        'host': config.host,
        'port': config.port,
        'log_config': log_config,
        'proxy_headers': True,
        'headers': [('Server', f'docvault/{version}')],
        'date_header': True,
        'server_header': False,
        'ws': 'none',
    }

    if dev or config.environment == 'development':
        loggers = typing.cast(
            'dict[str, dict[str, object]]',
            log_config.setdefault('loggers', {}),
        )
        loggers.setdefault('docvault', {})
        loggers['docvault']['level'] = 'DEBUG'

        params.update(
            {
                'reload': True,
                'reload_dirs': [
                    str(pathlib.Path.cwd() / 'src' / 'docvault')
                ],
                'reload_excludes': ['**/*.pyc'],
            }
        )

    uvicorn.run('docvault.app:create_app', **params)


@main.command()
def presign(
    path: str,
    expires_in: typing.Annotated[
        int,
        typer.Option(help='URL lifetime in seconds'),
    ] = 3600,
) -> None:
    """Print a presigned download URL for an object"""
    logging.config.dictConfig(load_log_config())
    storage_client = client.StorageClient()
    try:
        url = storage_client.presigned_url(path, expires_in)
    except errors.ConfigurationError as err:
        typer.echo(
            f'✗ {err.message}: missing {", ".join(err.missing)}',
            err=True,
        )
        raise typer.Exit(code=1) from err
    except errors.StorageError as err:
        typer.echo(f'✗ {err.message}', err=True)
        raise typer.Exit(code=1) from err
    typer.echo(url)
