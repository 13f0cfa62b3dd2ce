"""Object path conventions for stored documents."""

import datetime
import pathlib

APPLICATION_DOCUMENTS = 'application-documents'
OPINION_DOCUMENTS = 'opinion-documents'
QUERY_ATTACHMENTS = 'query-attachments'
SIGNED_DOCUMENTS = 'signed-documents'

FOLDERS = frozenset(
    {
        APPLICATION_DOCUMENTS,
        OPINION_DOCUMENTS,
        QUERY_ATTACHMENTS,
        SIGNED_DOCUMENTS,
    }
)


def object_path(
    folder: str,
    entity_id: str,
    filename: str,
    now: datetime.datetime | None = None,
) -> str:
    """Build a storage path for a document belonging to an entity.

    The path has the form ``<folder>/<entity_id>_<epoch ms><ext>``, e.g.
    ``application-documents/app1_1700000000000.pdf``. Only the extension
    of the original filename is kept.

    """
    if now is None:
        now = datetime.datetime.now(datetime.UTC)
    millis = int(now.timestamp() * 1000)
    suffix = pathlib.PurePosixPath(filename).suffix.lower()
    return f'{folder.strip("/")}/{entity_id}_{millis}{suffix}'


def folder_of(path: str) -> str:
    """Return the first segment of a path, or ``''`` if it has none."""
    if '/' not in path:
        return ''
    return path.split('/', 1)[0]


def resolve(file_path: str, folder: str | None = None) -> str:
    """Combine an optional folder with a file path.

    The folder is only applied when ``file_path`` does not already carry
    one of its own.

    """
    if folder and '/' not in file_path:
        return f'{folder.strip("/")}/{file_path}'
    return file_path
