"""Resolve and read the static files of an app."""
import posixpath
from typing import List, NamedTuple, Optional, Sequence

from apphub.common import releases
from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.mime import get_mime_type
from apphub.common.path import UnsafePathError, has_traversal, safe_join
from apphub.common.storage import KeyNotFoundError, StorageBackend


INDEX_DOCUMENT = 'index.html'
# Index documents are resolved dynamically and deploys replace them.
NO_CACHE = 'no-cache'

_log = get_logger(__name__)


class ContentError(Exception):
    """Raised when content can't be served.

    All other content errors inherit from this.
    """


class NotFoundError(ContentError):
    """The requested file doesn't exist."""


class ForbiddenError(ContentError):
    """The requested path escapes the app's directory."""


class EmptyAppError(ContentError):
    """The app has no files."""


class Content(NamedTuple):
    """A file to serve.

    Attributes:
        path: The path of the file relative to the app root.
        body: The file content.
        mime_type: The content type.
        cache_control: Value of the Cache-Control header.

    """

    path: str
    body: bytes
    mime_type: str
    cache_control: str


def static_cache_control(max_age: int = config.static_cache_max_age) -> str:
    """Get the Cache-Control header value for static sub-resources."""
    return f'public, max-age={max_age}'


def _live_prefix(storage: StorageBackend, storage_path: str) \
        -> Optional[str]:
    release_id = releases.current_release(storage, storage_path)
    if release_id is None:
        return None
    return releases.release_prefix(storage_path, release_id)


def list_files(storage: StorageBackend, storage_path: str) -> List[str]:
    """List the files of the live release of an app.

    Returns:
        Relative file paths in ascending order. Empty if the app was never
        deployed.

    """
    prefix = _live_prefix(storage, storage_path)
    if prefix is None:
        return []
    return storage.list(prefix)


def select_entry(files: Sequence[str]) -> str:
    """Select the entry document of an app.

    A file named 'index.html' (case-insensitive) is preferred, the one
    closest to the root if there are several. Otherwise the first file by name
    is the entry.

    Args:
        files: The app's relative file paths.

    Returns:
        The path of the entry document.

    Raises:
        EmptyAppError if there are no files.

    """
    if not files:
        raise EmptyAppError()

    candidates = [f for f in files
                  if posixpath.basename(f).lower() == INDEX_DOCUMENT]
    if candidates:
        return min(candidates, key=lambda f: (f.count('/'), f))
    return min(files)


def resolve_entry(storage: StorageBackend, storage_path: str) -> Content:
    """Read the entry document of an app.

    Raises:
        EmptyAppError if the app has no files.
        apphub.common.storage.StorageError on storage failure.

    """
    prefix = _live_prefix(storage, storage_path)
    if prefix is None:
        raise EmptyAppError()
    entry = select_entry(storage.list(prefix))
    try:
        body = storage.read(safe_join(prefix, entry))
    except KeyNotFoundError:
        # Release was replaced between listing and reading.
        raise NotFoundError(entry)
    return Content(path=entry, body=body, mime_type=get_mime_type(entry),
                   cache_control=NO_CACHE)


def resolve(storage: StorageBackend, storage_path: str,
            request_path: str) -> Content:
    """Read a file of an app.

    Args:
        storage: The storage backend.
        storage_path: The app's storage path.
        request_path: The path relative to the app root. The entry document is
            served if it's empty or '/'.

    Returns:
        The content to serve.

    Raises:
        ForbiddenError if the path would escape the app's directory. This is
            checked before anything is read.
        NotFoundError if the file doesn't exist.
        EmptyAppError if the path is empty and the app has no files.
        apphub.common.storage.StorageError on storage failure.

    """
    if not request_path.strip('/'):
        return resolve_entry(storage, storage_path)

    if has_traversal(request_path):
        _log.warning(f'Rejected path traversal for {storage_path}: '
                     f'{request_path!r}')
        raise ForbiddenError(request_path)

    prefix = _live_prefix(storage, storage_path)
    if prefix is None:
        raise NotFoundError(request_path)

    try:
        key = safe_join(prefix, request_path)
    except UnsafePathError:
        _log.warning(f'Rejected path escaping {storage_path}: '
                     f'{request_path!r}')
        raise ForbiddenError(request_path)
    rel_path = key[len(prefix) + 1:]

    try:
        body = storage.read(key)
        return Content(path=rel_path, body=body,
                       mime_type=get_mime_type(key),
                       cache_control=static_cache_control())
    except KeyNotFoundError:
        pass

    if not storage.is_dir(key):
        raise NotFoundError(request_path)

    index_key = f'{key}/{INDEX_DOCUMENT}'
    try:
        body = storage.read(index_key)
    except KeyNotFoundError:
        raise NotFoundError(request_path)
    return Content(path=index_key[len(prefix) + 1:], body=body,
                   mime_type='text/html', cache_control=NO_CACHE)
