"""Release layout of an app's storage subtree.

Every deploy writes into a new release prefix and then switches the pointer:

    <storage_path>/CURRENT                     -> release id
    <storage_path>/releases/<release_id>/...   -> files of the release

Writing the pointer is a single atomic write, so readers see either the old or
the new release, never a mix.

"""
import re
import secrets
import time
from typing import List, Optional, Set

from apphub.common.logging import get_logger
from apphub.common.storage import KeyNotFoundError, StorageBackend, \
    StorageError


POINTER_NAME = 'CURRENT'
RELEASES_DIR = 'releases'

_RELEASE_ID_PATTERN = r'[0-9]{13}-[0-9a-f]{8}'

_log = get_logger(__name__)


def new_release_id() -> str:
    """Generate a unique release id that sorts by creation time.

    Returns:
        The release id, eg. '1581510000000-1a2b3c4d'.

    """
    millis = round(time.time() * 1000)
    return f'{millis:013d}-{secrets.token_hex(4)}'


def is_valid_release_id(release_id: str) -> bool:
    """Check the format of a release id."""
    return bool(re.fullmatch(_RELEASE_ID_PATTERN, release_id))


def pointer_key(storage_path: str) -> str:
    """Get the key of the current release pointer."""
    return f'{storage_path}/{POINTER_NAME}'


def release_prefix(storage_path: str, release_id: str) -> str:
    """Get the key prefix of a release."""
    return f'{storage_path}/{RELEASES_DIR}/{release_id}'


def current_release(storage: StorageBackend, storage_path: str) \
        -> Optional[str]:
    """Get the id of the live release.

    Returns:
        The release id or None if the app was never deployed.

    Raises:
        StorageError if the pointer can't be read.

    """
    try:
        release_id = storage.read(pointer_key(storage_path))
    except KeyNotFoundError:
        return None
    value = release_id.decode('utf-8', errors='replace').strip()
    if not is_valid_release_id(value):
        _log.error(f'Invalid release pointer for {storage_path}: {value!r}')
        return None
    return value


def list_releases(storage: StorageBackend, storage_path: str) -> List[str]:
    """List the ids of stored releases in ascending order."""
    keys = storage.list(f'{storage_path}/{RELEASES_DIR}')
    ids = {k.split('/', 1)[0] for k in keys}
    return sorted(i for i in ids if is_valid_release_id(i))


def activate(storage: StorageBackend, storage_path: str,
             release_id: str) -> Optional[str]:
    """Make a release live and remove releases that are no longer needed.

    The release that was live before is kept, so that readers that resolved
    the old pointer can finish their requests.

    Args:
        storage: The storage backend.
        storage_path: The app's storage path.
        release_id: The release to activate. Must be fully written.

    Returns:
        The id of the release that was live before, if any.

    Raises:
        StorageError if the pointer can't be written. In this case the old
            release stays live.

    """
    previous = current_release(storage, storage_path)
    storage.write(pointer_key(storage_path), release_id.encode('utf-8'))
    # The release is live now, failures from here on must not propagate.
    prune(storage, storage_path, keep={release_id, previous})
    return previous


def prune(storage: StorageBackend, storage_path: str,
          keep: Set[Optional[str]]) -> List[str]:
    """Remove the releases of an app that are not in `keep`.

    Errors are logged and not raised. Stale releases are unreachable, so the
    removal can be retried by the next deploy.

    Returns:
        The ids of the removed releases.

    """
    try:
        stored = list_releases(storage, storage_path)
    except StorageError as e:
        _log.error(f'Error listing releases of {storage_path}:\n{e}')
        return []

    removed = []
    for old in stored:
        if old in keep:
            continue
        try:
            storage.remove(release_prefix(storage_path, old))
        except StorageError as e:
            _log.error(f'Error removing release {old} of {storage_path}:\n{e}')
            continue
        removed.append(old)
    return removed
