"""Turn an uploaded bundle into a servable file tree.

A bundle is either a list of named files or a single zip archive. Archives
that wrap their content in one root folder are flattened so that the entry
document ends up at the root of the app.

"""
import os
import tempfile
import zipfile
import zlib
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

from apphub.common import releases
from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.path import UnsafePathError, normalize_relative, \
    safe_join
from apphub.common.storage import StorageBackend, StorageError


_log = get_logger(__name__)

# Read archive members in chunks to enforce the size budget while
# decompressing.
_CHUNK_SIZE = 64 * 1024


class UploadedFile(NamedTuple):
    """A file of an uploaded bundle.

    Attributes:
        name: The client supplied relative path, eg. 'img/logo.png'.
        data: The file content.

    """

    name: str
    data: bytes


class BundleError(Exception):
    """Raised when a bundle can't be materialized.

    All other bundle errors inherit from this.

    Attributes:
        reason: Reason code for the client.

    """

    reason = 'upload_failed'


class EmptyBundleError(BundleError):
    """The upload has no files."""

    reason = 'no_files'


class InvalidFilenameError(BundleError):
    """A file name would escape the app directory."""

    reason = 'invalid_filename'


class ExtractionError(BundleError):
    """The archive is malformed or can't be extracted."""

    reason = 'invalid_archive'


class BundleTooLargeError(BundleError):
    """The bundle exceeds the size or file count budget."""

    reason = 'bundle_too_large'


class WriteError(BundleError):
    """The files couldn't be written to storage."""

    reason = 'upload_failed'


_Entries = Dict[str, bytes]


def is_archive(files: Sequence[UploadedFile]) -> bool:
    """Check whether the upload is a single zip archive."""
    return len(files) == 1 and files[0].name.lower().endswith('.zip')


def _validate_name(name: str) -> str:
    try:
        normalized = normalize_relative(name)
    except UnsafePathError:
        _log.warning(f'Rejected file name with path traversal: {name!r}')
        raise InvalidFilenameError(f'Invalid file name: {name}')
    if not normalized:
        raise InvalidFilenameError(f'Invalid file name: {name!r}')
    return normalized


class _Budget:
    """Track the size and file count budget of a bundle."""

    def __init__(self, max_bytes: int, max_files: int):
        self._bytes_left = max_bytes
        self._files_left = max_files

    def check_declared(self, files: int, nbytes: int) -> None:
        if files > self._files_left:
            raise BundleTooLargeError('Too many files in archive')
        if nbytes > self._bytes_left:
            raise BundleTooLargeError('Archive is too large')

    def add_file(self) -> None:
        self._files_left -= 1
        if self._files_left < 0:
            raise BundleTooLargeError('Too many files in bundle')

    def add_bytes(self, n: int) -> None:
        self._bytes_left -= n
        if self._bytes_left < 0:
            raise BundleTooLargeError('Bundle is too large')


def _read_files(files: Sequence[UploadedFile], budget: _Budget) -> _Entries:
    # Validate every name before anything is written.
    entries: _Entries = {}
    for f in files:
        name = _validate_name(f.name)
        budget.add_file()
        budget.add_bytes(len(f.data))
        entries[name] = f.data
    return entries


def _read_member(archive: zipfile.ZipFile, info: zipfile.ZipInfo,
                 budget: _Budget) -> bytes:
    chunks = []
    with archive.open(info) as member:
        while True:
            chunk = member.read(_CHUNK_SIZE)
            if not chunk:
                break
            # The sizes in the archive directory can't be trusted.
            budget.add_bytes(len(chunk))
            chunks.append(chunk)
    return b''.join(chunks)


def _extract(path: str, budget: _Budget) -> Tuple[_Entries, Set[str]]:
    entries: _Entries = {}
    dirs: Set[str] = set()
    with zipfile.ZipFile(path) as archive:
        infos = archive.infolist()
        # Cheap check from the archive directory before decompressing.
        budget.check_declared(len(infos), sum(i.file_size for i in infos))

        for info in infos:
            name = _validate_name(info.filename)
            if info.is_dir():
                dirs.add(name)
                continue
            budget.add_file()
            entries[name] = _read_member(archive, info, budget)
    return entries, dirs


def _read_archive(data: bytes, budget: _Budget) -> Tuple[_Entries, Set[str]]:
    fd, tmp_path = tempfile.mkstemp(suffix='.zip', prefix='apphub-upload-')
    try:
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
        except OSError as e:
            raise WriteError(f'Failed to spool archive: {e}')
        try:
            return _extract(tmp_path, budget)
        # RuntimeError is raised by zipfile for encrypted members.
        except (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error,
                EOFError, OSError, RuntimeError) as e:
            raise ExtractionError(f'Failed to extract archive: {e}')
    finally:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)


def flatten(entries: _Entries, dirs: Optional[Set[str]] = None) -> _Entries:
    """Move the contents of a single root folder up one level.

    Applies if there is exactly one top-level entry and it is a directory.

    Args:
        entries: Files by relative path.
        dirs: Directory entries of the archive (they may be empty).

    Returns:
        The flattened entries, or the input if the heuristic doesn't apply.

    """
    dirs = dirs or set()
    top_level = {p.split('/', 1)[0] for p in entries}
    top_level |= {d.split('/', 1)[0] for d in dirs}
    if len(top_level) != 1:
        return entries

    root = next(iter(top_level))
    # The single entry is a file, eg. an archive with only 'index.html'.
    if root in entries:
        return entries

    prefix = f'{root}/'
    return {p[len(prefix):]: data for p, data in entries.items()}


def _write_release(storage: StorageBackend, storage_path: str,
                   entries: _Entries) -> str:
    release_id = releases.new_release_id()
    prefix = releases.release_prefix(storage_path, release_id)
    try:
        for name, data in entries.items():
            storage.write(safe_join(prefix, name), data)
        # Raises only if the pointer wasn't switched to the new release.
        releases.activate(storage, storage_path, release_id)
    except StorageError as e:
        _log.error(f'Error writing release {release_id} of {storage_path}:'
                   f'\n{e}')
        try:
            storage.remove(prefix)
        except StorageError as cleanup_error:
            _log.error(f'Error removing partial release {release_id}:\n'
                       f'{cleanup_error}')
        raise WriteError(f'Failed to write files: {e}')
    return release_id


def materialize(files: Sequence[UploadedFile], storage: StorageBackend,
                storage_path: str,
                max_bytes: int = config.max_bundle_bytes,
                max_files: int = config.max_bundle_files) -> List[str]:
    """Write an uploaded bundle as the new content of an app.

    The previous content of the app is replaced, not merged. Readers see the
    previous content until all new files are written.

    Args:
        files: The uploaded files. A single file ending in '.zip' is
            extracted.
        storage: The storage backend.
        storage_path: The app's storage path.
        max_bytes: Maximum total uncompressed size of the bundle.
        max_files: Maximum number of files in the bundle.

    Returns:
        The relative paths of the written files in ascending order.

    Raises:
        EmptyBundleError if there are no files.
        InvalidFilenameError if a file name has path traversal.
        ExtractionError if the archive is malformed.
        BundleTooLargeError if the bundle exceeds the budget.
        WriteError if the files couldn't be written.

    """
    if not files:
        raise EmptyBundleError('No files provided')

    budget = _Budget(max_bytes, max_files)
    if is_archive(files):
        entries, dirs = _read_archive(files[0].data, budget)
        entries = flatten(entries, dirs)
    else:
        entries = _read_files(files, budget)

    if not entries:
        raise EmptyBundleError('Bundle has no files')

    release_id = _write_release(storage, storage_path, entries)
    _log.info(f'Deployed release {release_id} of {storage_path} with '
              f'{len(entries)} file(s)')
    return sorted(entries)
