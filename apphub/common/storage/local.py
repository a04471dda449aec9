"""Local filesystem storage backend."""
import os
import shutil
import tempfile
from pathlib import Path
from typing import List

from apphub.common.logging import get_logger
from apphub.common.storage.backend import KeyNotFoundError, StorageBackend, \
    StorageError


class LocalStorage(StorageBackend):
    """Store keys as files under a root directory."""

    def __init__(self, root: str):
        """Initialize a LocalStorage instance.

        Args:
            root: The storage root directory. Created if it doesn't exist.

        """
        self._log = get_logger(f'{__name__}.{self.__class__.__name__}')
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        """Get the storage root directory."""
        return self._root

    def _path(self, key: str) -> Path:
        p = (self._root / key.strip('/')).resolve()
        if p != self._root and self._root not in p.parents:
            self._log.warning(f'Key escapes storage root: {key!r}')
            raise StorageError(f'Key escapes storage root: {key}')
        return p

    def write(self, key: str, data: bytes) -> None:
        """Write a file atomically by renaming a temporary file into place."""
        p = self._path(key)
        tmp_name = None
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            # Temp file in the same directory so that the rename doesn't cross
            # file systems.
            fd, tmp_name = tempfile.mkstemp(dir=p.parent, prefix='.tmp-')
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
            os.replace(tmp_name, p)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError(e)

    def read(self, key: str) -> bytes:
        p = self._path(key)
        try:
            return p.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise KeyNotFoundError(key)
        except OSError as e:
            raise StorageError(e)

    def list(self, prefix: str) -> List[str]:
        base = self._path(prefix)
        if not base.is_dir():
            return []
        keys = []
        try:
            for dirpath, _, filenames in os.walk(base):
                for name in filenames:
                    if name.startswith('.tmp-'):
                        continue
                    full = Path(dirpath) / name
                    keys.append(full.relative_to(base).as_posix())
        except OSError as e:
            raise StorageError(e)
        return sorted(keys)

    def remove(self, prefix: str) -> None:
        p = self._path(prefix)
        if p == self._root:
            raise StorageError('Refusing to remove the storage root')
        try:
            if p.is_dir():
                shutil.rmtree(p)
            elif p.exists():
                p.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(e)
