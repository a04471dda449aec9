# flake8: noqa
# mypy: implicit-reexport
import threading
from typing import cast

from apphub.common.config import config
from apphub.common.storage.backend import (
    KeyNotFoundError,
    StorageBackend,
    StorageError
)
from apphub.common.storage.local import LocalStorage
from apphub.common.storage.s3 import S3Storage


_local = threading.local()


def get_storage() -> StorageBackend:
    """Get thread-local storage backend selected by the configuration.

    Returns:
        The storage backend.

    """
    if not hasattr(_local, 'storage'):
        if config.storage_backend == 'local':
            _local.storage = LocalStorage(config.storage_root)
        else:
            _local.storage = S3Storage(config.storage_bucket)
    return cast(StorageBackend, _local.storage)
