"""Storage backend interface.

Keys are relative POSIX paths, eg. 'my-app-1a2b/releases/abc/index.html'. A
"directory" is a key prefix that has keys under it.

"""
from abc import ABC, abstractmethod
from typing import List


class StorageError(Exception):
    """Raised when the storage backend fails without a more specific reason.

    All other storage errors inherit from this.
    """


class KeyNotFoundError(StorageError):
    """Raised when reading a key that doesn't exist."""

    def __init__(self, key: str) -> None:
        """Initialize a KeyNotFoundError instance."""
        super().__init__(f'Key not found: {key}')
        self.key = key


class StorageBackend(ABC):
    """Abstract base class of storage backends.

    Implementations must make `write` of a single key atomic: a reader sees
    either the previous or the new value.

    """

    @abstractmethod
    def write(self, key: str, data: bytes) -> None:
        """Write a value, replacing it if it exists.

        Raises:
            StorageError on failure.

        """

    @abstractmethod
    def read(self, key: str) -> bytes:
        """Read a value.

        Raises:
            KeyNotFoundError if the key doesn't exist.
            StorageError on other failures.

        """

    @abstractmethod
    def list(self, prefix: str) -> List[str]:
        """List keys under a prefix.

        Args:
            prefix: The directory prefix without a trailing slash.

        Returns:
            Keys relative to the prefix in ascending order. Empty if nothing
            is stored under the prefix.

        Raises:
            StorageError on failure.

        """

    @abstractmethod
    def remove(self, prefix: str) -> None:
        """Remove every key under a prefix.

        The operation is idempotent.

        Raises:
            StorageError on failure.

        """

    def is_dir(self, key: str) -> bool:
        """Check whether a key is a directory prefix."""
        return bool(self.list(key))
