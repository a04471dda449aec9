"""AWS S3 storage backend."""
import posixpath
from contextlib import contextmanager
from typing import Any, Iterator, List

import boto3

from botocore.exceptions import BotoCoreError, ClientError

from apphub.common.logging import get_logger
from apphub.common.storage.backend import KeyNotFoundError, StorageBackend, \
    StorageError


# Maximum number of keys in a DeleteObjects request.
_DELETE_BATCH_SIZE = 1000


class S3Storage(StorageBackend):
    """Store keys as objects in an S3 bucket.

    S3Storage instances are not safe to share across threads.
    """

    @staticmethod
    @contextmanager
    def _dispatch_client_error(key: str) -> Iterator[None]:
        """Raise appropriate exception based on ClientError code."""
        try:
            yield None
        except ClientError as e:
            code = e.response.get('Error', {}).get('Code')
            if code in ('NoSuchKey', '404', 'NotFound'):
                raise KeyNotFoundError(key)
            raise StorageError(e)
        except BotoCoreError as e:
            raise StorageError(e)

    def __init__(self, bucket: str):
        """Initialize an S3Storage instance.

        Args:
            bucket: The bucket name.

        """
        self._log = get_logger(f'{__name__}.{self.__class__.__name__}')
        self._bucket = bucket
        # The client is lazy-initialized to avoid needing a region at import
        # time.
        self._client_handle: Any = None

    @property
    def _client(self) -> Any:
        # Helps mock the client at test time.
        if self._client_handle is None:
            self._client_handle = boto3.client('s3')
        return self._client_handle

    def _key(self, key: str) -> str:
        stripped = key.strip('/')
        # S3 doesn't interpret '..', but every backend must reject keys that
        # would escape their prefix if they were paths.
        if posixpath.normpath(stripped) != stripped or \
                stripped.startswith('..'):
            self._log.warning(f'Non-canonical key: {key!r}')
            raise StorageError(f'Non-canonical key: {key}')
        return stripped

    def write(self, key: str, data: bytes) -> None:
        k = self._key(key)
        with self._dispatch_client_error(k):
            self._client.put_object(Bucket=self._bucket, Key=k, Body=data)

    def read(self, key: str) -> bytes:
        k = self._key(key)
        with self._dispatch_client_error(k):
            res = self._client.get_object(Bucket=self._bucket, Key=k)
            return res['Body'].read()

    def list(self, prefix: str) -> List[str]:
        p = self._key(prefix) + '/'
        keys = []
        with self._dispatch_client_error(p):
            paginator = self._client.get_paginator('list_objects_v2')
            for page in paginator.paginate(Bucket=self._bucket, Prefix=p):
                for obj in page.get('Contents', []):
                    keys.append(obj['Key'][len(p):])
        return sorted(k for k in keys if k)

    def remove(self, prefix: str) -> None:
        p = self._key(prefix)
        keys = [f'{p}/{k}' for k in self.list(p)]
        for i in range(0, len(keys), _DELETE_BATCH_SIZE):
            batch = keys[i:i + _DELETE_BATCH_SIZE]
            objects = [{'Key': k} for k in batch]
            with self._dispatch_client_error(p):
                res = self._client.delete_objects(
                    Bucket=self._bucket,
                    Delete={'Objects': objects, 'Quiet': True}
                )
            # Quiet mode only reports the keys that couldn't be deleted.
            errors = res.get('Errors', [])
            if errors:
                first = errors[0]
                raise StorageError(f'Failed to delete {len(errors)} object(s) '
                                   f'under {p}, eg. {first.get("Key")}: '
                                   f'{first.get("Code")}')
