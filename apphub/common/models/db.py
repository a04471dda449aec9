"""Access to the single DynamoDB table that stores apps and magic tokens."""
import threading
from typing import cast

from dokklib_db import Table

from apphub.common.config import config


_local = threading.local()


def get_table() -> Table:
    """Get the main table for the current thread.

    The boto3 resources of a table are not thread safe, so each thread gets
    its own instance.

    Returns:
        The table object.

    """
    table = getattr(_local, 'table', None)
    if table is None:
        table = Table(config.main_table)
        _local.table = table
    return cast(Table, table)
