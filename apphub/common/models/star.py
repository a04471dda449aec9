"""Starred apps of a user.

Items:
    USER#<email> / STAR#<app_id> -> {'CreatedAt': <iso timestamp>}

"""
import datetime
from typing import Any, Set, cast

import dokklib_db as db

import apphub.common.models.entities as ent
from apphub.common.models.db import get_table


def _keys(user_email: str, app_id: str) -> Any:
    pk = db.PartitionKey(ent.User, user_email.strip().lower())
    sk = db.SortKey(ent.Star, app_id)
    return pk, sk


def is_starred(user_email: str, app_id: str) -> bool:
    """Check whether the user starred the app.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk, sk = _keys(user_email, app_id)
    return get_table().get(pk, sk, attributes=['SK'], consistent=True) \
        is not None


def toggle(user_email: str, app_id: str) -> bool:
    """Star the app if it isn't starred by the user, unstar it otherwise.

    Returns:
        True if the app is starred after the call.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk, sk = _keys(user_email, app_id)
    if is_starred(user_email, app_id):
        get_table().transact_write_items([db.DeleteArg(pk, sk)])
        return False

    now = datetime.datetime.now(datetime.timezone.utc).isoformat()
    try:
        get_table().transact_write_items([
            db.InsertArg(pk, sk, attributes={'CreatedAt': now})
        ])
    except db.ConditionalCheckFailedError:
        # Starred by a concurrent request, the result is the same.
        pass
    return True


def fetch_starred_ids(user_email: str) -> Set[str]:
    """Get the ids of the apps the user starred.

    Stars of deleted apps may be included.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk = db.PartitionKey(ent.User, user_email.strip().lower())
    sk = db.PrefixSortKey(ent.Star)
    items = get_table().query_prefix(pk, sk, attributes=['SK'])
    return {cast(str, item['SK']) for item in items}
