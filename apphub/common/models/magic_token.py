"""Single use magic link token model."""
import hashlib
import secrets
import time
from typing import NamedTuple, Optional, TypedDict, cast

import dokklib_db as db

import apphub.common.models.entities as ent
from apphub.common.config import config
from apphub.common.models.db import get_table


class MagicTokenAttributes(TypedDict, total=False):
    """Magic token attributes."""

    Email: str
    AppId: str
    ExpiresAt: int


class MagicTokenResult(NamedTuple):
    """The identity proven by a redeemed token."""

    email: str
    app_id: Optional[str]


def _hex_hash(value: str) -> str:
    m = hashlib.sha3_256()
    m.update(value.encode('utf-8'))
    return m.hexdigest()


def _keys(token: str) -> tuple:
    token_hash = _hex_hash(token)
    pk = db.PartitionKey(ent.MagicToken, token_hash)
    sk = db.SortKey(ent.MagicToken, token_hash)
    return pk, sk


def create(email: str, app_id: Optional[str] = None) -> str:
    """Create a new magic link token for an email address.

    Only the hash of the token is stored.

    Args:
        email: The normalized email address.
        app_id: The app that the link is for, if any.

    Returns:
        The token to put in the link.

    Raises:
        `db.ConditionalCheckFailedError` if the token already exists.
        `db.DatabaseError` if there was an error connecting to the database.

    """
    token = secrets.token_urlsafe(32)
    attributes: MagicTokenAttributes = {
        'Email': email,
        'ExpiresAt': round(time.time()) + config.magic_token_max_age
    }
    if app_id:
        attributes['AppId'] = app_id
    pk, sk = _keys(token)
    get_table().transact_write_items([
        db.InsertArg(pk, sk, attributes=dict(attributes))
    ])
    return token


def redeem(token: str) -> Optional[MagicTokenResult]:
    """Redeem a magic link token.

    The token is deleted, so it can be redeemed only once.

    Args:
        token: The token from the link.

    Returns:
        The email and app id of the token or None if the token is unknown or
        has expired.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    if not token:
        return None
    pk, sk = _keys(token)
    table = get_table()
    res = table.get(pk, sk, consistent=True,
                    attributes=['Email', 'AppId', 'ExpiresAt'])
    if res is None:
        return None

    # TODO conditional delete to close the window between the get and delete
    table.transact_write_items([db.DeleteArg(pk, sk)])

    # DynamoDB TTL deletes expired items lazily.
    if int(res.get('ExpiresAt', 0)) < time.time():
        return None
    app_id = res.get('AppId')
    return MagicTokenResult(email=cast(str, res['Email']),
                            app_id=cast(Optional[str], app_id))
