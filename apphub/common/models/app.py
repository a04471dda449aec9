"""Deployed app model.

Items:
    APP#<id>   / APP#<id>   -> app attributes
    SLUG#<slug>/ SLUG#<slug> -> {'AppId': <id>}, enforces unique slugs
    USER#<email>/ APP#<id>   -> ownership relation for listing a user's apps

"""
import datetime
import re
import secrets
import uuid
from typing import Any, Dict, List, Literal, Mapping, Optional, TypedDict, \
    cast

import dokklib_db as db

import apphub.common.models.entities as ent
from apphub.common.logging import get_logger
from apphub.common.models.db import get_table


Status = Literal['draft', 'published', 'archived']
STATUSES = ('draft', 'published', 'archived')

# Slug collisions are resolved by appending a random suffix.
_MAX_CREATE_ATTEMPTS = 3

_log = get_logger(__name__)


class AppAttributes(TypedDict, total=False):
    """App attributes."""

    Id: str
    Slug: str
    Name: str
    Description: str
    Status: Status
    StoragePath: str
    AccessType: str
    AccessPassword: str
    AccessEmails: List[str]
    AccessDomain: str
    OwnerId: str
    CreatedAt: str
    UpdatedAt: str
    PublishedAt: str


_ATTRIBUTES = list(AppAttributes.__annotations__)


def _now() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def _app_keys(app_id: str) -> Any:
    pk = db.PartitionKey(ent.App, app_id)
    sk = db.SortKey(ent.App, app_id)
    return pk, sk


def _slug_keys(slug: str) -> Any:
    pk = db.PartitionKey(ent.Slug, slug)
    sk = db.SortKey(ent.Slug, slug)
    return pk, sk


def _owner_keys(owner_email: str, app_id: str) -> Any:
    pk = db.PartitionKey(ent.User, owner_email)
    sk = db.SortKey(ent.App, app_id)
    return pk, sk


def slugify(name: str) -> str:
    """Derive a slug from an app name.

    Eg. 'My Cool App!' -> 'my-cool-app'.

    Returns:
        The slug. Falls back to 'app' if nothing is left of the name.

    """
    slug = re.sub(r'[^a-z0-9]', '-', name.lower())
    slug = re.sub(r'-+', '-', slug).strip('-')
    return slug or 'app'


def new_storage_path(slug: str) -> str:
    """Get a unique storage path for an app.

    The random suffix makes sure that apps with the same slug never share a
    storage subtree.
    """
    return f'{slug}-{secrets.token_hex(4)}'


def create(owner_email: str, name: str, description: str = '') \
        -> AppAttributes:
    """Create a new draft app with private access.

    Args:
        owner_email: The owner's email address.
        name: The app name.
        description: Free text description.

    Returns:
        The attributes of the created app.

    Raises:
        `db.ConditionalCheckFailedError` if no unique slug could be found.
        `db.DatabaseError` if there was an error connecting to the database.

    """
    app_id = str(uuid.uuid4())
    base_slug = slugify(name)
    now = _now()
    attributes: AppAttributes = {
        'Id': app_id,
        'Name': name,
        'Description': description,
        'Status': 'draft',
        'StoragePath': new_storage_path(base_slug),
        'AccessType': 'private',
        'OwnerId': owner_email,
        'CreatedAt': now,
        'UpdatedAt': now,
    }

    slug = base_slug
    for attempt in range(_MAX_CREATE_ATTEMPTS):
        attributes['Slug'] = slug
        pk, sk = _app_keys(app_id)
        slug_pk, slug_sk = _slug_keys(slug)
        owner_pk, owner_sk = _owner_keys(owner_email, app_id)
        try:
            get_table().transact_write_items([
                db.InsertArg(pk, sk, attributes=dict(attributes)),
                db.InsertArg(slug_pk, slug_sk, attributes={'AppId': app_id}),
                db.InsertArg(owner_pk, owner_sk)
            ])
            return attributes
        except db.ConditionalCheckFailedError:
            if attempt == _MAX_CREATE_ATTEMPTS - 1:
                raise
            _log.debug(f'Slug taken: {slug}')
            slug = f'{base_slug}-{secrets.token_hex(3)}'

    # Unreachable, the loop either returns or raises.
    raise RuntimeError('Failed to create app')


def fetch(app_id: str, consistent: bool = False) -> Optional[AppAttributes]:
    """Fetch an app by id.

    Args:
        app_id: The app id.
        consistent: Whether the read should be strongly consistent.

    Returns:
        The app attributes if the app exists.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk, sk = _app_keys(app_id)
    res = get_table().get(pk, sk, consistent=consistent,
                          attributes=_ATTRIBUTES)
    if res is not None:
        return cast(AppAttributes, dict(res))
    else:
        return None


def fetch_by_slug_or_id(identifier: str) -> Optional[AppAttributes]:
    """Fetch an app by slug, falling back to lookup by id.

    Ids are accepted so that links created before slugs keep working.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk, sk = _slug_keys(identifier)
    res = get_table().get(pk, sk, attributes=['AppId'])
    if res is not None:
        app = fetch(cast(str, res['AppId']))
        if app is not None:
            return app
    return fetch(identifier)


def fetch_all_for_owner(owner_email: str) -> List[AppAttributes]:
    """Fetch all apps of an owner.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk = db.PartitionKey(ent.User, owner_email)
    sk = db.PrefixSortKey(ent.App)
    relations = get_table().query_prefix(pk, sk, attributes=['SK'])
    res = []
    for r in relations:
        app = fetch(cast(str, r['SK']))
        # The relation may outlive the app if a delete was interrupted.
        if app is not None:
            res.append(app)
    return sorted(res, key=lambda a: a.get('CreatedAt', ''), reverse=True)


def update(app: AppAttributes, changes: Mapping[str, Any]) -> AppAttributes:
    """Update app attributes.

    The `UpdatedAt` attribute is set automatically.

    Args:
        app: The current app attributes.
        changes: The attributes to overwrite.

    Returns:
        The updated attributes.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    attributes: Dict[str, Any] = dict(changes)
    attributes['UpdatedAt'] = _now()
    pk, sk = _app_keys(app['Id'])
    get_table().update_attributes(pk, sk, attributes)
    updated = dict(app)
    updated.update(attributes)
    return cast(AppAttributes, updated)


def set_status(app: AppAttributes, status: Status) -> AppAttributes:
    """Change the status of an app.

    `PublishedAt` is set in the same write on the first transition to
    published and never changed afterwards.

    Raises:
        ValueError if the status is unknown.
        `db.DatabaseError` if there was an error connecting to the database.

    """
    if status not in STATUSES:
        raise ValueError(f'Unknown status: {status}')
    changes: Dict[str, Any] = {'Status': status}
    if status == 'published' and not app.get('PublishedAt'):
        changes['PublishedAt'] = _now()
    return update(app, changes)


def delete(app: AppAttributes) -> None:
    """Delete an app and its relations from the database.

    Stored files are not removed.

    Raises:
        `db.DatabaseError` if there was an error connecting to the database.

    """
    pk, sk = _app_keys(app['Id'])
    slug_pk, slug_sk = _slug_keys(app['Slug'])
    owner_pk, owner_sk = _owner_keys(app['OwnerId'], app['Id'])
    get_table().transact_write_items([
        db.DeleteArg(pk, sk),
        db.DeleteArg(slug_pk, slug_sk),
        db.DeleteArg(owner_pk, owner_sk)
    ])


def is_owner(app: AppAttributes, email: Optional[str]) -> bool:
    """Check whether an email belongs to the owner of the app."""
    owner = app.get('OwnerId')
    if not email or not owner:
        return False
    return email.strip().lower() == owner.strip().lower()
