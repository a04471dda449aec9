"""Entities in the database.

The key for an item is composed of the entity name and the key value, eg. for
users: `USER#alice@example.com`.

"""
import dokklib_db as db


class App(db.EntityName):
    """Deployed static app.

    Value: app id (uuid).

    """


class MagicToken(db.EntityName):
    """Single-use email verification token.

    Value: token SHA3-256 hex hash as string, eg. '5302f768ab8...'.

    """


class Slug(db.EntityName):
    """Human readable app identifier used in share urls.

    Value: slug, eg. 'my-dashboard'.

    """


class User(db.EntityName):
    """User info.

    Value: user's email address.

    """


class Star(db.EntityName):
    """A user's bookmark of an app.

    Value: app id (uuid).

    """
