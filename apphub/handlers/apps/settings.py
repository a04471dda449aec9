"""List, get, update or delete a user's apps."""
import json
from typing import Any, Dict, List, Optional, Set

import dokklib_db as db

import apphub.common.access as access
from apphub.common.logging import get_logger
from apphub.common.models import App, Star
from apphub.common.storage import StorageError, get_storage
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse


_log = get_logger(__name__)

SORT_ORDERS = ('recent', 'name')


class SettingsError(Exception):
    """Invalid settings in the request body."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def _get_response(status: int, body: Optional[Dict[str, Any]] = None) \
        -> ProxyResponse:
    res: ProxyResponse = {
        'statusCode': status,
    }
    if body is not None:
        res['headers'] = {'Content-Type': 'application/json'}
        res['body'] = json.dumps(body)
    return res


def parse_access(settings: Any) -> access.AccessConfig:
    """Build an access config from the `access` object of a request.

    Eg. `{"type": "domain", "domain": "@example.com"}`.

    Raises:
        SettingsError if the settings are incomplete or invalid.

    """
    if not isinstance(settings, dict):
        raise SettingsError('invalid_access')
    access_type = settings.get('type')
    if access_type not in access.ACCESS_TYPES:
        raise SettingsError('invalid_access')
    if access_type == 'private':
        return access.PrivateAccess()
    elif access_type == 'public':
        return access.PublicAccess()
    elif access_type == 'password':
        password = settings.get('password')
        if not isinstance(password, str) or not password:
            raise SettingsError('password_required')
        return access.PasswordAccess(password=password)
    elif access_type == 'email_list':
        emails = settings.get('emails')
        if not isinstance(emails, list) or not emails:
            raise SettingsError('emails_required')
        if not all(access.is_valid_email(e) for e in emails):
            raise SettingsError('invalid_email')
        return access.email_list(emails)
    else:
        domain = settings.get('domain')
        if not isinstance(domain, str) or \
                not access.normalize_domain(domain):
            raise SettingsError('domain_required')
        return access.DomainAccess(domain=access.normalize_domain(domain))


def get_changes(data: Dict[str, Any]) -> Dict[str, Any]:
    """Get the attribute changes from a PATCH request body.

    Status changes are not included.

    Raises:
        SettingsError if a setting is invalid.

    """
    changes: Dict[str, Any] = {}
    if 'name' in data:
        name = data['name']
        if not isinstance(name, str) or not name.strip():
            raise SettingsError('missing_name')
        changes['Name'] = name.strip()
    if 'description' in data:
        description = data['description']
        if not isinstance(description, str):
            raise SettingsError('invalid_description')
        changes['Description'] = description.strip()
    if 'access' in data:
        changes.update(access.to_attributes(parse_access(data['access'])))
    return changes


def filter_apps(apps: List[App.AppAttributes], search: Optional[str] = None,
                sort: str = 'recent',
                starred_ids: Optional[Set[str]] = None) \
        -> List[App.AppAttributes]:
    """Filter and sort apps for listing.

    Args:
        apps: The apps to list.
        search: Case-insensitive text that the name or the description must
            contain.
        sort: 'recent' for newest first or 'name' for alphabetical.
        starred_ids: If provided, only these apps are listed.

    Returns:
        The matching apps in the requested order.

    Raises:
        SettingsError if the sort order is unknown.

    """
    if sort not in SORT_ORDERS:
        raise SettingsError('invalid_sort')
    res = list(apps)
    if search and search.strip():
        needle = search.strip().lower()
        res = [a for a in res
               if needle in a.get('Name', '').lower() or
               needle in a.get('Description', '').lower()]
    if starred_ids is not None:
        res = [a for a in res if a['Id'] in starred_ids]
    if sort == 'name':
        res.sort(key=lambda a: a.get('Name', '').lower())
    else:
        res.sort(key=lambda a: a.get('CreatedAt', ''), reverse=True)
    return res


def _fetch_owned(user_email: str, app_id: str) -> Any:
    """Fetch an app of the user or get an error response."""
    try:
        app = App.fetch(app_id, consistent=True)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return None, _get_response(500)
    if app is None:
        return None, _get_response(404, {'error': 'not_found'})
    if not App.is_owner(app, user_email):
        return None, _get_response(403, {'error': 'forbidden'})
    return app, None


def _delete_handler(user_email: str, app_id: str) -> ProxyResponse:
    app, err = _fetch_owned(user_email, app_id)
    if err:
        return err

    try:
        get_storage().remove(app['StoragePath'])
    except StorageError as e:
        # Keep the record, so the client can retry the delete.
        _log.error(f'Error removing files of app {app_id}:\n{e}')
        return _get_response(500)

    try:
        App.delete(app)
    except db.DatabaseError as e:
        _log.error(f'Error deleting app {app_id}:\n{e}')
        return _get_response(500)

    _log.info(f'Deleted app {app_id}')
    return _get_response(200)


def _list_handler(user_email: str, query: Dict[str, str]) -> ProxyResponse:
    sort = query.get('sort') or 'recent'
    starred_only = query.get('starred') == 'true'
    if sort not in SORT_ORDERS:
        return _get_response(400, {'error': 'invalid_sort'})

    try:
        apps = App.fetch_all_for_owner(user_email)
        starred = Star.fetch_starred_ids(user_email)
    except db.DatabaseError as e:
        _log.error(f'Error fetching apps:\n{e}')
        return _get_response(500)

    apps = filter_apps(apps, search=query.get('search'), sort=sort,
                       starred_ids=starred if starred_only else None)
    res = [{**a, 'IsStarred': a['Id'] in starred} for a in apps]
    return _get_response(200, {'apps': res, 'total': len(res)})


def _get_handler(user_email: str, app_id: Optional[str],
                 query: Dict[str, str]) -> ProxyResponse:
    if app_id is None:
        return _list_handler(user_email, query)

    app, err = _fetch_owned(user_email, app_id)
    if err:
        return err
    return _get_response(200, {'app': app})


def _patch_handler(user_email: str, app_id: str, body: Optional[str]) \
        -> ProxyResponse:
    try:
        data = json.loads(body or '')
    except json.JSONDecodeError:
        return _get_response(400, {'error': 'invalid_request'})
    if not isinstance(data, dict):
        return _get_response(400, {'error': 'invalid_request'})

    status = data.get('status')
    if status is not None and status not in App.STATUSES:
        return _get_response(400, {'error': 'invalid_status'})
    try:
        changes = get_changes(data)
    except SettingsError as e:
        return _get_response(400, {'error': e.reason})

    app, err = _fetch_owned(user_email, app_id)
    if err:
        return err

    try:
        if changes:
            app = App.update(app, changes)
        if status is not None:
            app = App.set_status(app, status)
    except db.DatabaseError as e:
        _log.error(f'Error updating app {app_id}:\n{e}')
        return _get_response(500)

    return _get_response(200, {'app': app})


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Manage the apps of the signed in user."""
    authorizer = event['requestContext']['authorizer']
    user_email = authorizer['claims']['email']
    http_method = event['httpMethod']
    path_params = event['pathParameters'] or {}

    if http_method == 'DELETE':
        return _delete_handler(user_email=user_email,
                               app_id=path_params['app_id'])
    elif http_method == 'GET':
        return _get_handler(user_email=user_email,
                            app_id=path_params.get('app_id'),
                            query=event['queryStringParameters'] or {})
    elif http_method == 'PATCH':
        return _patch_handler(user_email=user_email,
                              app_id=path_params['app_id'],
                              body=event.get('body'))
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
