"""Unlock a password protected app."""
import json
from typing import Any, Dict, Optional

import dokklib_db as db

import apphub.common.access as access
from apphub.common.grants import check_password
from apphub.common.logging import get_logger
from apphub.common.models import App
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse
from apphub.handlers.viewer.grant_cookie import issue


_log = get_logger(__name__)


def _get_response(status: int, body: Optional[Dict[str, Any]] = None,
                  cookie: Optional[str] = None) -> ProxyResponse:
    res: ProxyResponse = {
        'statusCode': status,
    }
    if body is not None:
        res['headers'] = {'Content-Type': 'application/json'}
        res['body'] = json.dumps(body)
    if cookie:
        res['multiValueHeaders'] = {
            'Set-Cookie': [cookie]
        }
    return res


def _get_password(body: Optional[str]) -> Optional[str]:
    if not body:
        return None
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    password = data.get('password')
    if not isinstance(password, str) or not password:
        return None
    return password


def _post_handler(identifier: str, body: Optional[str]) -> ProxyResponse:
    password = _get_password(body)
    if password is None:
        return _get_response(400, {'error': 'password_required'})

    try:
        app = App.fetch_by_slug_or_id(identifier)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return _get_response(500)

    if app is None or app.get('Status') != 'published':
        return _get_response(404, {'error': 'not_found'})

    app_id = app['Id']
    access_config = access.from_attributes(app)
    if not isinstance(access_config, access.PasswordAccess):
        return _get_response(400, {'error': 'not_password_protected'})

    if not check_password(access_config, password):
        _log.info(f'Invalid password for app {app_id}')
        return _get_response(401, {'error': 'invalid_password',
                                   'gate': 'password'})

    cookie = issue(app_id, 'password')
    _log.info(f'Password gate passed for app {app_id}')
    return _get_response(200, {'success': True}, cookie=cookie)


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Check the password of an app and set a grant cookie on success."""
    http_method = event['httpMethod']

    if http_method == 'POST':
        path_params = event['pathParameters'] or {}
        return _post_handler(identifier=path_params['app_id'],
                             body=event.get('body'))
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
