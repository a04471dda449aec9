"""List the files of the live release of an app."""
import json
from typing import Any, Dict, Optional

import dokklib_db as db

from apphub.common.content import list_files
from apphub.common.logging import get_logger
from apphub.common.models import App
from apphub.common.storage import StorageError, get_storage
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse


_log = get_logger(__name__)


def _get_response(status: int, body: Optional[Dict[str, Any]] = None) \
        -> ProxyResponse:
    res: ProxyResponse = {
        'statusCode': status,
    }
    if body is not None:
        res['headers'] = {'Content-Type': 'application/json'}
        res['body'] = json.dumps(body)
    return res


def _get_handler(user_email: str, app_id: str) -> ProxyResponse:
    try:
        app = App.fetch(app_id)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return _get_response(500)
    if app is None:
        return _get_response(404, {'error': 'not_found'})
    if not App.is_owner(app, user_email):
        return _get_response(403, {'error': 'forbidden'})

    try:
        files = list_files(get_storage(), app['StoragePath'])
    except StorageError as e:
        _log.error(f'Error listing files of app {app_id}:\n{e}')
        return _get_response(500)

    return _get_response(200, {'files': files, 'total': len(files)})


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """List the files of an app for its owner."""
    authorizer = event['requestContext']['authorizer']
    user_email = authorizer['claims']['email']
    http_method = event['httpMethod']

    if http_method == 'GET':
        path_params = event['pathParameters'] or {}
        return _get_handler(user_email=user_email,
                            app_id=path_params['app_id'])
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
