"""Star or unstar an app."""
import json
from typing import Any, Dict, Optional

import dokklib_db as db

from apphub.common.logging import get_logger
from apphub.common.models import App, Star
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


def _post_handler(user_email: str, app_id: str) -> ProxyResponse:
    try:
        app = App.fetch(app_id)
        # Unpublished apps don't exist for anyone but the owner.
        if app is None or (app.get('Status') != 'published' and
                           not App.is_owner(app, user_email)):
            return _get_response(404, {'error': 'not_found'})
        starred = Star.toggle(user_email, app['Id'])
    except db.DatabaseError as e:
        _log.error(f'Error toggling star of app {app_id}:\n{e}')
        return _get_response(500)

    return _get_response(200, {'starred': starred})


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Toggle the star of the signed in user on an app."""
    authorizer = event['requestContext']['authorizer']
    user_email = authorizer['claims']['email']
    http_method = event['httpMethod']

    if http_method == 'POST':
        path_params = event['pathParameters'] or {}
        return _post_handler(user_email=user_email,
                             app_id=path_params['app_id'])
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
