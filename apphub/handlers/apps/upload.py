"""Create an app from an uploaded bundle or redeploy an existing app."""
import base64
import binascii
import json
from typing import Any, Dict, List, Optional

import dokklib_db as db

import apphub.common.bundle as bundle
from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.models import App
from apphub.common.storage import StorageError, get_storage
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse


_log = get_logger(__name__)


class RequestError(Exception):
    """Invalid request body."""

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


def _get_app_url(app: App.AppAttributes) -> str:
    return f'{config.website_origin}{config.viewer_path_base}{app["Slug"]}'


def _parse_body(event: ProxyEvent) -> Dict[str, Any]:
    body = event.get('body')
    if not body:
        raise RequestError('invalid_request')
    try:
        if event.get('isBase64Encoded'):
            body = base64.b64decode(body).decode('utf-8')
        data = json.loads(body)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError):
        raise RequestError('invalid_request')
    if not isinstance(data, dict):
        raise RequestError('invalid_request')
    return data


def parse_files(data: Dict[str, Any]) -> List[bundle.UploadedFile]:
    """Get the uploaded files from the request body.

    Args:
        data: The request body with a `files` list of `{name, content}`
            objects where content is base64 encoded.

    Returns:
        The files in upload order.

    Raises:
        RequestError if the files are malformed.

    """
    files = data.get('files')
    if not isinstance(files, list):
        raise RequestError('no_files')
    res = []
    for f in files:
        if not isinstance(f, dict):
            raise RequestError('invalid_request')
        name = f.get('name')
        content = f.get('content')
        if not isinstance(name, str) or not isinstance(content, str):
            raise RequestError('invalid_request')
        try:
            decoded = base64.b64decode(content, validate=True)
        except binascii.Error:
            raise RequestError('invalid_request')
        res.append(bundle.UploadedFile(name=name, data=decoded))
    return res


def _get_bundle_error_response(e: bundle.BundleError) -> ProxyResponse:
    if isinstance(e, bundle.BundleTooLargeError):
        status = 413
    elif isinstance(e, bundle.WriteError):
        status = 500
    else:
        status = 400
    return _get_response(status, {'error': e.reason, 'message': str(e)})


def _rollback_create(app: App.AppAttributes) -> None:
    try:
        get_storage().remove(app['StoragePath'])
    except StorageError as e:
        _log.error(f'Error removing files of app {app["Id"]}:\n{e}')
    try:
        App.delete(app)
    except db.DatabaseError as e:
        _log.error(f'Error deleting app {app["Id"]}:\n{e}')


def _post_handler(user_email: str, data: Dict[str, Any]) -> ProxyResponse:
    name = data.get('appName')
    if not isinstance(name, str) or not name.strip():
        return _get_response(400, {'error': 'missing_name'})
    description = data.get('description')
    if not isinstance(description, str):
        description = ''
    files = parse_files(data)
    if not files:
        return _get_response(400, {'error': 'no_files'})

    try:
        app = App.create(user_email, name.strip(), description.strip())
    except db.DatabaseError as e:
        _log.error(f'Error creating app:\n{e}')
        return _get_response(500)

    try:
        paths = bundle.materialize(files, get_storage(), app['StoragePath'])
    except bundle.BundleError as e:
        # Don't leave an app without content behind.
        _rollback_create(app)
        return _get_bundle_error_response(e)

    _log.info(f'Created app {app["Id"]} for {user_email}')
    return _get_response(201, {
        'app': app,
        'files': paths,
        'url': _get_app_url(app)
    })


def _put_handler(user_email: str, app_id: str, data: Dict[str, Any]) \
        -> ProxyResponse:
    files = parse_files(data)
    if not files:
        return _get_response(400, {'error': 'no_files'})

    try:
        app = App.fetch(app_id, consistent=True)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return _get_response(500)
    if app is None:
        return _get_response(404, {'error': 'not_found'})
    if not App.is_owner(app, user_email):
        return _get_response(403, {'error': 'forbidden'})

    try:
        paths = bundle.materialize(files, get_storage(), app['StoragePath'])
    except bundle.BundleError as e:
        return _get_bundle_error_response(e)

    try:
        app = App.update(app, {})
    except db.DatabaseError as e:
        # The files are live already, only the timestamp is stale.
        _log.error(f'Error updating app {app_id}:\n{e}')

    return _get_response(200, {
        'app': app,
        'files': paths,
        'url': _get_app_url(app)
    })


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Create an app from a bundle or replace the bundle of an app."""
    # Error if authorizer is missing.
    authorizer = event['requestContext']['authorizer']
    user_email = authorizer['claims']['email']
    http_method = event['httpMethod']

    try:
        if http_method == 'POST':
            return _post_handler(user_email, _parse_body(event))
        elif http_method == 'PUT':
            app_id = (event['pathParameters'] or {})['app_id']
            return _put_handler(user_email, app_id, _parse_body(event))
    except RequestError as e:
        return _get_response(400, {'error': e.reason})

    # If an unsupported method is allowed to invoke this handler, that's a
    # misconfiguration in the Cloudformation template.
    raise RuntimeError(f'Method not allowed: {http_method}')
