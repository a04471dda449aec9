"""Serve the files of a deployed app to viewers."""
import base64
import json
import urllib.parse
from typing import Any, Dict, Mapping, Optional

import dokklib_db as db

import apphub.common.access as access
import apphub.common.content as content
from apphub.common.logging import get_logger
from apphub.common.models import App
from apphub.common.storage import StorageError, get_storage
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse
from apphub.handlers.viewer.grant_cookie import get_grant_token, \
    grant_manager


_log = get_logger(__name__)

# Denials that an email grant can resolve.
_EMAIL_REASONS = ('email_required', 'not_on_list', 'wrong_domain')


def _get_response(status: int, body: Optional[Dict[str, Any]] = None) \
        -> ProxyResponse:
    res: ProxyResponse = {
        'statusCode': status,
        'headers': {
            # Gate decisions depend on cookies.
            'Cache-Control': 'no-store'
        }
    }
    if body is not None:
        res['headers']['Content-Type'] = 'application/json'
        res['body'] = json.dumps(body)
    return res


def _get_content_response(c: content.Content) -> ProxyResponse:
    return {
        'statusCode': 200,
        'isBase64Encoded': True,
        'headers': {
            'Content-Type': c.mime_type,
            'Cache-Control': c.cache_control
        },
        'body': base64.b64encode(c.body).decode('ascii')
    }


def _get_requester_email(event: ProxyEvent) -> Optional[str]:
    # The viewer routes allow anonymous requests, the authorizer only runs if
    # the requester is signed in.
    authorizer = event['requestContext'].get('authorizer') or {}
    claims = authorizer.get('claims') or {}
    return claims.get('email')


def check_access(app_id: str, access_config: access.AccessConfig,
                 requester_email: Optional[str], is_owner: bool,
                 headers: Optional[Mapping[str, str]]) -> access.Verdict:
    """Combine the access verdict with the grants of the requester.

    Args:
        app_id: The app id.
        access_config: The app's access config.
        requester_email: The signed in requester's email if any.
        is_owner: Whether the requester owns the app.
        headers: Lambda proxy event headers with the grant cookies.

    Returns:
        The verdict.

    """
    verdict = access.evaluate(access_config, requester_email, is_owner)
    if verdict.allowed:
        return verdict

    if verdict.reason == 'password_required':
        token = get_grant_token(headers, 'password', app_id)
        if grant_manager.has_grant(token, app_id, 'password'):
            return access.ALLOW
    elif verdict.reason in _EMAIL_REASONS:
        token = get_grant_token(headers, 'email', app_id)
        granted_email = grant_manager.granted_email(token, app_id)
        if granted_email:
            return access.evaluate(access_config, granted_email, is_owner)

    return verdict


def _get_handler(identifier: str, path: str, requester_email: Optional[str],
                 headers: Optional[Mapping[str, str]]) -> ProxyResponse:
    try:
        app = App.fetch_by_slug_or_id(identifier)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return _get_response(500)

    if app is None:
        return _get_response(404, {'error': 'not_found'})

    is_owner = App.is_owner(app, requester_email)
    # Unpublished apps are hidden from everybody but the owner.
    if app.get('Status') != 'published' and not is_owner:
        return _get_response(404, {'error': 'not_found'})

    app_id = app['Id']
    verdict = check_access(app_id, access.from_attributes(app),
                           requester_email, is_owner, headers)
    if not verdict.allowed:
        body = {
            'error': 'access_denied',
            'reason': verdict.reason,
            'appId': app_id,
            'appName': app.get('Name', '')
        }
        gate = access.gate_for(verdict.reason)
        if gate is not None:
            body['gate'] = gate
            return _get_response(401, body)
        return _get_response(403, body)

    try:
        c = content.resolve(get_storage(), app['StoragePath'], path)
    except content.EmptyAppError:
        return _get_response(200, {'empty': True, 'appId': app_id})
    except content.ForbiddenError:
        return _get_response(403, {'error': 'forbidden',
                                   'reason': 'invalid_path'})
    except content.NotFoundError:
        return _get_response(404, {'error': 'not_found'})
    except StorageError as e:
        _log.error(f'Error reading content of app {app_id}:\n{e}')
        return _get_response(500)

    return _get_content_response(c)


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Serve a file of an app if the requester may view it."""
    http_method = event['httpMethod']

    if http_method == 'GET':
        path_params = event['pathParameters'] or {}
        return _get_handler(identifier=path_params['app_id'],
                            path=urllib.parse.unquote(
                                path_params.get('path') or ''),
                            requester_email=_get_requester_email(event),
                            headers=event['headers'])
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
