"""Create a magic link to verify a viewer's email for an app.

Sending the link by email is not implemented yet. In the dev deployment the
link is logged and returned in the response. Other deployments only log that
a link was created.

"""
import json
import urllib.parse
from typing import Any, Dict, Optional

import dokklib_db as db

import apphub.common.access as access
from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.models import App, MagicToken
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


def get_verify_url(token: str, return_url: Optional[str] = None) -> str:
    """Build the link that redeems a magic token.

    Args:
        token: The magic token.
        return_url: Where to redirect the viewer after verification.

    Returns:
        The absolute url.

    """
    query = {'token': token}
    if return_url:
        query['returnUrl'] = return_url
    qs = urllib.parse.urlencode(query)
    return f'{config.website_origin}/auth/verify?{qs}'


def _parse_body(body: Optional[str]) -> Dict[str, Any]:
    if not body:
        return {}
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def _post_handler(body: Optional[str]) -> ProxyResponse:
    data = _parse_body(body)
    email = data.get('email')
    if not access.is_valid_email(email):
        return _get_response(400, {'error': 'invalid_email'})
    app_identifier = data.get('appId')
    if not isinstance(app_identifier, str) or not app_identifier:
        return _get_response(400, {'error': 'app_required'})
    return_url = data.get('returnUrl')
    if not isinstance(return_url, str):
        return_url = None

    try:
        app = App.fetch_by_slug_or_id(app_identifier)
    except db.DatabaseError as e:
        _log.error(f'Error fetching app:\n{e}')
        return _get_response(500)
    if app is None:
        return _get_response(404, {'error': 'not_found'})

    normalized_email = access.normalize_email(email)
    try:
        token = MagicToken.create(normalized_email, app['Id'])
    except db.DatabaseError as e:
        _log.error(f'Error creating magic token:\n{e}')
        return _get_response(500)

    link = get_verify_url(token, return_url)
    res: Dict[str, Any] = {'success': True}
    if config.deployment_target == 'dev':
        _log.info(f'Magic link for {normalized_email}: {link}')
        res['devLink'] = link
    else:
        # The link is a credential until it's redeemed.
        _log.info(f'Magic link created for {normalized_email} and app '
                  f'{app["Id"]}')
    return _get_response(200, res)


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Create a magic link for an email address and an app."""
    http_method = event['httpMethod']

    if http_method == 'POST':
        return _post_handler(event.get('body'))
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
