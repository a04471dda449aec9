"""Redeem a magic link and grant email access to an app."""
import urllib.parse
from typing import Optional

import dokklib_db as db

from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.models import MagicToken
from apphub.common.types.lambd import LambdaContext, ProxyEvent, \
    ProxyResponse
from apphub.handlers.viewer.grant_cookie import issue


_log = get_logger(__name__)


def _get_redirect(location: str, cookie: Optional[str] = None) \
        -> ProxyResponse:
    res: ProxyResponse = {
        'statusCode': 302,
        'headers': {
            'Location': f'{config.website_origin}{location}',
            'Cache-Control': 'no-store'
        }
    }
    if cookie:
        res['multiValueHeaders'] = {
            'Set-Cookie': [cookie]
        }
    return res


def _get_error_redirect(error: str) -> ProxyResponse:
    qs = urllib.parse.urlencode({'error': error})
    return _get_redirect(f'/login?{qs}')


def is_safe_return_url(return_url: Optional[str]) -> bool:
    """Check that a return url is a path on our own origin.

    Eg. '/a/my-app' is safe, but '//evil.example' or 'https://evil.example'
    are not.
    """
    if not return_url or not return_url.startswith('/'):
        return False
    if return_url.startswith('//') or '\\' in return_url:
        return False
    parsed = urllib.parse.urlsplit(return_url)
    return not parsed.scheme and not parsed.netloc


def _get_handler(token: Optional[str], return_url: Optional[str]) \
        -> ProxyResponse:
    if not token:
        return _get_error_redirect('missing_token')

    try:
        res = MagicToken.redeem(token)
    except db.DatabaseError as e:
        _log.error(f'Error redeeming magic token:\n{e}')
        return _get_error_redirect('server_error')

    if res is None or not res.app_id:
        return _get_error_redirect('invalid_token')

    cookie = issue(res.app_id, 'email', email=res.email)
    _log.info(f'Email gate passed for app {res.app_id} by {res.email}')

    if is_safe_return_url(return_url):
        location = str(return_url)
    else:
        location = f'{config.viewer_path_base}{res.app_id}'
    return _get_redirect(location, cookie=cookie)


def handler(event: ProxyEvent, context: LambdaContext) -> ProxyResponse:
    """Verify a magic link token and set an email grant cookie."""
    http_method = event['httpMethod']

    if http_method == 'GET':
        query = event['queryStringParameters'] or {}
        return _get_handler(token=query.get('token'),
                            return_url=query.get('returnUrl'))
    else:
        # If an unsupported method is allowed to invoke this handler, that's a
        # misconfiguration in the Cloudformation template.
        raise RuntimeError(f'Method not allowed: {http_method}')
