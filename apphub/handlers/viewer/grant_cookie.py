"""Grant cookies of gated apps.

Each app and gate has its own cookie, eg. `apphub_grant_password_<app_id>`.
The cookie value is the signed grant token.

"""
import urllib.parse
from http.cookies import CookieError, SimpleCookie
from typing import Mapping, Optional

from apphub.common.config import config
from apphub.common.grants import GrantManager, Mechanism
from apphub.common.logging import get_logger
from apphub.common.token import TokenClient


_log = get_logger(__name__)
_token_client = TokenClient(config.grant_secret_param)

grant_manager = GrantManager(_token_client)


def cookie_name(mechanism: Mechanism, app_id: str) -> str:
    """Get the name of the grant cookie for an app and gate."""
    return f'{config.grant_cookie_prefix}_{mechanism}_{app_id}'


def get_cookie(mechanism: Mechanism, app_id: str, token: str,
               max_age: int) -> str:
    """Get the Set-Cookie header value for a grant.

    Args:
        mechanism: The gate that was passed.
        app_id: The app id.
        token: The grant token.
        max_age: Cookie max age in seconds.

    Returns:
        The header value.

    """
    # Safari strips values after '=' (which terminates b64), so it's important
    # to url-encode the token.
    encoded_token = urllib.parse.quote(token)
    # Lax is enough, because the cookie is only sent to the viewer routes of
    # our own origin.
    c = f'{cookie_name(mechanism, app_id)}={encoded_token}; ' \
        f'Max-Age={max_age}; ' \
        f'SameSite=Lax; Path=/; HttpOnly; Secure'
    return c


def issue(app_id: str, mechanism: Mechanism, email: Optional[str] = None) \
        -> str:
    """Record a grant and get the Set-Cookie header value carrying it.

    Raises:
        ValueError if the grant can't be recorded.
        botocore.exceptions.ClientError if the signing secret could not be
            loaded from SSM.

    """
    token = grant_manager.record_grant(app_id, mechanism, email=email)
    return get_cookie(mechanism, app_id, token,
                      grant_manager.max_age(mechanism))


def get_grant_token(headers: Optional[Mapping[str, str]],
                    mechanism: Mechanism, app_id: str) -> Optional[str]:
    """Get a grant token from the request cookies.

    Args:
        headers: Lambda proxy event headers.
        mechanism: The gate.
        app_id: The app id.

    Returns:
        The token or None if it's not present.

    """
    if not headers:
        return None
    # Header names are case-insensitive and API Gateway passes them on as
    # received.
    raw_cookies = headers.get('Cookie') or headers.get('cookie')
    if not raw_cookies:
        _log.debug('No cookie in headers')
        return None

    cookies: SimpleCookie = SimpleCookie()
    try:
        cookies.load(raw_cookies)
    except CookieError:
        _log.debug('Invalid cookie in headers')
        return None
    try:
        token = cookies[cookie_name(mechanism, app_id)].value
    except KeyError:
        return None
    return urllib.parse.unquote(token)
