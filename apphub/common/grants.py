"""Proof that a viewer passed an app's gate.

Grants are capability tokens held by the viewer (eg. in a cookie). They are
scoped to one app and one mechanism and they expire. There is no server-side
record of grants, so a grant can't be revoked before it expires.

"""
from typing import Literal, Optional

from apphub.common.access import AccessConfig, PasswordAccess, \
    normalize_email
from apphub.common.config import config
from apphub.common.logging import get_logger
from apphub.common.token import AuthenticationError, TokenClient


Mechanism = Literal['password', 'email']
MECHANISMS = ('password', 'email')


class GrantManager:
    """Issue and check gate grants."""

    def __init__(self, token_client: TokenClient,
                 password_max_age: int = config.password_grant_max_age,
                 email_max_age: int = config.email_grant_max_age):
        """Initialize a GrantManager instance.

        Args:
            token_client: Signs and verifies the grant tokens.
            password_max_age: Validity of password grants in seconds.
            email_max_age: Validity of email grants in seconds.

        """
        self._log = get_logger(f'{__name__}.{self.__class__.__name__}')
        self._token_client = token_client
        self._max_ages = {
            'password': password_max_age,
            'email': email_max_age
        }

    def max_age(self, mechanism: Mechanism) -> int:
        """Get the validity window of a grant in seconds."""
        return self._max_ages[mechanism]

    def _get_payload(self, token: Optional[str], app_id: str,
                     mechanism: Mechanism) -> Optional[dict]:
        if not token:
            return None
        try:
            payload = self._token_client.get_verified_payload(token)
        except AuthenticationError:
            self._log.debug('Invalid or expired grant')
            return None
        # A grant for one app must not unlock an other app or an other gate.
        if payload.get('app') != app_id or payload.get('mch') != mechanism:
            self._log.debug('Grant out of scope')
            return None
        return payload

    def record_grant(self, app_id: str, mechanism: Mechanism,
                     email: Optional[str] = None) -> str:
        """Issue a grant after a successful challenge.

        Args:
            app_id: The app the grant is for.
            mechanism: The gate that was passed.
            email: The verified email. Required for the email mechanism.

        Returns:
            The grant token.

        Raises:
            ValueError if the mechanism is unknown or the email is missing for
                an email grant.

        """
        if mechanism not in MECHANISMS:
            raise ValueError(f'Unknown grant mechanism: {mechanism}')
        payload = {
            'app': app_id,
            'mch': mechanism
        }
        if mechanism == 'email':
            if not email:
                raise ValueError('Email grants require an email.')
            payload['eml'] = normalize_email(email)

        return self._token_client.get_token(payload, self.max_age(mechanism))

    def has_grant(self, token: Optional[str], app_id: str,
                  mechanism: Mechanism, email: Optional[str] = None) -> bool:
        """Check whether a grant token is valid for an app and mechanism.

        Never raises on missing or invalid tokens.

        Args:
            token: The grant token presented by the viewer if any.
            app_id: The app the viewer requests.
            mechanism: The gate to check.
            email: The email the viewer presents now. For the email mechanism
                it must match the email that was verified.

        Returns:
            True if the grant is valid.

        """
        payload = self._get_payload(token, app_id, mechanism)
        if payload is None:
            return False
        if mechanism == 'email':
            granted = payload.get('eml')
            if not email or not isinstance(granted, str):
                return False
            return normalize_email(email) == granted
        return True

    def granted_email(self, token: Optional[str], app_id: str) \
            -> Optional[str]:
        """Get the verified email from an email grant.

        Returns:
            The email or None if there is no valid email grant for the app.

        """
        payload = self._get_payload(token, app_id, 'email')
        if payload is None:
            return None
        email = payload.get('eml')
        return email if isinstance(email, str) and email else None


def check_password(access: AccessConfig, submitted: str) -> bool:
    """Check a submitted password against the app's password.

    Passwords are stored and compared in plain text.

    Returns:
        True if the app is password protected and the password matches.

    """
    if not isinstance(access, PasswordAccess):
        return False
    return submitted == access.password
