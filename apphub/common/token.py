"""Generate or verify signed tokens.

Signing algorithm: HS256.

Tokens are JWTs signed with a shared secret that is stored in AWS SSM
Parameter Store. Verification is local, so checking a token on every viewer
request doesn't hit AWS after the secret has been loaded once.

"""
import copy
import time
from typing import Any, Dict, Literal, Optional, cast

import jwt

from apphub.common import params
from apphub.common.logging import get_logger


_StrDict = Dict[str, Any]


class AuthenticationError(Exception):
    """Token signature can not be verified."""

    def __init__(self) -> None:
        """Initialize an AuthenticationError instance."""
        # Important that the error message is always the same.
        super().__init__(self.__doc__)


class TokenClient:
    """Generate signed tokens or verify them.

    The implementation is NOT thread-safe.

    """

    @staticmethod
    def _get_expiry(max_age: int) -> int:
        return round(time.time() + max_age)

    def __init__(self, secret_param_name: str,
                 secret: Optional[bytes] = None):
        """Initialize a TokenClient instance.

        Args:
            secret_param_name: The name of the SSM parameter that holds the
                base64 encoded signing secret.
            secret: The signing secret. If provided, SSM is not queried.

        """
        self._log = get_logger(f'{__name__}.{self.__class__.__name__}')
        self._secret_param_name = secret_param_name
        self._secret = secret

    @property
    def jwt_algorithm(self) -> Literal['HS256']:
        """Get the JWT signing algorithm name."""
        return 'HS256'

    @property
    def secret(self) -> bytes:
        """Get the signing secret."""
        if self._secret is None:
            secret = params.get_param(self._secret_param_name, b64decode=True)
            self._secret = cast(bytes, secret)
        return self._secret

    def get_token(self, payload: _StrDict, max_age: int) -> str:
        """Generate a JWT token.

        The payload will be automatically added an `exp` field that is set to
        `round(time.time() + max_age)`.

        Args:
            payload: The message to sign.
            max_age: The maximum age of the token from now in seconds.

        Returns:
            The JWT token.

        Raises:
            botocore.exceptions.ClientError if the secret could not be loaded
                from SSM.
            ValueError if `message` has an `exp` key.

        """
        if 'exp' in payload:
            raise ValueError('Payload must not contain `exp` field.')
        payload = copy.deepcopy(payload)
        payload['exp'] = self._get_expiry(max_age)
        return jwt.encode(payload, self.secret, algorithm=self.jwt_algorithm)

    def get_verified_payload(self, token: str) -> _StrDict:
        """Get payload from a token and verify its signature.

        Args:
            token: The JWT token string.

        Returns:
            The payload dict.

        Raises:
            apphub.common.token.AuthenticationError if the authenticity of the
                token can not be established.

        """
        # It's important that the same error is raised no matter why the
        # verification failed.
        try:
            # Never let the token pick the algorithm. Expiry is checked below
            # with the clock that set it.
            payload = jwt.decode(token, self.secret,
                                 algorithms=[self.jwt_algorithm],
                                 options={'require': ['exp'],
                                          'verify_exp': False})
        except jwt.InvalidTokenError as e:
            self._log.debug(f'Invalid token: {e}')
            raise AuthenticationError()

        expires = payload['exp']
        if not isinstance(expires, (int, float)) or expires < time.time():
            self._log.debug('Message expired')
            raise AuthenticationError()

        return cast(_StrDict, payload)
