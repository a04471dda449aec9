import urllib.parse
from http import cookies
from typing import Any
from unittest.mock import patch

from apphub.common.config import config
from apphub.common.grants import GrantManager
from apphub.common.token import TokenClient
from apphub.handlers.viewer import grant_cookie as m

from tests import TestBase


class TestCookieName(TestBase):
    def test_scoped(self):
        name = m.cookie_name('password', 'app-1')
        self.assertEqual(name, f'{config.grant_cookie_prefix}_password_app-1')
        self.assertNotEqual(name, m.cookie_name('email', 'app-1'))
        self.assertNotEqual(name, m.cookie_name('password', 'app-2'))


class TestGetCookie(TestBase):
    def test_fields(self):
        # Important to test for '=' as it needs to be url-encoded.
        token = 'unit=.test=.data='
        max_age = 100
        cookie_str = m.get_cookie('password', 'app-1', token, max_age)
        # Mypy doesn't recognize cookies.SimpleCookie as a type.
        c: Any = cookies.SimpleCookie()
        c.load(cookie_str)
        morsel = c[m.cookie_name('password', 'app-1')]
        self.assertEqual(morsel.value, urllib.parse.quote(token))
        self.assertEqual(morsel['max-age'], str(max_age))
        self.assertEqual(morsel['samesite'], 'Lax')
        self.assertEqual(morsel['path'], '/')
        self.assertTrue(morsel['httponly'])
        self.assertTrue(morsel['secure'])


class TestGrantCookieBase(TestBase):
    _to_patch = [
        'apphub.handlers.viewer.grant_cookie._log'
    ]

    def setUp(self):
        super().setUp()
        token_client = TokenClient(
            'unit-test-param', secret=b'unit-test-secret-unit-test-secret')
        self._grants = GrantManager(token_client)
        patcher = patch('apphub.handlers.viewer.grant_cookie.grant_manager',
                        self._grants)
        patcher.start()
        self.addCleanup(patcher.stop)


class TestIssue(TestGrantCookieBase):
    def test_password(self):
        cookie_str = m.issue('app-1', 'password')
        c: Any = cookies.SimpleCookie()
        c.load(cookie_str)
        morsel = c[m.cookie_name('password', 'app-1')]
        token = urllib.parse.unquote(morsel.value)
        self.assertTrue(self._grants.has_grant(token, 'app-1', 'password'))
        self.assertEqual(morsel['max-age'],
                         str(config.password_grant_max_age))

    def test_email(self):
        cookie_str = m.issue('app-1', 'email', email='a@corp.com')
        c: Any = cookies.SimpleCookie()
        c.load(cookie_str)
        morsel = c[m.cookie_name('email', 'app-1')]
        token = urllib.parse.unquote(morsel.value)
        self.assertEqual(self._grants.granted_email(token, 'app-1'),
                         'a@corp.com')
        self.assertEqual(morsel['max-age'], str(config.email_grant_max_age))


class TestGetGrantToken(TestGrantCookieBase):
    def _get_headers(self, token, header_name='Cookie'):
        name = m.cookie_name('password', 'app-1')
        cookie = 'a=b; c=d;'
        if token:
            cookie += f' {name}={urllib.parse.quote(token)}'
        return {header_name: cookie}

    def test_no_headers(self):
        self.assertIsNone(m.get_grant_token(None, 'password', 'app-1'))
        self.assertIsNone(m.get_grant_token({}, 'password', 'app-1'))

    def test_missing_cookie(self):
        headers = self._get_headers(None)
        self.assertIsNone(m.get_grant_token(headers, 'password', 'app-1'))

    def test_invalid_cookie(self):
        headers = {'Cookie': 'a=b; c=d; invalid cookie'}
        self.assertIsNone(m.get_grant_token(headers, 'password', 'app-1'))

    def test_unquotes(self):
        headers = self._get_headers('unit=.test=')
        self.assertEqual(m.get_grant_token(headers, 'password', 'app-1'),
                         'unit=.test=')

    def test_lowercase_header(self):
        headers = self._get_headers('token', header_name='cookie')
        self.assertEqual(m.get_grant_token(headers, 'password', 'app-1'),
                         'token')

    def test_other_app(self):
        headers = self._get_headers('token')
        self.assertIsNone(m.get_grant_token(headers, 'password', 'app-2'))
