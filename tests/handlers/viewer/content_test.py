import base64
import urllib.parse
from unittest.mock import patch

import dokklib_db as db

import apphub.common.models.app as app_model
from apphub.common.bundle import UploadedFile, materialize
from apphub.common.grants import GrantManager
from apphub.common.storage import StorageError
from apphub.common.token import TokenClient
from apphub.handlers.viewer import content as m
from apphub.handlers.viewer.grant_cookie import cookie_name

from tests import TestBase


class TestContentHandlerBase(TestBase):
    _to_patch = [
        'apphub.handlers.viewer.content.App',
        'apphub.handlers.viewer.content.get_storage',
        'apphub.handlers.viewer.content._log'
    ]

    def setUp(self):
        super().setUp()
        token_client = TokenClient(
            'unit-test-param', secret=b'unit-test-secret-unit-test-secret')
        self._grants = GrantManager(token_client)
        patcher = patch('apphub.handlers.viewer.content.grant_manager',
                        self._grants)
        patcher.start()
        self.addCleanup(patcher.stop)

        self._storage = self.get_local_storage()
        self._mocks['get_storage'].return_value = self._storage

        self._owner = 'owner@example.com'
        self._app = {
            'Id': '3f2b7a0e-5c1d-4e8a-9b6f-2d4c8e1a7b90',
            'Slug': 'my-dashboard',
            'Name': 'My Dashboard',
            'Status': 'published',
            'StoragePath': 'my-dashboard-1a2b3c4d',
            'AccessType': 'public',
            'OwnerId': self._owner
        }
        self._app_model = self._mocks['App']
        self._app_model.fetch_by_slug_or_id.return_value = self._app
        self._app_model.is_owner.side_effect = app_model.is_owner

        self._event = self.get_event('api-proxy-viewer')

    def _deploy(self):
        files = [
            UploadedFile('index.html', b'<h1>Dashboard</h1>'),
            UploadedFile('css/app.css', b'body {}'),
        ]
        materialize(files, self._storage, self._app['StoragePath'])

    def _set_path(self, path):
        self._event['pathParameters']['path'] = path

    def _sign_in(self, email):
        self._event['requestContext']['authorizer'] = {
            'claims': {'email': email}
        }

    def _add_grant(self, mechanism, email=None, app_id=None):
        app_id = app_id or self._app['Id']
        token = self._grants.record_grant(app_id, mechanism, email=email)
        name = cookie_name(mechanism, app_id)
        self._event['headers']['Cookie'] += \
            f'; {name}={urllib.parse.quote(token)}'

    def _call(self):
        return m.handler(self._event, None)


class TestServe(TestContentHandlerBase):
    def setUp(self):
        super().setUp()
        self._deploy()

    def test_static_file(self):
        res = self._call()
        self.assertEqual(res['statusCode'], 200)
        self.assertTrue(res['isBase64Encoded'])
        self.assertEqual(base64.b64decode(res['body']), b'body {}')
        self.assertEqual(res['headers']['Content-Type'], 'text/css')
        self.assertEqual(res['headers']['Cache-Control'],
                         'public, max-age=3600')

    def test_entry(self):
        self._event['pathParameters'].pop('path')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)
        self.assertEqual(base64.b64decode(res['body']),
                         b'<h1>Dashboard</h1>')
        self.assertEqual(res['headers']['Content-Type'], 'text/html')
        self.assertEqual(res['headers']['Cache-Control'], 'no-cache')

    def test_encoded_path(self):
        self._set_path('css%2Fapp.css')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_missing_file(self):
        self._set_path('missing.js')
        res = self._call()
        self.assertEqual(res['statusCode'], 404)

    def test_traversal(self):
        for path in ('../other-app/index.html', '..%2F..%2Fsecret'):
            self._set_path(path)
            res = self._call()
            self.assertEqual(res['statusCode'], 403)
            body = self.get_json_body(res)
            self.assertEqual(body['error'], 'forbidden')

    def test_storage_error(self):
        storage = self._mocks['get_storage'].return_value
        with patch.object(type(storage), 'read', side_effect=StorageError):
            res = self._call()
        self.assertEqual(res['statusCode'], 500)
        self._mocks['_log'].error.assert_called_once()


class TestAppLookup(TestContentHandlerBase):
    def test_missing_app(self):
        self._app_model.fetch_by_slug_or_id.return_value = None
        res = self._call()
        self.assertEqual(res['statusCode'], 404)

    def test_draft_hidden(self):
        self._deploy()
        self._app['Status'] = 'draft'
        res = self._call()
        self.assertEqual(res['statusCode'], 404)

    def test_draft_visible_to_owner(self):
        self._deploy()
        self._app['Status'] = 'draft'
        self._sign_in('Owner@Example.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_database_error(self):
        self._app_model.fetch_by_slug_or_id.side_effect = db.DatabaseError
        res = self._call()
        self.assertEqual(res['statusCode'], 500)
        self._mocks['_log'].error.assert_called_once()

    def test_empty_app(self):
        self._event['pathParameters'].pop('path')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)
        self.assertTrue(self.get_json_body(res)['empty'])

    def test_unsupported_method(self):
        self._event['httpMethod'] = 'POST'
        with self.assertRaises(RuntimeError):
            self._call()


class TestGates(TestContentHandlerBase):
    def setUp(self):
        super().setUp()
        self._deploy()

    def _set_access(self, access_type, **fields):
        self._app['AccessType'] = access_type
        self._app.update(fields)

    def test_private(self):
        self._set_access('private')
        res = self._call()
        self.assertEqual(res['statusCode'], 403)
        body = self.get_json_body(res)
        self.assertEqual(body['reason'], 'private')
        self.assertNotIn('gate', body)

    def test_private_owner(self):
        self._set_access('private')
        self._sign_in(self._owner)
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_password_gate(self):
        self._set_access('password', AccessPassword='hunter2')
        res = self._call()
        self.assertEqual(res['statusCode'], 401)
        body = self.get_json_body(res)
        self.assertEqual(body['gate'], 'password')
        self.assertEqual(body['appName'], 'My Dashboard')
        self.assertEqual(res['headers']['Cache-Control'], 'no-store')

    def test_password_grant(self):
        self._set_access('password', AccessPassword='hunter2')
        self._add_grant('password')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_password_grant_other_app(self):
        self._set_access('password', AccessPassword='hunter2')
        self._add_grant('password', app_id='other-app')
        res = self._call()
        self.assertEqual(res['statusCode'], 401)

    def test_email_grant_doesnt_unlock_password(self):
        self._set_access('password', AccessPassword='hunter2')
        self._add_grant('email', email='alice@corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 401)

    def test_domain_gate(self):
        self._set_access('domain', AccessDomain='corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 401)
        self.assertEqual(self.get_json_body(res)['gate'], 'email')

    def test_domain_grant(self):
        self._set_access('domain', AccessDomain='corp.com')
        self._add_grant('email', email='x@corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_domain_grant_wrong_domain(self):
        self._set_access('domain', AccessDomain='corp.com')
        self._add_grant('email', email='x@other.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 403)
        self.assertEqual(self.get_json_body(res)['reason'], 'wrong_domain')

    def test_signed_in_on_list(self):
        self._set_access('email_list', AccessEmails=['alice@corp.com'])
        self._sign_in('Alice@Corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_email_list_grant_overrides_session(self):
        self._set_access('email_list', AccessEmails=['alice@corp.com'])
        self._sign_in('eve@corp.com')
        self._add_grant('email', email='alice@corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 200)

    def test_not_on_list(self):
        self._set_access('email_list', AccessEmails=['alice@corp.com'])
        self._sign_in('eve@corp.com')
        res = self._call()
        self.assertEqual(res['statusCode'], 403)
        self.assertEqual(self.get_json_body(res)['reason'], 'not_on_list')
