import json

import dokklib_db as db

from apphub.handlers.viewer import password as m

from tests import TestBase


class TestPasswordHandler(TestBase):
    _to_patch = [
        'apphub.handlers.viewer.password.App',
        'apphub.handlers.viewer.password.issue',
        'apphub.handlers.viewer.password._log'
    ]

    def setUp(self):
        super().setUp()
        self._app = {
            'Id': 'app-id',
            'Slug': 'my-dashboard',
            'Status': 'published',
            'AccessType': 'password',
            'AccessPassword': 'hunter2'
        }
        self._mocks['App'].fetch_by_slug_or_id.return_value = self._app
        self._mocks['issue'].return_value = 'apphub_grant_password_app-id=x'
        self._event = self.get_event('api-proxy-viewer')
        self._event['httpMethod'] = 'POST'
        self._event['pathParameters'] = {'app_id': 'my-dashboard'}

    def _call(self, password='hunter2'):
        self._event['body'] = json.dumps({'password': password})
        return m.handler(self._event, None)

    def test_correct_password(self):
        res = self._call()
        self.assertEqual(res['statusCode'], 200)
        self.assertListEqual(res['multiValueHeaders']['Set-Cookie'],
                             ['apphub_grant_password_app-id=x'])
        self._mocks['issue'].assert_called_once_with('app-id', 'password')
        self._mocks['_log'].info.assert_called()

    def test_wrong_password(self):
        res = self._call('hunter3')
        self.assertEqual(res['statusCode'], 401)
        self.assertNotIn('multiValueHeaders', res)
        self._mocks['issue'].assert_not_called()

    def test_missing_password(self):
        for body in (None, '', 'not json', '[]', '{"password": ""}'):
            self._event['body'] = body
            res = m.handler(self._event, None)
            self.assertEqual(res['statusCode'], 400)

    def test_not_password_protected(self):
        self._app['AccessType'] = 'domain'
        self._app['AccessDomain'] = 'corp.com'
        res = self._call()
        self.assertEqual(res['statusCode'], 400)
        body = self.get_json_body(res)
        self.assertEqual(body['error'], 'not_password_protected')

    def test_stale_password_ignored(self):
        # The password stays in the item after switching to public.
        self._app['AccessType'] = 'public'
        res = self._call()
        self.assertEqual(res['statusCode'], 400)

    def test_missing_app(self):
        self._mocks['App'].fetch_by_slug_or_id.return_value = None
        res = self._call()
        self.assertEqual(res['statusCode'], 404)

    def test_draft_app(self):
        self._app['Status'] = 'draft'
        res = self._call()
        self.assertEqual(res['statusCode'], 404)

    def test_database_error(self):
        self._mocks['App'].fetch_by_slug_or_id.side_effect = \
            db.DatabaseError
        res = self._call()
        self.assertEqual(res['statusCode'], 500)
        self._mocks['_log'].error.assert_called_once()

    def test_unsupported_method(self):
        self._event['httpMethod'] = 'GET'
        with self.assertRaises(RuntimeError):
            m.handler(self._event, None)
