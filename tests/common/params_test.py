import base64

import apphub.common.params as m

from tests import TestBase


class TestGetParam(TestBase):
    _to_patch = [
        'apphub.common.params._get_client'
    ]

    def setUp(self):
        super().setUp()
        m._params = {}
        m._params_dec = {}
        self._client = self._mocks['_get_client'].return_value

    def test_correct_args(self):
        name = 'my-name'
        value = 'my-value'
        ret_value = {'Parameter': {'Value': value}}
        self._client.get_parameter.return_value = ret_value
        res = m.get_param(name)
        self._client.get_parameter.assert_called_once_with(
            Name=name, WithDecryption=True)
        self.assertEqual(res, value)

    def test_b64decode(self):
        name = 'my-name'
        value = base64.b64encode(b'my-value').decode('ascii')
        ret_value = {'Parameter': {'Value': value}}
        self._client.get_parameter.return_value = ret_value
        res = m.get_param(name, b64decode=True)
        self.assertEqual(res, b'my-value')

    def test_caches(self):
        ret_value = {'Parameter': {'Value': 'my-value'}}
        self._client.get_parameter.return_value = ret_value
        m.get_param('my-name')
        m.get_param('my-name')
        self._client.get_parameter.assert_called_once()
