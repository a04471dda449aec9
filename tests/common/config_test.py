from unittest.mock import MagicMock, patch

import apphub.common.config as m

from tests import TestBase


class TestBuildConfig(TestBase):
    def test_main_table_name(self):
        configs = self.get_configs('dev')
        table_name = 'TestTableName'
        env = {'MAIN_TABLE_NAME': table_name}
        conf = m._build_config(env, configs)
        self.assertEqual(conf.main_table, table_name)

    def test_grant_secret_param(self):
        configs = self.get_configs('staging')
        param_d = next(d for d in configs
                       if d['ParameterKey'] == 'GrantSecretParamName')
        param_d['ParameterValue'] = '/unit/test/secret'
        conf = m._build_config({}, configs, 'staging')
        self.assertEqual(conf.grant_secret_param, '/unit/test/secret')
        self.assertEqual(conf.deployment_target, 'staging')

    def test_strips_quotes_from_origin(self):
        configs = self.get_configs('production')
        conf = m._build_config({}, configs, 'production')
        self.assertNotIn('\'', conf.website_origin)
        self.assertTrue(conf.website_origin.startswith('https://'))

    def test_default_storage_backend(self):
        conf = m._build_config({}, self.get_configs('dev'))
        self.assertEqual(conf.storage_backend, 's3')

    def test_local_storage_backend(self):
        env = {'STORAGE_BACKEND': 'local', 'STORAGE_ROOT': '/tmp/unittest'}
        conf = m._build_config(env, self.get_configs('dev'))
        self.assertEqual(conf.storage_backend, 'local')
        self.assertEqual(conf.storage_root, '/tmp/unittest')

    def test_unknown_storage_backend(self):
        with self.assertRaises(ValueError):
            m._build_config({'STORAGE_BACKEND': 'ftp'},
                            self.get_configs('dev'))

    def test_log_level(self):
        conf = m._build_config({}, self.get_configs('production'))
        self.assertEqual(conf.log_level, 'WARNING')
        conf = m._build_config({}, self.get_configs('dev'))
        self.assertEqual(conf.log_level, 'DEBUG')

    def test_tox_log_level(self):
        conf = m._build_config({'TOX_TESTENV': 'py38'},
                               self.get_configs('dev'))
        self.assertEqual(conf.log_level, 'WARNING')

    def test_grant_max_ages(self):
        conf = m._build_config({}, self.get_configs('dev'))
        self.assertEqual(conf.password_grant_max_age, 24 * 60 * 60)
        self.assertGreater(conf.email_grant_max_age,
                           conf.password_grant_max_age)


class TestConfig(TestBase):

    @patch('apphub.common.config._build_config')
    @patch('apphub.common.config.os')
    def test_uses_env(self, os_mock, build_config_mock):
        environ_mock = MagicMock()
        os_mock.environ = environ_mock
        environ_mock.get.return_value = 'dev'
        prev_config = m._config
        self.addCleanup(setattr, m, '_config', prev_config)
        m._config = None
        m._get_config()
        build_config_mock.assert_called_once()
        self.assertIs(build_config_mock.call_args.args[0], environ_mock)

    def test_unknown_attribute(self):
        with self.assertRaises(AttributeError):
            m.foo
