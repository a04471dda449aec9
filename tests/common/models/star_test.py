import dokklib_db as db

import apphub.common.models.entities as ent
import apphub.common.models.star as m

from tests import TestBase


class TestStar(TestBase):
    _to_patch = [
        'apphub.common.models.star.get_table'
    ]

    def setUp(self):
        super().setUp()
        self._table = self._mocks['get_table'].return_value
        self._email = 'alice@corp.com'
        self._app_id = 'app-id'

    def test_keys(self):
        self._table.get.return_value = None
        self.assertFalse(m.is_starred('Alice@Corp.com', self._app_id))
        args = self._table.get.call_args.args
        self.assertEqual(args[0], db.PartitionKey(ent.User, self._email))
        self.assertEqual(args[1], db.SortKey(ent.Star, self._app_id))

    def test_toggle_on(self):
        self._table.get.return_value = None
        self.assertTrue(m.toggle(self._email, self._app_id))
        args = self._table.transact_write_items.call_args.args[0]
        self.assertEqual(len(args), 1)
        self.assertIsInstance(args[0], db.InsertArg)

    def test_toggle_off(self):
        self._table.get.return_value = {'SK': self._app_id}
        self.assertFalse(m.toggle(self._email, self._app_id))
        args = self._table.transact_write_items.call_args.args[0]
        self.assertEqual(len(args), 1)
        self.assertIsInstance(args[0], db.DeleteArg)

    def test_toggle_on_concurrently(self):
        self._table.get.return_value = None
        self._table.transact_write_items.side_effect = \
            db.ConditionalCheckFailedError
        self.assertTrue(m.toggle(self._email, self._app_id))

    def test_database_error(self):
        self._table.get.side_effect = db.DatabaseError
        with self.assertRaises(db.DatabaseError):
            m.toggle(self._email, self._app_id)

    def test_fetch_starred_ids(self):
        self._table.query_prefix.return_value = [{'SK': 'app-1'},
                                                 {'SK': 'app-2'}]
        self.assertSetEqual(m.fetch_starred_ids(self._email),
                            {'app-1', 'app-2'})
        args = self._table.query_prefix.call_args.args
        self.assertEqual(args[0], db.PartitionKey(ent.User, self._email))
        self.assertEqual(args[1], db.PrefixSortKey(ent.Star))
