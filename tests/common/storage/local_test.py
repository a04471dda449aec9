import os

from apphub.common.storage import KeyNotFoundError, StorageError

from tests import TestBase


class TestLocalStorage(TestBase):
    def setUp(self):
        super().setUp()
        self._storage = self.get_local_storage()

    def test_write_read(self):
        self._storage.write('app/a/index.html', b'<h1>hi</h1>')
        self.assertEqual(self._storage.read('app/a/index.html'),
                         b'<h1>hi</h1>')

    def test_overwrite(self):
        self._storage.write('app/CURRENT', b'1')
        self._storage.write('app/CURRENT', b'2')
        self.assertEqual(self._storage.read('app/CURRENT'), b'2')

    def test_no_temp_files_left(self):
        self._storage.write('app/CURRENT', b'1')
        names = os.listdir(self._storage.root / 'app')
        self.assertListEqual(names, ['CURRENT'])

    def test_read_missing(self):
        with self.assertRaises(KeyNotFoundError):
            self._storage.read('app/missing.html')

    def test_read_directory(self):
        self._storage.write('app/docs/index.html', b'')
        with self.assertRaises(KeyNotFoundError):
            self._storage.read('app/docs')

    def test_read_below_file(self):
        self._storage.write('app/file', b'')
        with self.assertRaises(KeyNotFoundError):
            self._storage.read('app/file/child')

    def test_list_sorted_relative(self):
        for key in ('app/b.js', 'app/a/index.html', 'other/x'):
            self._storage.write(key, b'')
        self.assertListEqual(self._storage.list('app'),
                             ['a/index.html', 'b.js'])

    def test_list_missing(self):
        self.assertListEqual(self._storage.list('nothing'), [])

    def test_is_dir(self):
        self._storage.write('app/docs/index.html', b'')
        self.assertTrue(self._storage.is_dir('app/docs'))
        self.assertFalse(self._storage.is_dir('app/docs/index.html'))
        self.assertFalse(self._storage.is_dir('app/nothing'))

    def test_remove_prefix(self):
        self._storage.write('app/r1/index.html', b'')
        self._storage.write('app/r2/index.html', b'')
        self._storage.remove('app/r1')
        self.assertListEqual(self._storage.list('app'), ['r2/index.html'])

    def test_remove_idempotent(self):
        self._storage.remove('app/never-written')

    def test_refuses_root(self):
        with self.assertRaises(StorageError):
            self._storage.remove('')

    def test_rejects_escaping_key(self):
        with self.assertRaises(StorageError):
            self._storage.write('../outside', b'')
        with self.assertRaises(StorageError):
            self._storage.read('app/../../outside')
