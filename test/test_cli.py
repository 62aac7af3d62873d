# type: ignore
"""
This is the Cda test suite.
===========================

Cda is a command line tool powered by Pycoda. Here we only check that 
commands are wired to the right CodaApi functions and that the outcome 
is reported with the right exit code. In Cda, 
- 0 means that everything went well, 
- 1 means that a Cda (Python) error occurred, but of course this would be 
  a bug and we never plan for it!, 
- 2 means that the command was ill-formed (this is Typer domain), 
- 3 means that the Coda API returned an error (still fine from our side).

The CodaApi functions are mocked, so no network is needed. 
"""

import os
import unittest
from unittest import mock
from typer.testing import CliRunner

from _fakes import TEST_CONFIGURATION

# in pycoda.cli the CodaApi instance is created *at import time*, 
# so we set configuration as env variables before importing
for k, v in TEST_CONFIGURATION.items():
    os.environ[k] = v
from pycoda import cli
from pycoda.cli import app

ERROR = {'statusCode': 404, 'statusMessage': 'Not Found', 
         'message': 'Could not find the resource'}


class BaseTestCli(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def patch_api(self, name, **kwargs):
        patcher = mock.patch.object(cli.coda_api, name, **kwargs)
        mocked = patcher.start()
        self.addCleanup(patcher.stop)
        return mocked


class TestBasics(BaseTestCli):
    def test_conf(self):
        res = self.runner.invoke(app, ['conf'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('CODA_API_KEY', res.output)
        self.assertNotIn('test-secret-api-key', res.output)

    def test_safemode_is_off(self):
        self.assertFalse(cli.coda_api.configurator.safemode)

    def test_whoami(self):
        self.patch_api('whoami', return_value={'name': 'Bob', 
                                               'loginId': 'bob@example.com'})
        res = self.runner.invoke(app, ['whoami'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('Bob', res.output)

    def test_verbosity(self):
        self.patch_api('whoami', return_value={'name': 'Bob', 
                                               'tokenName': 'mytoken'})
        res = self.runner.invoke(app, ['whoami'])
        self.assertIn('key', res.output) # the formatted column header we use
        res = self.runner.invoke(app, ['whoami', '-v'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn("'tokenName'", res.output)

    def test_json_output_without_response(self):
        # eg. when the call was answered by the cache
        self.patch_api('whoami', return_value={'name': 'Bob'})
        patcher = mock.patch.object(cli.coda_api.apicaller, 'response', None)
        patcher.start()
        self.addCleanup(patcher.stop)
        res = self.runner.invoke(app, ['whoami', '-vv'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('{"name": "Bob"}', res.output)
        self.assertNotIn('null', res.output)

    def test_error_exit_code(self):
        self.patch_api('whoami', return_value=ERROR)
        res = self.runner.invoke(app, ['whoami'])
        self.assertEqual(res.exit_code, 3)
        self.assertIn('Not Found', res.output)


class TestDocs(BaseTestCli):
    def test_list(self):
        m = self.patch_api('list_docs', return_value={'items': [
            {'id': 'AbCdEfGhIj', 'name': 'Roadmap', 'ownerName': 'Bob'}]})
        res = self.runner.invoke(app, ['doc', 'list', '-l', '5'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('Roadmap', res.output)
        m.assert_called_once_with({'limit': 5})

    def test_see(self):
        m = self.patch_api('see_doc', return_value={'id': 'AbCdEfGhIj', 
                                                    'name': 'Roadmap'})
        res = self.runner.invoke(app, ['doc', 'see', '-d', 'AbCdEfGhIj'])
        self.assertEqual(res.exit_code, 0)
        m.assert_called_once_with('AbCdEfGhIj')

    def test_id(self):
        res = self.runner.invoke(app, ['doc', 'id', 
                                       'https://coda.io/d/Title_dAbCdEfGhIj/'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('AbCdEfGhIj', res.output)
        res = self.runner.invoke(app, ['doc', 'id', 'https://example.com'])
        self.assertEqual(res.exit_code, 2)


class TestTables(BaseTestCli):
    def test_list(self):
        self.patch_api('list_tables', return_value={'items': [
            {'id': 'grid-1', 'name': 'People', 'tableType': 'table'}]})
        res = self.runner.invoke(app, ['table', 'list'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('People', res.output)

    def test_empty_list(self):
        self.patch_api('list_tables', return_value={'items': []})
        res = self.runner.invoke(app, ['table', 'list'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('No items found.', res.output)

    def test_see_error(self):
        self.patch_api('see_table', return_value=ERROR)
        res = self.runner.invoke(app, ['table', 'see', '-b', 'Bogus'])
        self.assertEqual(res.exit_code, 3)

    def test_cols(self):
        m = self.patch_api('list_cols', return_value={'items': [
            {'id': 'c-1', 'name': 'Name', 'calculated': False}]})
        res = self.runner.invoke(app, ['table', 'cols', '-b', 'People'])
        self.assertEqual(res.exit_code, 0)
        m.assert_called_once_with('People', doc_id='')


class TestRows(BaseTestCli):
    def test_list_with_query(self):
        m = self.patch_api('list_rows', return_value={'items': [
            {'id': 'i-1', 'values': {'Name': 'Bob', 'Age': 42}}]})
        res = self.runner.invoke(app, ['row', 'list', '-b', 'People', 
                                       '-q', 'Name=Bob'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('Bob', res.output)
        m.assert_called_once_with('People', {'Name': 'Bob'}, 
                                  {'limit': None}, '')

    def test_list_bad_query(self):
        res = self.runner.invoke(app, ['row', 'list', '-b', 'People', 
                                       '-q', 'Bob'])
        self.assertEqual(res.exit_code, 2)

    def test_insert(self):
        m = self.patch_api('insert_rows', return_value=True)
        res = self.runner.invoke(app, ['row', 'insert', 'Name=Bob', 'Age=42', 
                                       '-b', 'People', '-k', 'Name'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('Done', res.output)
        m.assert_called_once_with('People', {'Name': 'Bob', 'Age': '42'}, 
                                  ['Name'], doc_id='')

    def test_insert_error(self):
        self.patch_api('insert_rows', return_value={'statusCode': 200, 
                                                    'result': {}})
        res = self.runner.invoke(app, ['row', 'insert', 'Name=Bob', 
                                       '-b', 'People'])
        self.assertEqual(res.exit_code, 3)

    def test_delete(self):
        self.patch_api('delete_row', return_value={'id': 'i-1'})
        res = self.runner.invoke(app, ['row', 'delete', 'i-1', '-b', 'People'])
        self.assertEqual(res.exit_code, 0)
        self.patch_api('delete_row', return_value=ERROR)
        res = self.runner.invoke(app, ['row', 'delete', 'i-1', '-b', 'People'])
        self.assertEqual(res.exit_code, 3)


class TestCache(BaseTestCli):
    def test_clear(self):
        self.patch_api('clear_cache', return_value=4)
        res = self.runner.invoke(app, ['cache', 'clear'])
        self.assertEqual(res.exit_code, 0)
        self.assertIn('4', res.output)


if __name__ == '__main__':
    unittest.main()
