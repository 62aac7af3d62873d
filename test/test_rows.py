# type: ignore
"""Tests for the row shaping functions: no Api calls here."""

import unittest

from pycoda import rows


class TestCountDepth(unittest.TestCase):
    def test_single_row(self):
        self.assertEqual(rows.count_depth({'colA': 1, 'colB': 2}), 1)

    def test_batch(self):
        self.assertEqual(rows.count_depth([{'colA': 1}, {'colA': 2}]), 2)

    def test_deeper(self):
        self.assertEqual(rows.count_depth([[{'colA': 1}]]), 3)

    def test_only_first_item_counts(self):
        self.assertEqual(rows.count_depth([1, {'colA': 1}]), 1)

    def test_empty(self):
        self.assertEqual(rows.count_depth({}), 1)
        self.assertEqual(rows.count_depth([]), 1)


class TestIsBatch(unittest.TestCase):
    def test_mapping_is_single_row(self):
        self.assertFalse(rows.is_batch({'colA': 1}))
        # a list value is just a multi-value cell
        self.assertFalse(rows.is_batch({'colA': [1, 2], 'colB': 3}))

    def test_list_of_rows(self):
        self.assertTrue(rows.is_batch([{'colA': 1}, {'colA': 2}]))
        self.assertTrue(rows.is_batch(({'colA': 1},)))

    def test_empty_list_is_single_row(self):
        self.assertFalse(rows.is_batch([]))


class TestPayloads(unittest.TestCase):
    def test_make_cells_keeps_order(self):
        cells = rows.make_cells({'colB': 'y', 'colA': 'x'})
        self.assertEqual(cells, [{'column': 'colB', 'value': 'y'}, 
                                 {'column': 'colA', 'value': 'x'}])

    def test_insert_single_row(self):
        payload = rows.make_insert_payload({'colA': 'x', 'colB': 'y'})
        self.assertEqual(payload['rows'], 
                         [{'cells': [{'column': 'colA', 'value': 'x'}, 
                                     {'column': 'colB', 'value': 'y'}]}])
        self.assertEqual(payload['keyColumns'], [])
        self.assertIs(payload['disableParsing'], False)

    def test_insert_disable_parsing(self):
        payload = rows.make_insert_payload({'colA': 'x'}, disable_parsing=True)
        self.assertIs(payload['disableParsing'], True)

    def test_insert_batch(self):
        payload = rows.make_insert_payload([{'colA': 1}, {'colA': 2}], 
                                           key_columns=['colA'])
        self.assertEqual(len(payload['rows']), 2)
        self.assertEqual(payload['rows'][0]['cells'], 
                         [{'column': 'colA', 'value': 1}])
        self.assertEqual(payload['rows'][1]['cells'], 
                         [{'column': 'colA', 'value': 2}])
        self.assertEqual(payload['keyColumns'], ['colA'])

    def test_insert_list_valued_cell(self):
        payload = rows.make_insert_payload({'Tags': ['a', 'b']})
        self.assertEqual(payload['rows'], 
                         [{'cells': [{'column': 'Tags', 'value': ['a', 'b']}]}])

    def test_insert_empty(self):
        self.assertEqual(rows.make_insert_payload([])['rows'], [{'cells': []}])
        self.assertEqual(rows.make_insert_payload({})['rows'], [{'cells': []}])

    def test_update(self):
        payload = rows.make_update_payload({'colA': 'x', 'colB': None})
        self.assertEqual(payload, 
                         {'row': {'cells': [{'column': 'colA', 'value': 'x'}, 
                                            {'column': 'colB', 'value': None}]}})


class TestQueryParam(unittest.TestCase):
    def test_mapping(self):
        self.assertEqual(rows.make_query_param({'Name': 'Bob'}), 'Name:"Bob"')
        self.assertEqual(rows.make_query_param({'c-abc': 42}), 'c-abc:"42"')

    def test_string_passes_through(self):
        self.assertEqual(rows.make_query_param('"My Col":"x"'), '"My Col":"x"')


if __name__ == '__main__':
    unittest.main()
