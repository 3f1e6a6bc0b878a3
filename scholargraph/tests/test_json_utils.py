"""
Tests for robust JSON extraction utility.
"""

import unittest

from scholargraph.utils.json_utils import extract_json_object, extract_json_value


class TestJsonUtils(unittest.TestCase):
    def test_extract_from_fenced(self):
        text = """
        Here is output:
        ```json
        {"a": 1, "b": 2}
        ```
        Thanks.
        """
        obj = extract_json_object(text)
        self.assertIsInstance(obj, dict)
        self.assertEqual(obj.get('a'), 1)

    def test_extract_balanced(self):
        text = "Noise before {\n  \"k\": [1,2,3,],\n} and after"
        obj = extract_json_object(text)
        self.assertIsInstance(obj, dict)
        self.assertEqual(obj.get('k'), [1, 2, 3])

    def test_extract_array(self):
        text = 'The relevant ids are ["A", "C"] in order.'
        self.assertEqual(extract_json_value(text), ["A", "C"])

    def test_braces_inside_strings(self):
        text = 'Result: {"label": "set {x}", "n": 1} done'
        self.assertEqual(extract_json_object(text), {"label": "set {x}", "n": 1})

    def test_object_only_helper_rejects_arrays(self):
        self.assertIsNone(extract_json_object("[1, 2]"))

    def test_garbage(self):
        self.assertIsNone(extract_json_value("no json here"))
        self.assertIsNone(extract_json_value(None))


if __name__ == '__main__':
    unittest.main()
