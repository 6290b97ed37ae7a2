from __future__ import annotations

import math
import sys
import unittest
from pathlib import Path

TESTS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = TESTS_DIR.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from dynprops import UNSET, DataType, coerce


class CoerceTests(unittest.TestCase):
    def test_unset_and_none_bypass_coercion(self) -> None:
        for data_type in DataType:
            self.assertIs(coerce(UNSET, data_type), UNSET)
            self.assertIsNone(coerce(None, data_type))

    def test_string(self) -> None:
        self.assertEqual(coerce(12, DataType.STRING), "12")
        self.assertEqual(coerce("Arial", "string"), "Arial")
        self.assertEqual(coerce(True, "string"), "true")

    def test_flag_coerces_as_string(self) -> None:
        self.assertEqual(coerce(5, DataType.FLAG), "5")
        self.assertEqual(coerce("\\textbf", "flag"), "\\textbf")

    def test_float_is_lenient(self) -> None:
        self.assertEqual(coerce("3.5cm", DataType.FLOAT), 3.5)
        value = coerce(2, DataType.FLOAT)
        self.assertIsInstance(value, float)
        self.assertEqual(value, 2.0)
        self.assertEqual(coerce(" -.5", "float"), -0.5)
        self.assertEqual(coerce("-Infinity", "float"), -math.inf)
        self.assertTrue(math.isnan(coerce("wide", "float")))
        self.assertTrue(math.isnan(coerce(True, "float")))

    def test_integer(self) -> None:
        self.assertEqual(coerce(7, DataType.INTEGER), 7)
        self.assertEqual(coerce(2.5, "integer"), 3)
        self.assertEqual(coerce(-2.5, "integer"), -2)
        whole = coerce(4.0, "integer")
        self.assertIsInstance(whole, int)
        self.assertEqual(whole, 4)
        self.assertEqual(coerce("42px", "integer"), 42)
        self.assertEqual(coerce("-3", "integer"), -3)
        self.assertTrue(math.isnan(coerce("px", "integer")))
        self.assertEqual(coerce(math.inf, "integer"), math.inf)

    def test_number(self) -> None:
        self.assertEqual(coerce("12", DataType.NUMBER), 12)
        self.assertEqual(coerce("1.5", "number"), 1.5)
        self.assertEqual(coerce(" ", "number"), 0)
        self.assertEqual(coerce(True, "number"), 1)
        self.assertEqual(coerce("Infinity", "number"), math.inf)
        self.assertTrue(math.isnan(coerce("12px", "number")))
        self.assertTrue(math.isnan(coerce("inf", "number")))

    def test_non_ascii_digits_are_not_numbers(self) -> None:
        for data_type in ("number", "float", "integer"):
            self.assertTrue(math.isnan(coerce("\u0661\u0662", data_type)), data_type)
        self.assertEqual(coerce("12\u0663", "integer"), 12)

    def test_boolean(self) -> None:
        for text in ("true", "TRUE", "1", "yes", "Y"):
            self.assertIs(coerce(text, DataType.BOOLEAN), True, text)
        for text in ("false", "no", "", "on", "2"):
            self.assertIs(coerce(text, DataType.BOOLEAN), False, text)
        self.assertIs(coerce(False, "boolean"), False)
        self.assertIs(coerce(0, "boolean"), False)
        self.assertIs(coerce(2, "boolean"), True)
        self.assertIs(coerce(math.nan, "boolean"), False)


if __name__ == "__main__":
    unittest.main()
