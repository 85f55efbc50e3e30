import unittest
from decimal import Decimal

from gamerental.utils.validation import (
    full_phone_number,
    is_game_id_format,
    is_valid_login,
    is_valid_password,
    is_valid_phone_number,
    is_valid_role,
    parse_non_negative_int,
    parse_positive_int,
    parse_price,
    parse_yes_no,
)


class ValidationTestCase(unittest.TestCase):
    def test_login_and_password(self):
        self.assertTrue(is_valid_login("alice"))
        self.assertTrue(is_valid_login("a" * 50))
        self.assertFalse(is_valid_login("a" * 51))
        self.assertFalse(is_valid_login(""))
        self.assertFalse(is_valid_login("   "))

        self.assertTrue(is_valid_password("p" * 30))
        self.assertFalse(is_valid_password("p" * 31))
        self.assertFalse(is_valid_password(""))

    def test_phone_number(self):
        self.assertTrue(is_valid_phone_number("951-555-0101"))
        self.assertFalse(is_valid_phone_number("9515550101"))
        self.assertFalse(is_valid_phone_number("951-555-010"))
        self.assertFalse(is_valid_phone_number("+1-951-555-0101"))
        self.assertFalse(is_valid_phone_number("٩٥١-٥٥٥-٠١٠١"))
        self.assertFalse(is_valid_phone_number("951-555-0101\n"))
        self.assertEqual(full_phone_number("951-555-0101"), "+1-951-555-0101")

    def test_game_id_format(self):
        self.assertTrue(is_game_id_format("game0001"))
        self.assertFalse(is_game_id_format("game001"))
        self.assertFalse(is_game_id_format("game00001"))
        self.assertFalse(is_game_id_format("Game0001"))
        self.assertFalse(is_game_id_format(" game0001"))
        self.assertFalse(is_game_id_format("game٠٠٠١"))
        self.assertFalse(is_game_id_format("game0001\n"))

    def test_parse_positive_int(self):
        self.assertEqual(parse_positive_int("3"), 3)
        self.assertEqual(parse_positive_int("007"), 7)
        for text in ("", "0", "-1", "+2", "3a", "1.5", " 2", "٣", "²"):
            self.assertIsNone(parse_positive_int(text), text)

    def test_parse_non_negative_int(self):
        self.assertEqual(parse_non_negative_int("0"), 0)
        self.assertEqual(parse_non_negative_int("12"), 12)
        self.assertIsNone(parse_non_negative_int("-1"))
        self.assertIsNone(parse_non_negative_int(""))

    def test_parse_price(self):
        self.assertEqual(parse_price("19.99"), Decimal("19.99"))
        self.assertEqual(parse_price(" 5 "), Decimal("5.00"))
        self.assertEqual(parse_price("0"), Decimal("0.00"))
        for text in ("", "abc", "-1", "1.999", "nan", "inf"):
            self.assertIsNone(parse_price(text), text)

    def test_parse_yes_no(self):
        self.assertTrue(parse_yes_no("y"))
        self.assertTrue(parse_yes_no(" YES "))
        self.assertFalse(parse_yes_no("n"))
        self.assertFalse(parse_yes_no("No"))
        self.assertIsNone(parse_yes_no("maybe"))
        self.assertIsNone(parse_yes_no(""))

    def test_roles(self):
        for role in ("customer", "employee", "manager"):
            self.assertTrue(is_valid_role(role))
        self.assertFalse(is_valid_role("Manager"))
        self.assertFalse(is_valid_role("owner"))


if __name__ == "__main__":
    unittest.main()
