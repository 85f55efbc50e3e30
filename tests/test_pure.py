import unittest
from decimal import Decimal

from gamerental.db.models import CartLine, CatalogEntry
from gamerental.utils.pure import (
    catalog_changes,
    format_money,
    generate_markdown_table,
    price_cart,
    summary_rows,
    to_money,
)


class PriceCartTestCase(unittest.TestCase):
    def test_totals(self):
        summary = price_cart(
            [CartLine("game0001", 2), CartLine("game0002", 1)],
            {"game0001": 19.99, "game0002": 49.99},
        )
        self.assertEqual(summary.total_copies, 3)
        self.assertEqual(summary.total_price, Decimal("89.97"))
        self.assertEqual([line.game_id for line in summary.lines], ["game0001", "game0002"])
        self.assertEqual(summary.lines[0].unit_price, Decimal("19.99"))
        self.assertEqual(summary.lines[0].line_total, Decimal("39.98"))

    def test_no_float_drift(self):
        # 0.1 * 3 is 0.30000000000000004 in binary floating point
        summary = price_cart([CartLine("game0001", 3)], {"game0001": 0.1})
        self.assertEqual(summary.total_price, Decimal("0.30"))

    def test_free_game(self):
        summary = price_cart([CartLine("game0001", 4)], {"game0001": 0})
        self.assertEqual(summary.total_price, Decimal("0.00"))
        self.assertEqual(summary.total_copies, 4)

    def test_missing_price(self):
        with self.assertRaises(KeyError):
            price_cart([CartLine("game0009", 1)], {"game0001": 19.99})

    def test_summary_rows(self):
        summary = price_cart([CartLine("game0003", 2)], {"game0003": 24.99})
        self.assertEqual(summary_rows(summary), [["game0003", 2, "$24.99", "$49.98"]])


class MoneyTestCase(unittest.TestCase):
    def test_to_money_rounds_half_up(self):
        self.assertEqual(to_money(2.675), Decimal("2.68"))
        self.assertEqual(to_money("0.005"), Decimal("0.01"))
        self.assertEqual(to_money(Decimal("19.994")), Decimal("19.99"))

    def test_format_money(self):
        self.assertEqual(format_money(89.97), "$89.97")
        self.assertEqual(format_money(5), "$5.00")


class MarkdownTableTestCase(unittest.TestCase):
    def test_table(self):
        md = generate_markdown_table(
            ["gameID", "Copies"], [["game0001", 2], ["game0002", None]], ["l", "r"]
        )
        self.assertEqual(
            md.splitlines(),
            [
                "| gameID | Copies |",
                "| :--- | ---: |",
                "| game0001 | 2 |",
                "| game0002 | - |",
            ],
        )

    def test_first_row_as_header(self):
        md = generate_markdown_table(None, [["Login", "alice"], ["Role", "Customer"]])
        self.assertEqual(md.splitlines()[0], "| Login | alice |")
        self.assertEqual(md.splitlines()[1], "| :---: | :---: |")

    def test_pipes_are_escaped(self):
        md = generate_markdown_table(["Name"], [["a|b"]], ["l"])
        self.assertIn("a\\|b", md)

    def test_empty_and_bad_aligns(self):
        self.assertEqual(generate_markdown_table(["x"], []), "")
        with self.assertRaises(ValueError):
            generate_markdown_table(["x", "y"], [[1, 2]], ["l"])



class CatalogChangesTestCase(unittest.TestCase):
    GAME = CatalogEntry(
        "game0001", "Celeste", "Platformer", 19.99, "Climb the mountain.", "https://x/1.png"
    )

    def edit(self, **fields):
        values = dict(
            name="Celeste",
            genre="Platformer",
            price=Decimal("19.99"),
            description="Climb the mountain.",
            image_url="https://x/1.png",
        )
        values.update(fields)
        return catalog_changes(self.GAME, **values)

    def test_unchanged_form(self):
        self.assertEqual(self.edit(), {})

    def test_changed_fields_only(self):
        self.assertEqual(
            self.edit(genre="Indie", price=Decimal("9.50")),
            {"genre": "Indie", "price": Decimal("9.50")},
        )

    def test_blank_name_and_genre_are_kept(self):
        self.assertEqual(self.edit(name="", genre=""), {})

    def test_blank_description_and_image_clear(self):
        self.assertEqual(
            self.edit(description="", image_url=""),
            {"description": "", "image_url": ""},
        )

    def test_missing_description_stays_missing(self):
        game = CatalogEntry("game0002", "Hades", "Roguelike", 49.99, None, None)
        changes = catalog_changes(
            game, "Hades", "Roguelike", Decimal("49.99"), description="", image_url=""
        )
        self.assertEqual(changes, {})


if __name__ == "__main__":
    unittest.main()
