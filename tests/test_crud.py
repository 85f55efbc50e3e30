import asyncio
import os
import tempfile
import unittest
from datetime import datetime
from decimal import Decimal

import aiosqlite

from gamerental.db import crud
from gamerental.db import database as db_database
from gamerental.db.models import CartLine
from gamerental.utils.errors import ValidationError


class CrudTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        # Point the DB to a temporary file and force re-initialization
        self.temp_dir = tempfile.TemporaryDirectory()
        self.db_path = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.DB_PATH = self.db_path
        db_database.LOAD_SEED_DATA = True
        db_database._initialized = False

    async def asyncSetUp(self):
        # Touch initialization by opening a connection
        async with db_database.connect() as conn:
            cur = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table';"
            )
            await cur.fetchall()
            await cur.close()

    def tearDown(self):
        self.temp_dir.cleanup()

    async def count(self, table: str) -> int:
        async with db_database.connect() as conn:
            cur = await conn.execute(f"SELECT COUNT(*) FROM {table};")
            (n,) = await cur.fetchone()
            await cur.close()
        return n

    # ---------- Users ----------

    async def test_create_user_and_login(self):
        self.assertFalse(await crud.username_available("alice"))
        self.assertTrue(await crud.username_available("carol"))

        user = await crud.create_user("carol", "pw", "+1-555-111-2222")
        self.assertEqual(user.role, "customer")
        self.assertEqual(user.num_overdue_games, 0)
        self.assertFalse(await crud.username_available("carol"))

        logged_in = await crud.login("carol", "pw")
        self.assertIsNotNone(logged_in)
        self.assertEqual(logged_in.phone_num, "+1-555-111-2222")
        self.assertIsNone(await crud.login("carol", "wrong"))
        self.assertIsNone(await crud.login("nobody", "pw"))

    async def test_create_user_twice_fails(self):
        with self.assertRaises(aiosqlite.IntegrityError):
            await crud.create_user("alice", "other", "+1-555-111-2222")

    async def test_roles(self):
        self.assertEqual(await crud.get_user_role("mike"), "manager")
        self.assertEqual(await crud.get_user_role("erin"), "employee")
        self.assertIsNone(await crud.get_user_role("nobody"))
        self.assertTrue(await crud.check_user_role("erin", "employee", "manager"))
        self.assertFalse(await crud.check_user_role("alice", "employee", "manager"))

    async def test_get_and_search_users(self):
        bob = await crud.get_user("bob")
        self.assertEqual(bob.num_overdue_games, 2)
        self.assertIsNone(bob.fav_games)
        self.assertIsNone(await crud.get_user("nobody"))

        everyone = await crud.search_users("")
        self.assertEqual([u.login for u in everyone], ["alice", "bob", "erin", "mike"])
        self.assertEqual(
            [u.login for u in await crud.search_users("I")], ["alice", "erin", "mike"]
        )

    async def test_profile_updates(self):
        self.assertTrue(await crud.update_password("alice", "newpw"))
        self.assertIsNotNone(await crud.login("alice", "newpw"))
        self.assertIsNone(await crud.login("alice", "alicepw"))

        self.assertTrue(await crud.update_phone_number("alice", "+1-909-555-0000"))
        self.assertTrue(await crud.update_favorite_games("alice", "Tetris Effect"))
        alice = await crud.get_user("alice")
        self.assertEqual(alice.phone_num, "+1-909-555-0000")
        self.assertEqual(alice.fav_games, "Tetris Effect")

        self.assertFalse(await crud.update_password("nobody", "pw"))

    async def test_update_user(self):
        self.assertTrue(
            await crud.update_user("bob", role="employee", num_overdue_games=0)
        )
        bob = await crud.get_user("bob")
        self.assertEqual(bob.role, "employee")
        self.assertEqual(bob.num_overdue_games, 0)

        # blank favorites are stored as NULL
        self.assertTrue(await crud.update_user("alice", fav_games=""))
        self.assertIsNone((await crud.get_user("alice")).fav_games)

        self.assertFalse(await crud.update_user("bob"))
        self.assertFalse(await crud.update_user("nobody", role="manager"))

        with self.assertRaises(ValidationError):
            await crud.update_user("bob", num_overdue_games=-1)
        with self.assertRaises(ValidationError):
            await crud.update_user("bob", role="owner")

    # ---------- ID allocation ----------

    async def test_allocate_id_uses_numeric_max(self):
        # seed ids include 9 and 10: a textual max would give 10 -> "9" + 1
        async with db_database.transaction() as conn:
            self.assertEqual(await crud.allocate_id(conn, crud.ORDER_IDS), "gamerentalorder11")
            self.assertEqual(await crud.allocate_id(conn, crud.TRACKING_IDS), "trackingid11")
            self.assertEqual(await crud.allocate_id(conn, crud.GAME_IDS), "game0009")

        self.assertEqual(await crud.next_id(crud.ORDER_IDS), "gamerentalorder11")

    async def test_allocate_id_on_empty_table(self):
        async with db_database.connect() as conn:
            await conn.execute("DELETE FROM GamesInOrder;")
            await conn.execute("DELETE FROM TrackingInfo;")
            await conn.execute("DELETE FROM RentalOrder;")
            await conn.commit()

        self.assertEqual(await crud.next_id(crud.ORDER_IDS), "gamerentalorder1")
        self.assertEqual(await crud.next_id(crud.TRACKING_IDS), "trackingid1")

    async def test_allocate_id_ignores_non_numeric_suffix(self):
        async with db_database.connect() as conn:
            await conn.execute(
                """
                INSERT INTO RentalOrder(rentalOrderID, login, noOfGames, totalPrice,
                                        orderTimestamp, dueDate)
                VALUES ('gamerentalorder99a', 'alice', 1, 1.0,
                        '2025-01-01 00:00:00', '2025-01-31 00:00:00');
                """
            )
            await conn.commit()

        self.assertEqual(await crud.next_id(crud.ORDER_IDS), "gamerentalorder11")

    def test_id_sequence_format(self):
        self.assertEqual(crud.GAME_IDS.format(12), "game0012")
        self.assertEqual(crud.ORDER_IDS.format(12), "gamerentalorder12")
        self.assertEqual(crud.GAME_IDS.last_number, 9999)
        self.assertIsNone(crud.ORDER_IDS.last_number)

    async def test_game_ids_exhausted(self):
        await crud.add_game("Last Slot", "Puzzle", 1)
        async with db_database.connect() as conn:
            await conn.execute(
                "UPDATE Catalog SET gameID = 'game9999' WHERE gameID = 'game0009';"
            )
            await conn.commit()

        with self.assertRaisesRegex(ValidationError, "game9999"):
            await crud.next_id(crud.GAME_IDS)
        with self.assertRaises(ValidationError):
            await crud.add_game("One Too Many", "Puzzle", 1)
        self.assertEqual(await self.count("Catalog"), 9)

    # ---------- Catalog ----------

    async def test_list_catalog_filters_and_sort(self):
        games = await crud.list_catalog()
        self.assertEqual(len(games), 8)
        self.assertEqual(games[0].game_id, "game0007")
        prices = [g.price for g in games]
        self.assertEqual(prices, sorted(prices, reverse=True))

        rpgs = await crud.list_catalog(genre="rpg")
        self.assertEqual([g.game_id for g in rpgs], ["game0007", "game0002"])

        cheap = await crud.list_catalog(max_price=20, sort="ASC")
        self.assertEqual(
            [g.game_id for g in cheap], ["game0004", "game0006", "game0001"]
        )

        # anything but ASC falls back to DESC
        weird = await crud.list_catalog(sort="DROP TABLE Catalog")
        self.assertEqual(weird[0].game_id, "game0007")

        self.assertEqual(await crud.list_catalog(genre="Sports"), [])

    async def test_list_genres(self):
        self.assertEqual(
            await crud.list_genres(),
            ["Platformer", "Puzzle", "RPG", "Racing", "Roguelike", "Simulation"],
        )

    async def test_search_and_get_game(self):
        self.assertEqual(
            [g.game_id for g in await crud.search_catalog("hollow")], ["game0006"]
        )
        self.assertEqual(
            [g.game_id for g in await crud.search_catalog("platformer")],
            ["game0001", "game0006"],
        )
        self.assertEqual(len(await crud.search_catalog("")), 8)

        celeste = await crud.get_game("game0001")
        self.assertEqual(celeste.name, "Celeste")
        self.assertAlmostEqual(celeste.price, 19.99)
        self.assertIsNone(await crud.get_game("game9999"))

        self.assertTrue(await crud.game_exists("game0002"))
        self.assertFalse(await crud.game_exists("game9999"))

    async def test_get_prices(self):
        prices = await crud.get_prices(["game0001", "game0002", "game9999", "game0001"])
        self.assertEqual(prices, {"game0001": 19.99, "game0002": 49.99})
        self.assertEqual(await crud.get_prices([]), {})

    async def test_add_update_delete_game(self):
        game = await crud.add_game("Celeste 2", "Platformer", Decimal("24.50"), "Sequel")
        self.assertEqual(game.game_id, "game0009")
        fetched = await crud.get_game("game0009")
        self.assertEqual(fetched.name, "Celeste 2")
        self.assertIsNone(fetched.image_url)

        self.assertTrue(await crud.update_game("game0009", price=19.5, genre="Indie"))
        fetched = await crud.get_game("game0009")
        self.assertAlmostEqual(fetched.price, 19.5)
        self.assertEqual(fetched.genre, "Indie")
        self.assertEqual(fetched.name, "Celeste 2")

        self.assertFalse(await crud.update_game("game0009"))
        self.assertFalse(await crud.update_game("game9999", name="Nope"))
        with self.assertRaises(ValidationError):
            await crud.update_game("game0009", price=-1)

        self.assertTrue(await crud.update_game("game0009", description="", image_url=""))
        fetched = await crud.get_game("game0009")
        self.assertIsNone(fetched.description)
        self.assertIsNone(fetched.image_url)

        self.assertTrue(await crud.delete_game("game0009"))
        self.assertIsNone(await crud.get_game("game0009"))
        self.assertFalse(await crud.delete_game("game0009"))

    async def test_delete_game_in_an_order_is_refused(self):
        self.assertFalse(await crud.delete_game("game0001"))
        self.assertIsNotNone(await crud.get_game("game0001"))

    # ---------- Rental orders ----------

    async def test_create_rental_order(self):
        ordered_at = datetime(2025, 11, 1, 12, 0, 0, 123456)
        order, tracking = await crud.create_rental_order(
            "bob",
            [CartLine("game0005", 1), CartLine("game0004", 2)],
            3,
            Decimal("59.97"),
            ordered_at,
        )
        self.assertEqual(order.rental_order_id, "gamerentalorder11")
        self.assertEqual(order.ordered_at, datetime(2025, 11, 1, 12, 0, 0))
        self.assertEqual(order.due_date, datetime(2025, 12, 1, 12, 0, 0))
        self.assertEqual(tracking.tracking_id, "trackingid11")
        self.assertEqual(tracking.rental_order_id, order.rental_order_id)

        stored, lines = await crud.get_order_detail("gamerentalorder11")
        self.assertEqual(stored, order)
        self.assertEqual(
            [(ol.game_id, ol.quantity) for ol in lines],
            [("game0004", 2), ("game0005", 1)],
        )

        stored_tracking = await crud.get_tracking_for_order("gamerentalorder11")
        self.assertEqual(stored_tracking, tracking)
        self.assertEqual(stored_tracking.status, "Order Received")
        self.assertEqual(stored_tracking.current_location, "Los Angeles,CA")
        self.assertEqual(stored_tracking.courier, "USPS")
        self.assertIsNone(stored_tracking.comments)

        self.assertEqual(await crud.next_id(crud.ORDER_IDS), "gamerentalorder12")

    async def test_create_rental_order_needs_lines(self):
        with self.assertRaises(ValueError):
            await crud.create_rental_order("bob", [], 0, 0, datetime.now())

    async def test_failed_order_writes_nothing(self):
        with self.assertRaises(aiosqlite.IntegrityError):
            await crud.create_rental_order(
                "bob",
                [CartLine("game0001", 1), CartLine("game9999", 1)],
                2,
                Decimal("39.98"),
                datetime(2025, 11, 1, 12, 0, 0),
            )

        self.assertEqual(await self.count("RentalOrder"), 3)
        self.assertEqual(await self.count("TrackingInfo"), 3)
        self.assertEqual(await self.count("GamesInOrder"), 4)
        self.assertEqual(await crud.next_id(crud.ORDER_IDS), "gamerentalorder11")

    async def test_concurrent_orders_get_distinct_ids(self):
        when = datetime(2025, 11, 1, 12, 0, 0)
        results = await asyncio.gather(
            crud.create_rental_order("alice", [CartLine("game0001", 1)], 1, 19.99, when),
            crud.create_rental_order("bob", [CartLine("game0002", 1)], 1, 49.99, when),
        )
        order_ids = {order.rental_order_id for order, _ in results}
        tracking_ids = {tracking.tracking_id for _, tracking in results}
        self.assertEqual(order_ids, {"gamerentalorder11", "gamerentalorder12"})
        self.assertEqual(tracking_ids, {"trackingid11", "trackingid12"})

    async def test_list_orders_paginated(self):
        orders, total = await crud.list_orders("alice", 1)
        self.assertEqual(total, 2)
        self.assertEqual(
            [o.rental_order_id for o in orders], ["gamerentalorder10", "gamerentalorder9"]
        )

        orders, total = await crud.list_all_orders(2, page_size=2)
        self.assertEqual(total, 3)
        self.assertEqual([o.rental_order_id for o in orders], ["gamerentalorder8"])

        orders, total = await crud.list_orders("erin", 1)
        self.assertEqual((orders, total), ([], 0))

    async def test_list_recent_orders(self):
        recent = await crud.list_recent_orders("alice", 1)
        self.assertEqual([o.rental_order_id for o in recent], ["gamerentalorder10"])

    async def test_get_order_detail_missing(self):
        self.assertEqual(await crud.get_order_detail("gamerentalorder999"), (None, []))
        self.assertIsNone(await crud.get_order_owner("gamerentalorder999"))
        self.assertEqual(await crud.get_order_owner("gamerentalorder8"), "bob")

    # ---------- Tracking ----------

    async def test_get_tracking(self):
        tracking = await crud.get_tracking("trackingid8")
        self.assertEqual(tracking.rental_order_id, "gamerentalorder8")
        self.assertEqual(tracking.courier, "UPS")
        self.assertEqual(tracking.comments, "Left at front desk")
        self.assertIsNone(await crud.get_tracking("trackingid999"))

        by_order = await crud.get_tracking_for_order("gamerentalorder9")
        self.assertEqual(by_order.tracking_id, "trackingid9")

    async def test_update_tracking(self):
        when = datetime(2025, 10, 22, 8, 0, 0)
        self.assertTrue(
            await crud.update_tracking(
                "trackingid10", when, status="Shipped", current_location="Phoenix,AZ"
            )
        )
        tracking = await crud.get_tracking("trackingid10")
        self.assertEqual(tracking.status, "Shipped")
        self.assertEqual(tracking.current_location, "Phoenix,AZ")
        self.assertEqual(tracking.courier, "USPS")
        self.assertEqual(tracking.last_updated, when)

        self.assertFalse(await crud.update_tracking("trackingid10", when))
        self.assertFalse(
            await crud.update_tracking("trackingid999", when, status="Lost")
        )


if __name__ == "__main__":
    unittest.main()
