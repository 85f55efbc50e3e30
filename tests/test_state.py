import os
import tempfile
import unittest

from gamerental.db import crud
from gamerental.db import database as db_database
from gamerental.utils.errors import AuthorizationError
from gamerental.utils.state import GlobalState


class GlobalStateTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "test.sqlite")
        db_database.LOAD_SEED_DATA = True
        db_database._initialized = False

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_session(self):
        state = GlobalState()
        self.assertFalse(state.is_staff)
        state.start_session("mike", "manager")
        self.assertTrue(state.is_staff)
        self.assertTrue(state.is_manager)
        state.end_session()
        self.assertIsNone(state.login)
        self.assertIsNone(state.role)

    def test_order_visibility(self):
        customer = GlobalState("alice", "customer")
        self.assertTrue(customer.can_view_order_of("alice"))
        self.assertFalse(customer.can_view_order_of("bob"))
        self.assertFalse(customer.can_view_order_of(None))

        employee = GlobalState("erin", "employee")
        self.assertTrue(employee.can_view_order_of("bob"))
        self.assertFalse(employee.can_view_order_of(None))

    async def test_require_role(self):
        state = GlobalState("erin", "employee")
        await state.require_role("employee", "manager")
        with self.assertRaises(AuthorizationError) as ctx:
            await state.require_role("manager")
        self.assertEqual(ctx.exception.required, ("manager",))
        self.assertIn("erin", str(ctx.exception))

    async def test_require_role_sees_demotion(self):
        state = GlobalState("erin", "employee")
        await crud.update_user("erin", role="customer")

        with self.assertRaises(AuthorizationError):
            await state.require_role("employee", "manager")
        self.assertEqual(state.role, "customer")
        self.assertFalse(state.is_staff)

    async def test_require_role_without_login(self):
        with self.assertRaises(AuthorizationError):
            await GlobalState().require_role("customer")


if __name__ == "__main__":
    unittest.main()
