import asyncio
import sys

import aiosqlite
from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import LoadingIndicator

from gamerental.db import database
from gamerental.utils.logger import get_logger
from gamerental.utils.messages import ModeSwitchedMessage, QuitRequestedMessage, UserLogoutMessage
from gamerental.utils.state import GlobalState
from gamerental.views.scr_catalog import CatalogScreen
from gamerental.views.scr_login import LoginScreen
from gamerental.views.scr_manage_catalog import ManageCatalogScreen
from gamerental.views.scr_manage_users import ManageUsersScreen
from gamerental.views.scr_order_history import OrderHistoryScreen
from gamerental.views.scr_place_order import PlaceOrderScreen
from gamerental.views.scr_profile import ProfileScreen
from gamerental.views.scr_tracking import TrackingScreen

_logger = get_logger(__name__)


class SignedOutScreen(Screen):
    """Backdrop for the login screen between two sessions."""

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()


class GameRentalApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "signed_out": SignedOutScreen,
        "profile": ProfileScreen,
        "catalog": CatalogScreen,
        "place_order": PlaceOrderScreen,
        "orders": OrderHistoryScreen,
        "tracking": TrackingScreen,
        "mgr_catalog": ManageCatalogScreen,
        "mgr_users": ManageUsersScreen,
    }

    # menu entries in display order
    MODE_TITLES = {
        "profile": "Profile",
        "catalog": "Game Catalog",
        "place_order": "Place Rental Order",
        "orders": "Rental Orders",
        "tracking": "Tracking",
        "mgr_catalog": "Update Catalog",
        "mgr_users": "Update Users",
    }
    CUSTOMER_MODES = ["profile", "catalog", "place_order", "orders", "tracking"]
    EMPLOYEE_MODES = CUSTOMER_MODES
    MANAGER_MODES = CUSTOMER_MODES + ["mgr_catalog", "mgr_users"]

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/screens.tcss",
    ]

    state: GlobalState

    def __init__(self):
        super().__init__()
        self.state = GlobalState()

    def modes_for_role(self, role: str | None) -> list[str]:
        if role == "manager":
            return self.MANAGER_MODES
        if role == "employee":
            return self.EMPLOYEE_MODES
        if role == "customer":
            return self.CUSTOMER_MODES
        return []

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        _logger.info(f"{self.state.login!r} logged out")
        self.state.end_session()
        await self.reset_modes()
        self.notify("Logout successful.")
        self.main_flow()

    async def reset_modes(self) -> None:
        """
        Drop the screens of every menu mode, cancelling their workers, so the
        next login mounts fresh ones for its own user and role.
        """
        await self.switch_mode("signed_out")
        for mode, screen in self.MODES.items():
            if mode == "signed_out":
                continue
            await self.remove_mode(mode)
            self.add_mode(mode, screen)

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.state.end_session()
        self.exit()

    @work
    async def main_flow(self):
        await self.push_screen_wait(LoginScreen())
        if self.state.login is None:
            return
        self.post_message(ModeSwitchedMessage(self.current_mode, "catalog"))
        await self.switch_mode("catalog")


def main() -> None:
    """Run the terminal UI. An optional argument names the SQLite database file."""
    if len(sys.argv) > 2:
        print("Usage: gamerental [database-file]", file=sys.stderr)
        sys.exit(2)
    if len(sys.argv) == 2:
        database.DB_PATH = sys.argv[1]

    try:
        asyncio.run(database.check_connection())
    except (aiosqlite.Error, OSError) as e:
        _logger.error(f"Unable to open database {database.DB_PATH}: {e}")
        sys.exit(1)

    app = GameRentalApp()
    app.run()


if __name__ == "__main__":
    main()
