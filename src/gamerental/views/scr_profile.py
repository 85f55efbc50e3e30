import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, MarkdownViewer, Rule

import gamerental.db.crud as crud
from gamerental import config
from gamerental.utils.logger import get_logger
from gamerental.utils.messages import ModeSwitchedMessage
from gamerental.utils.pure import generate_markdown_table
from gamerental.utils.validation import (
    full_phone_number,
    is_valid_password,
    is_valid_phone_number,
)
from gamerental.views.base_screen import BaseScreen

_logger = get_logger(__name__)


class ProfileScreen(BaseScreen):
    """
    Shows the logged-in user's profile and lets them change their password,
    phone number and favorite games. Password and phone must be typed twice.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with VerticalScroll():
            yield MarkdownViewer(id="md-profile", show_table_of_contents=False)
            yield Rule(line_style="dashed")
            with Horizontal(classes="form-row"):
                with Vertical():
                    yield Label("New Password")
                    yield Input(
                        password=True,
                        id="input-pwd-1",
                        max_length=config.MAX_PASSWORD_LENGTH,
                    )
                with Vertical():
                    yield Label("Confirm Password")
                    yield Input(
                        password=True,
                        id="input-pwd-2",
                        max_length=config.MAX_PASSWORD_LENGTH,
                    )
                yield Button("Change Password", id="btn-pwd", variant="primary")
            with Horizontal(classes="form-row"):
                with Vertical():
                    yield Label("New Phone Number")
                    yield Input(placeholder="123-456-7890", id="input-phone-1")
                with Vertical():
                    yield Label("Confirm Phone Number")
                    yield Input(placeholder="123-456-7890", id="input-phone-2")
                yield Button("Change Phone", id="btn-phone", variant="primary")
            with Horizontal(classes="form-row"):
                with Vertical():
                    yield Label("Favorite Games (comma separated)")
                    yield Input(placeholder="Celeste, Hades", id="input-favs")
                yield Button("Save Favorites", id="btn-favs", variant="primary")

    def on_mount(self) -> None:
        self.render_profile()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="profile")
    async def render_profile(self) -> None:
        user = await crud.get_user(self.app.state.login)
        if user is None:
            return
        rows = [
            ["Username", user.login],
            ["Role", user.role],
            ["Favorite Games", user.fav_games],
            ["Phone Number", user.phone_num],
            ["# of Overdue Games", user.num_overdue_games],
        ]
        md_table = generate_markdown_table(["Field", "Value"], rows, ["l", "l"])
        await self.query_one("#md-profile", MarkdownViewer).document.update(
            "### User Profile\n\n" + md_table
        )
        self.query_one("#input-favs", Input).value = user.fav_games or ""

    def _matching_pair(self, first_id: str, second_id: str) -> str | None:
        first = self.query_one(first_id, Input)
        second = self.query_one(second_id, Input)
        if first.value != second.value:
            second.add_class("-invalid")
            second.focus()
            self.notify("Entries do not match!", severity="error")
            return None
        second.remove_class("-invalid")
        return first.value

    def _clear(self, *input_ids: str) -> None:
        for input_id in input_ids:
            self.query_one(input_id, Input).value = ""

    @on(Button.Pressed, "#btn-pwd")
    @work(exclusive=True)
    async def handle_change_password(self) -> None:
        password = self._matching_pair("#input-pwd-1", "#input-pwd-2")
        if password is None:
            return
        if not is_valid_password(password):
            self.query_one("#input-pwd-1", Input).add_class("-invalid")
            self.notify(
                f"Passwords must be 1 to {config.MAX_PASSWORD_LENGTH} characters.",
                severity="error",
            )
            return
        try:
            await crud.update_password(self.app.state.login, password)
        except aiosqlite.Error as e:
            _logger.error(f"Password change failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return
        self._clear("#input-pwd-1", "#input-pwd-2")
        self.notify("Password changed successfully.")

    @on(Button.Pressed, "#btn-phone")
    @work(exclusive=True)
    async def handle_change_phone(self) -> None:
        phone = self._matching_pair("#input-phone-1", "#input-phone-2")
        if phone is None:
            return
        phone = phone.strip()
        if not is_valid_phone_number(phone):
            self.query_one("#input-phone-1", Input).add_class("-invalid")
            self.notify("Phone number must look like 123-456-7890.", severity="error")
            return
        try:
            await crud.update_phone_number(self.app.state.login, full_phone_number(phone))
        except aiosqlite.Error as e:
            _logger.error(f"Phone change failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return
        self._clear("#input-phone-1", "#input-phone-2")
        self.notify(f"New phone number: {full_phone_number(phone)}")
        self.render_profile()

    @on(Button.Pressed, "#btn-favs")
    @work(exclusive=True)
    async def handle_change_favorites(self) -> None:
        raw = self.query_one("#input-favs", Input).value
        games = ", ".join(g.strip() for g in raw.split(",") if g.strip())
        try:
            await crud.update_favorite_games(self.app.state.login, games)
        except aiosqlite.Error as e:
            _logger.error(f"Favorite games change failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return
        self.notify("Favorite games changed successfully.")
        self.render_profile()
