from __future__ import annotations

from typing import List, Optional

import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label, MarkdownViewer, OptionList, Select
from textual.widgets.option_list import Option

import gamerental.db.crud as crud
from gamerental import config
from gamerental.db.models import User
from gamerental.utils.errors import AuthorizationError
from gamerental.utils.logger import get_logger
from gamerental.utils.pure import generate_markdown_table
from gamerental.utils.validation import (
    full_phone_number,
    is_valid_phone_number,
    is_valid_role,
    parse_non_negative_int,
)
from gamerental.views.base_screen import BaseScreen
from gamerental.views.modal_dialog import ConfirmDialogModal

_logger = get_logger(__name__)


class ManageUsersScreen(BaseScreen):
    """
    Managers look up any user and change their role, overdue count,
    phone number or favorite games.
    """

    current_login: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield Input(id="input-search", placeholder="Search users by login...")
            yield OptionList(id="optlist-users")
            yield MarkdownViewer(id="md-user", show_table_of_contents=False)
            with Vertical(id="div-user-form"):
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Role")
                        yield Select(
                            [(role.capitalize(), role) for role in config.ROLES],
                            allow_blank=False,
                            id="select-role",
                        )
                    with Vertical():
                        yield Label("# of Overdue Games")
                        yield Input(id="input-overdue", type="integer")
                    with Vertical():
                        yield Label("Phone Number (+1 assumed)")
                        yield Input(placeholder="leave blank to keep", id="input-phone")
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Favorite Games (comma separated)")
                        yield Input(id="input-favs")
                    yield Button("Update User", id="btn-update", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#md-user").add_class("hidden")
        self.query_one("#div-user-form").add_class("hidden")
        self.update_optlist("")

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, message: Input.Changed) -> None:
        self.query_one("#optlist-users").remove_class("hidden")
        self.update_optlist(message.value)

    @on(OptionList.OptionSelected, "#optlist-users")
    def handle_user_selected(self, message: OptionList.OptionSelected) -> None:
        self.current_login = message.option.id
        self.render_user()

        self.query_one("#optlist-users").add_class("hidden")
        self.query_one("#md-user").remove_class("hidden")
        self.query_one("#div-user-form").remove_class("hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str) -> None:
        results: List[User] = await crud.search_users(query)

        opt_list = self.query_one("#optlist-users", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [Option(f"{u.login} ({u.role})", id=u.login) for u in results]
        )

    @work(exclusive=True, group="render")
    async def render_user(self) -> None:
        user = await crud.get_user(self.current_login)
        viewer = self.query_one("#md-user", MarkdownViewer)
        if user is None:
            await viewer.document.update(f"### No user {self.current_login}.")
            return

        rows = [
            ["Username", user.login],
            ["Role", user.role],
            ["Favorite Games", user.fav_games],
            ["Phone Number", user.phone_num],
            ["# of Overdue Games", user.num_overdue_games],
        ]
        md_table = generate_markdown_table(["Field", "Value"], rows, ["l", "l"])
        await viewer.document.update(f"### User: {user.login}\n\n" + md_table)

        self.query_one("#select-role", Select).value = user.role
        self.query_one("#input-overdue", Input).value = str(user.num_overdue_games)
        self.query_one("#input-phone", Input).value = ""
        self.query_one("#input-favs", Input).value = user.fav_games or ""

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True, group="mutate")
    async def handle_update(self) -> None:
        if self.current_login is None:
            return
        try:
            await self.app.state.require_role("manager")
        except AuthorizationError as e:
            _logger.warning(str(e))
            self.notify("You are unauthorized to update users.", severity="error")
            return

        user = await crud.get_user(self.current_login)
        if user is None:
            self.notify(f"User {self.current_login} no longer exists.", severity="error")
            return

        role = self.query_one("#select-role", Select).value
        if not isinstance(role, str) or not is_valid_role(role):
            self.notify("Pick a valid role.", severity="error")
            return

        overdue_input = self.query_one("#input-overdue", Input)
        overdue = parse_non_negative_int(overdue_input.value.strip())
        if overdue is None:
            overdue_input.add_class("-invalid")
            overdue_input.focus()
            self.notify("Overdue count must be a whole number, 0 or more.", severity="error")
            return
        overdue_input.remove_class("-invalid")

        phone_input = self.query_one("#input-phone", Input)
        phone = phone_input.value.strip()
        if phone and not is_valid_phone_number(phone):
            phone_input.add_class("-invalid")
            phone_input.focus()
            self.notify("Phone number must look like 123-456-7890.", severity="error")
            return
        phone_input.remove_class("-invalid")

        raw_favs = self.query_one("#input-favs", Input).value
        favs = ", ".join(g.strip() for g in raw_favs.split(",") if g.strip())

        changes = {}
        if role != user.role:
            changes["role"] = role
        if overdue != user.num_overdue_games:
            changes["num_overdue_games"] = overdue
        if phone and full_phone_number(phone) != user.phone_num:
            changes["phone_num"] = full_phone_number(phone)
        if favs != (user.fav_games or ""):
            changes["fav_games"] = favs
        if not changes:
            self.notify("Nothing to update.", severity="warning")
            return

        if user.login == self.app.state.login and changes.get("role", "manager") != "manager":
            if not await self.app.push_screen_wait(
                ConfirmDialogModal("Remove your own manager role?", tone="error")
            ):
                return

        try:
            updated = await crud.update_user(user.login, **changes)
        except aiosqlite.Error as e:
            _logger.error(f"Updating user {user.login} failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        if updated:
            _logger.info(f"{self.app.state.login} updated {user.login}: {sorted(changes)}")
            self.notify(f"User {user.login} updated successfully.")
        else:
            self.notify("Update failed.", severity="error")
        self.render_user()
        self.update_optlist(self.query_one("#input-search", Input).value)
