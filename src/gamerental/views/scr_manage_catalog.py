from __future__ import annotations

from typing import List, Optional

import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, Label, MarkdownViewer, OptionList
from textual.widgets.option_list import Option

import gamerental.db.crud as crud
from gamerental.db.models import CatalogEntry
from gamerental.utils.errors import AuthorizationError, ValidationError
from gamerental.utils.logger import get_logger
from gamerental.utils.messages import CatalogChangedMessage
from gamerental.utils.pure import catalog_changes, format_money, generate_markdown_table
from gamerental.utils.validation import parse_price
from gamerental.views.base_screen import BaseScreen
from gamerental.views.modal_dialog import ConfirmDialogModal

_logger = get_logger(__name__)


class ManageCatalogScreen(BaseScreen):
    """
    Managers search the catalog, then edit, delete or add games.
    On update a blank name or genre keeps its current value, while a blank
    description or image URL clears it.
    """

    current_game_id: Optional[str] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-mgr-search"):
                yield Input(id="input-search", placeholder="Search by gameID, name or genre...")
                yield Button("New Game", id="btn-new")
            yield OptionList(id="optlist-games")
            yield MarkdownViewer(id="md-game", show_table_of_contents=False)
            with Vertical(id="div-game-form"):
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Name")
                        yield Input(id="input-name")
                    with Vertical():
                        yield Label("Genre")
                        yield Input(id="input-genre")
                    with Vertical():
                        yield Label("Price ($)")
                        yield Input(placeholder="19.99", id="input-price")
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Description")
                        yield Input(id="input-description")
                    with Vertical():
                        yield Label("Image URL")
                        yield Input(id="input-image")
                with Horizontal(id="div-button"):
                    yield Button("Delete", id="btn-delete", variant="error")
                    yield Button("Add Game", id="btn-add", variant="primary")
                    yield Button("Update", id="btn-update", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#optlist-games").add_class("hidden")
        self.query_one("#md-game").add_class("hidden")
        self.query_one("#div-game-form").add_class("hidden")

    @on(Input.Changed, "#input-search")
    def handle_search_changed(self, message: Input.Changed) -> None:
        self.query_one("#optlist-games").remove_class("hidden")
        self.update_optlist(message.value)

    @on(OptionList.OptionSelected, "#optlist-games")
    def handle_game_selected(self, message: OptionList.OptionSelected) -> None:
        self.current_game_id = message.option.id
        self.render_game()

        self.query_one("#optlist-games").add_class("hidden")
        self._show_form(editing=True)

    @on(Button.Pressed, "#btn-new")
    @work(exclusive=True, group="render")
    async def handle_new(self) -> None:
        self.current_game_id = None
        self.query_one("#optlist-games").add_class("hidden")
        self.query_one("#md-game").add_class("hidden")
        for input_id in (
            "#input-name",
            "#input-genre",
            "#input-price",
            "#input-description",
            "#input-image",
        ):
            self.query_one(input_id, Input).value = ""
        self._show_form(editing=False)
        self.query_one("#input-name", Input).focus()
        try:
            game_id = await crud.next_id(crud.GAME_IDS)
        except ValidationError as e:
            self.query_one("#btn-add", Button).label = "Add Game"
            self.notify(str(e), severity="warning")
            return
        self.query_one("#btn-add", Button).label = f"Add as {game_id}"

    def _show_form(self, editing: bool) -> None:
        self.query_one("#div-game-form").remove_class("hidden")
        self.query_one("#md-game").set_class(not editing, "hidden")
        self.query_one("#btn-update").set_class(not editing, "hidden")
        self.query_one("#btn-delete").set_class(not editing, "hidden")
        self.query_one("#btn-add").set_class(editing, "hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str) -> None:
        """
        fill option list with search results
        """
        results: List[CatalogEntry] = await crud.search_catalog(query)

        opt_list = self.query_one("#optlist-games", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [Option(f"{g.game_id} {g.name} ({g.genre})", id=g.game_id) for g in results]
        )

    @work(exclusive=True, group="render")
    async def render_game(self) -> None:
        game = await crud.get_game(self.current_game_id)
        viewer = self.query_one("#md-game", MarkdownViewer)
        if game is None:
            await viewer.document.update(f"### No game {self.current_game_id} in the catalog.")
            return

        rows = [
            ["gameID", game.game_id],
            ["Name", game.name],
            ["Genre", game.genre],
            ["Price", format_money(game.price)],
            ["Description", game.description],
            ["Image URL", game.image_url],
        ]
        md_table = generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        await viewer.document.update(f"### Game Detail: {game.name}\n\n" + md_table)

        # prefill inputs with current values for convenience
        self.query_one("#input-name", Input).value = game.name
        self.query_one("#input-genre", Input).value = game.genre
        self.query_one("#input-price", Input).value = f"{game.price:.2f}"
        self.query_one("#input-description", Input).value = game.description or ""
        self.query_one("#input-image", Input).value = game.image_url or ""

    async def _authorized(self) -> bool:
        try:
            await self.app.state.require_role("manager")
        except AuthorizationError as e:
            _logger.warning(str(e))
            self.notify("You are unauthorized to change the catalog.", severity="error")
            return False
        return True

    def _value(self, input_id: str) -> str:
        return self.query_one(input_id, Input).value.strip()

    def _read_price(self):
        price_input = self.query_one("#input-price", Input)
        price = parse_price(price_input.value)
        if price is None:
            price_input.add_class("-invalid")
            price_input.focus()
            self.notify("Price must be a non-negative amount like 19.99.", severity="error")
            return None
        price_input.remove_class("-invalid")
        return price

    def _changed(self) -> None:
        self.app.post_message(CatalogChangedMessage())
        self.update_optlist(self._value("#input-search"))

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True, group="mutate")
    async def handle_update(self) -> None:
        if self.current_game_id is None or not await self._authorized():
            return
        game = await crud.get_game(self.current_game_id)
        if game is None:
            self.notify(f"{self.current_game_id} no longer exists.", severity="error")
            return

        price = self._read_price()
        if price is None:
            return
        changes = catalog_changes(
            game,
            name=self._value("#input-name"),
            genre=self._value("#input-genre"),
            price=price,
            description=self._value("#input-description"),
            image_url=self._value("#input-image"),
        )
        if not changes:
            self.notify("Nothing to update.", severity="warning")
            return

        try:
            updated = await crud.update_game(game.game_id, **changes)
        except aiosqlite.Error as e:
            _logger.error(f"Updating {game.game_id} failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        if updated:
            self.notify(f"{game.game_id} updated successfully.")
            self._changed()
        else:
            self.notify("Update failed.", severity="error")
        self.render_game()

    @on(Button.Pressed, "#btn-add")
    @work(exclusive=True, group="mutate")
    async def handle_add(self) -> None:
        if not await self._authorized():
            return
        for input_id, label in (("#input-name", "Name"), ("#input-genre", "Genre")):
            if not self._value(input_id):
                self.query_one(input_id, Input).add_class("-invalid")
                self.notify(f"{label} cannot be empty.", severity="error")
                return
            self.query_one(input_id, Input).remove_class("-invalid")
        price = self._read_price()
        if price is None:
            return

        try:
            game = await crud.add_game(
                self._value("#input-name"),
                self._value("#input-genre"),
                price,
                self._value("#input-description") or None,
                self._value("#input-image") or None,
            )
        except ValidationError as e:
            _logger.warning(f"Adding a game refused: {e}")
            self.notify(str(e), severity="error")
            return
        except aiosqlite.Error as e:
            _logger.error(f"Adding a game failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        self.notify(f"Added {game.game_id}: {game.name}.")
        self.current_game_id = game.game_id
        self._show_form(editing=True)
        self.render_game()
        self._changed()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True, group="mutate")
    async def handle_delete(self) -> None:
        if self.current_game_id is None or not await self._authorized():
            return
        game_id = self.current_game_id
        if not await self.app.push_screen_wait(
            ConfirmDialogModal(f"Delete {game_id} from the catalog?", tone="error")
        ):
            return

        try:
            deleted = await crud.delete_game(game_id)
        except aiosqlite.Error as e:
            _logger.error(f"Deleting {game_id} failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        if not deleted:
            self.notify(
                f"{game_id} appears in rental orders and cannot be deleted.",
                severity="error",
            )
            return
        self.notify(f"{game_id} deleted.")
        self.current_game_id = None
        self.query_one("#md-game").add_class("hidden")
        self.query_one("#div-game-form").add_class("hidden")
        self._changed()
