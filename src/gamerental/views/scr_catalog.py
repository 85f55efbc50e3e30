from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.validation import Number
from textual.widgets import Button, DataTable, Input, Label, MarkdownViewer

import gamerental.db.crud as crud
from gamerental.db.models import CatalogEntry
from gamerental.utils.messages import CatalogChangedMessage, ModeSwitchedMessage
from gamerental.utils.pure import format_money, generate_markdown_table
from gamerental.views.base_screen import BaseScreen


class CatalogScreen(BaseScreen):
    """
    Browse the catalog, optionally filtered to one genre and/or games priced
    below a maximum, sorted by price.
    """

    sort = reactive("DESC")

    def __init__(self) -> None:
        super().__init__()
        self._games: Dict[str, CatalogEntry] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-filters"):
            with Vertical():
                yield Label("Genre")
                yield Input(placeholder="any genre", id="input-genre")
            with Vertical():
                yield Label("Max Price ($)")
                yield Input(
                    placeholder="no limit",
                    id="input-max-price",
                    type="number",
                    validators=[Number(minimum=0.0)],
                )
            yield Button("Price: High to Low", id="btn-sort")
            yield Button("Reset", id="btn-reset")
        with Vertical():
            yield DataTable(id="table-catalog")
            yield MarkdownViewer(id="md-game", show_table_of_contents=False)
        yield Label("", id="label-catalog-status")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("gameID", "Name", "Genre", "Price")
        self.load_catalog()

    def watch_sort(self, sort: str) -> None:
        self.query_one("#btn-sort", Button).label = (
            "Price: Low to High" if sort == "ASC" else "Price: High to Low"
        )
        self.load_catalog()

    @on(Button.Pressed, "#btn-sort")
    def handle_sort(self) -> None:
        self.sort = "ASC" if self.sort == "DESC" else "DESC"

    @on(Button.Pressed, "#btn-reset")
    def handle_reset(self) -> None:
        self.query_one("#input-genre", Input).value = ""
        self.query_one("#input-max-price", Input).value = ""

    @on(Input.Changed, "#input-genre")
    @on(Input.Changed, "#input-max-price")
    def handle_filter_change(self) -> None:
        self.load_catalog()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(CatalogChangedMessage)
    def handle_refresh(self) -> None:
        self.load_catalog()

    def _max_price(self) -> float:
        price_input = self.query_one("#input-max-price", Input)
        if not price_input.value or not price_input.is_valid:
            return 0.0
        try:
            return float(price_input.value)
        except ValueError:
            return 0.0

    @work(exclusive=True, group="catalog")
    async def load_catalog(self) -> None:
        genre = self.query_one("#input-genre", Input).value.strip()
        max_price = self._max_price()
        games = await crud.list_catalog(genre=genre, max_price=max_price, sort=self.sort)
        self._games = {g.game_id: g for g in games}
        genres = await crud.list_genres()
        self.query_one("#input-genre", Input).placeholder = " / ".join(genres) or "any genre"

        table = self.query_one(DataTable)
        table.clear()
        for g in games:
            table.add_row(g.game_id, g.name, g.genre, f"{g.price:.2f}", key=g.game_id)

        filters: List[str] = []
        if genre:
            filters.append(f'Genre = "{genre}"')
        if max_price > 0:
            filters.append(f"Price < {max_price:.2f}")
        description = ", ".join(filters) if filters else "full catalog"
        self.query_one("#label-catalog-status", Label).update(
            f"{len(games)} game(s), {description}"
        )
        if not games:
            await self._render_game(None)

    @on(DataTable.RowHighlighted)
    async def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        game_id = event.row_key.value if event.row_key else None
        await self._render_game(self._games.get(game_id))

    async def _render_game(self, game: CatalogEntry | None) -> None:
        viewer = self.query_one("#md-game", MarkdownViewer)
        if game is None:
            await viewer.document.update("### No game selected.")
            return
        rows = [
            ["gameID", game.game_id],
            ["Genre", game.genre],
            ["Price", format_money(game.price)],
            ["Description", game.description],
            ["Image", game.image_url],
        ]
        await viewer.document.update(
            f"### {game.name}\n\n" + generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        )
