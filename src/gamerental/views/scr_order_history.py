import asyncio
from math import ceil
from typing import List, Tuple

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.reactive import reactive
from textual.validation import Number
from textual.widgets import Button, DataTable, Input, Label, MarkdownViewer

import gamerental.db.crud as crud
from gamerental import config
from gamerental.db.models import CatalogEntry, OrderLine, RentalOrder, TrackingInfo
from gamerental.utils.messages import ModeSwitchedMessage, NewOrderMessage
from gamerental.utils.validation import parse_positive_int
from gamerental.views.base_screen import BaseScreen


class OrderHistoryScreen(BaseScreen):
    """
    Browse rental orders with pagination and view the details of one.

    Customers see their own orders; employees and managers see every order.
    "Recent" limits the table to the 5 most recent orders.

    Layout:
    - Markdown detail view at the top, showing the selected order.
    - Orders table below (reverse chronological), 5 per page with Prev/Next.
    """

    BINDINGS = [
        Binding("enter", "noop", "View Order Detail", show=True, key_display="⏎"),
    ]

    page_idx = reactive(1)
    page_cnt = reactive(1)
    recent_only = reactive(False)

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            with Horizontal(id="hort-order-lookup"):
                yield Input(placeholder="gamerentalorder1", id="input-order-id")
                yield Button("View Order", id="btn-lookup")
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("Recent 5", id="btn-recent")
            yield Button("<", id="btn-prev")
            yield Input("1", id="input-page", type="integer")
            yield Label(" / 1", id="label-total-page-cnt")
            yield Button(">", id="btn-next")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Customer", "Date", "Due", "Copies", "Total ($)")

        self.page_idx = 1

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(NewOrderMessage)
    def handle_refresh(self):
        self._load_orders(self.page_idx)

    @on(Button.Pressed, "#btn-recent")
    def handle_toggle_recent(self) -> None:
        self.recent_only = not self.recent_only

    def watch_recent_only(self, recent_only: bool) -> None:
        self.query_one("#btn-recent", Button).label = (
            "All Orders" if recent_only else "Recent 5"
        )
        self.page_idx = 1
        self._load_orders(1)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None:
            self._load_and_render_detail(event.row_key.value)

    def watch_page_idx(self, old: int, new: int) -> None:
        # sync page input and enable/disable buttons; trigger load
        self.query_one("#input-page", Input).value = str(new)
        self._refresh_buttons()
        self._load_orders(new)

    def _refresh_buttons(self) -> None:
        btn_prev = self.query_one("#btn-prev", Button)
        btn_next = self.query_one("#btn-next", Button)
        btn_prev.disabled = self.recent_only or self.page_idx <= 1
        btn_next.disabled = self.recent_only or self.page_idx >= self.page_cnt
        self.query_one("#input-page", Input).validators = [
            Number(minimum=1, maximum=self.page_cnt)
        ]

    @on(Button.Pressed, "#btn-prev")
    def handle_prev(self) -> None:
        if self.page_idx > 1:
            self.page_idx -= 1

    @on(Button.Pressed, "#btn-next")
    def handle_next(self) -> None:
        if self.page_idx < self.page_cnt:
            self.page_idx += 1

    @on(Input.Changed, "#input-page")
    def handle_page_input(self, ev: Input.Changed) -> None:
        page = parse_positive_int(ev.value)
        if page is not None:
            new_idx = min(page, self.page_cnt)
            if new_idx != self.page_idx:
                self.page_idx = new_idx

    @on(Input.Submitted, "#input-order-id")
    @on(Button.Pressed, "#btn-lookup")
    def handle_lookup(self) -> None:
        order_id = self.query_one("#input-order-id", Input).value.strip()
        if order_id:
            self._load_and_render_detail(order_id)

    @work(exclusive=True, group="orders")
    async def _load_orders(self, page: int) -> None:
        state = self.app.state
        if self.recent_only:
            orders = await crud.list_recent_orders(state.login, config.PAGE_SIZE)
            total = len(orders)
        elif state.is_staff:
            orders, total = await crud.list_all_orders(page)
        else:
            orders, total = await crud.list_orders(state.login, page)

        table = self.query_one(DataTable)
        table.clear()
        for o in orders:
            table.add_row(
                o.rental_order_id,
                o.login,
                f"{o.ordered_at:%Y-%m-%d %H:%M}",
                f"{o.due_date:%Y-%m-%d}",
                o.total_copies,
                f"{o.total_price:.2f}",
                key=o.rental_order_id,
            )
        self.page_cnt = 1 if self.recent_only else max(ceil(total / config.PAGE_SIZE), 1)
        self.query_one("#label-total-page-cnt", Label).update(f" / {self.page_cnt}")
        self._refresh_buttons()
        if orders:
            table.move_cursor(row=0)
            self._load_and_render_detail(orders[0].rental_order_id)
        else:
            self._render_detail(None, [], None)

    @work(exclusive=True, group="detail")
    async def _load_and_render_detail(self, order_id: str) -> None:
        order, lines = await crud.get_order_detail(order_id)
        if order is None or not self.app.state.can_view_order_of(order.login):
            # same answer for "missing" and "not yours"
            self._render_detail(None, [], None, missing=order_id)
            return
        games, tracking = await asyncio.gather(
            asyncio.gather(*(crud.get_game(ol.game_id) for ol in lines)),
            crud.get_tracking_for_order(order_id),
        )
        self._render_detail(order, list(zip(lines, games)), tracking)

    def _render_detail(
        self,
        order: RentalOrder | None,
        lines_with_game: List[Tuple[OrderLine, CatalogEntry | None]],
        tracking: TrackingInfo | None,
        missing: str | None = None,
    ) -> None:
        viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            md = (
                f"### No rental order {missing} found."
                if missing
                else "### Select an order to view its details."
            )
            viewer.document.update(md)
            return

        header = (
            f"### Rental Order {order.rental_order_id}\n"
            f"Customer: {order.login}  \n"
            f"Ordered: {order.ordered_at}  \n"
            f"Due: {order.due_date}\n\n"
        )
        rows = [
            "| gameID | Name | Copies |",
            "|:---|:---|---:|",
        ]
        for ol, game in lines_with_game:
            name = game.name if game else "(removed from catalog)"
            rows.append(f"| {ol.game_id} | {name} | {ol.quantity} |")
        footer = (
            f"\n\n**Total Copies:** {order.total_copies}  \n"
            f"**Total Price:** ${order.total_price:.2f}"
        )
        if tracking:
            footer += (
                f"\n\n**Tracking {tracking.tracking_id}:** {tracking.status}, "
                f"{tracking.current_location} via {tracking.courier} "
                f"(updated {tracking.last_updated})"
            )
        md = header + "\n".join(rows) + footer
        viewer.document.update(md)
