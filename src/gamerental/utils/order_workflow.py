"""
Line-driven order placement.

OrderWorkflow asks for a cart one line at a time, prices it, asks for
confirmation and persists the rental order. It only talks to the operator
through two callables, so the same workflow runs behind the terminal UI's
console screen and behind scripted input in tests:

- ``read_line(prompt)`` awaits one line of input, or None if the operator
  aborted input (escape),
- ``say(text)`` shows one message.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

import aiosqlite

from gamerental.db import crud
from gamerental.db.models import CartLine, OrderSummary, RentalOrder, TrackingInfo
from gamerental.utils.errors import NotFoundError
from gamerental.utils.logger import get_logger
from gamerental.utils.pure import format_money, generate_markdown_table, price_cart, summary_rows
from gamerental.utils.validation import is_game_id_format, parse_positive_int, parse_yes_no

_logger = get_logger(__name__)

ReadLine = Callable[[str], Awaitable[Optional[str]]]
Say = Callable[[str], None]


class OrderStage(enum.Enum):
    COLLECTING_CART = "collecting cart"
    PRICING = "pricing"
    AWAITING_CONFIRMATION = "awaiting confirmation"
    PERSISTING = "persisting"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"


class _InputAborted(Exception):
    pass


class OrderWorkflow:
    """
    One checkout for `login`. Call run() once; it returns the persisted
    RentalOrder, or None if the order was cancelled or could not be stored.
    """

    def __init__(
        self,
        login: str,
        read_line: ReadLine,
        say: Say,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.login = login
        self._read_line = read_line
        self._say = say
        self._now = now

        self.stage = OrderStage.COLLECTING_CART
        self.cart: List[CartLine] = []
        self.summary: Optional[OrderSummary] = None
        self.order: Optional[RentalOrder] = None
        self.tracking: Optional[TrackingInfo] = None

    async def run(self) -> Optional[RentalOrder]:
        if self.stage is not OrderStage.COLLECTING_CART:
            raise RuntimeError(f"Order workflow already {self.stage.value}.")
        try:
            await self._collect_cart()

            self.stage = OrderStage.PRICING
            self.summary = await self._price()

            self.stage = OrderStage.AWAITING_CONFIRMATION
            self._show_summary(self.summary)
            if not await self._confirm():
                self._cancel("Order canceled.")
                return None

            self.stage = OrderStage.PERSISTING
            self.order, self.tracking = await crud.create_rental_order(
                self.login,
                self.cart,
                self.summary.total_copies,
                self.summary.total_price,
                self._now(),
            )
        except _InputAborted:
            self._cancel("Order canceled. Nothing was saved.")
            return None
        except (aiosqlite.Error, NotFoundError) as e:
            _logger.error(
                f"Order for {self.login!r} aborted while {self.stage.value}: {e}"
            )
            self.stage = OrderStage.FAILED
            self._say(f"Error: the order could not be placed ({e}).")
            return None

        self.stage = OrderStage.DONE
        self._say(
            f"Order placed successfully. Order ID: {self.order.rental_order_id}, "
            f"tracking ID: {self.tracking.tracking_id}, "
            f"due {self.order.due_date:%Y-%m-%d}."
        )
        return self.order

    # ---------------------------
    # Prompts
    # ---------------------------

    async def _ask(self, prompt: str) -> str:
        line = await self._read_line(prompt)
        if line is None:
            raise _InputAborted()
        return line.strip()

    async def _ask_positive_int(self, prompt: str) -> int:
        while True:
            value = parse_positive_int(await self._ask(prompt))
            if value is not None:
                return value
            self._say("Invalid input: enter a whole number greater than zero.")

    async def _ask_game_id(self, prompt: str) -> str:
        while True:
            game_id = await self._ask(prompt)
            if not is_game_id_format(game_id):
                self._say("Invalid gameID: expected the form game0000.")
            elif any(line.game_id == game_id for line in self.cart):
                self._say(f"{game_id} is already in this order.")
            elif not await crud.game_exists(game_id):
                self._say(f"Invalid gameID: {game_id} is not in the catalog.")
            else:
                return game_id

    async def _collect_cart(self) -> None:
        count = await self._ask_positive_int(
            "How many different games would you like to order?"
        )
        for i in range(1, count + 1):
            game_id = await self._ask_game_id(f"Game {i} of {count}: enter gameID")
            quantity = await self._ask_positive_int(
                f"Number of copies of {game_id}:"
            )
            self.cart.append(CartLine(game_id=game_id, quantity=quantity))

    async def _confirm(self) -> bool:
        while True:
            answer = parse_yes_no(await self._ask("Please confirm order (y/n):"))
            if answer is not None:
                return answer
            self._say("Invalid input: answer y or n.")

    # ---------------------------
    # Pricing
    # ---------------------------

    async def _price(self) -> OrderSummary:
        prices = await crud.get_prices(line.game_id for line in self.cart)
        missing = [line.game_id for line in self.cart if line.game_id not in prices]
        if missing:
            # removed from the catalog after it was entered
            raise NotFoundError(f"no longer in the catalog: {', '.join(missing)}")
        return price_cart(self.cart, prices)

    def _show_summary(self, summary: OrderSummary) -> None:
        table = generate_markdown_table(
            ["gameID", "Copies", "Unit Price", "Line Total"],
            summary_rows(summary),
            ["l", "r", "r", "r"],
        )
        self._say("Items in Order\n\n" + table)
        self._say(
            f"Total: {len(summary.lines)} game(s), {summary.total_copies} copies. "
            f"Total Cost: {format_money(summary.total_price)}"
        )

    def _cancel(self, message: str) -> None:
        self.stage = OrderStage.CANCELLED
        _logger.info(f"Order for {self.login!r} cancelled")
        self._say(message)
