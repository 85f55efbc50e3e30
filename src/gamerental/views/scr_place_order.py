import asyncio
from typing import Optional

from rich.markdown import Markdown
from rich.text import Text
from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, Input, RichLog

from gamerental.utils.messages import NewOrderMessage
from gamerental.utils.order_workflow import OrderStage, OrderWorkflow
from gamerental.views.base_screen import BaseScreen


class PlaceOrderScreen(BaseScreen):
    """
    Line-oriented console for placing a rental order.

    The order workflow prints prompts into the log and waits for the next line
    submitted in the input box. Escape while a prompt is open cancels the order.
    """

    def __init__(self) -> None:
        super().__init__()
        self._pending: Optional[asyncio.Future] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-console"):
            yield RichLog(id="log-console", wrap=True, markup=False)
            yield Input(
                id="input-console",
                placeholder="Press 'Start New Order' to begin",
                disabled=True,
            )
            with Horizontal(id="hort-buttons"):
                yield Button("Clear", id="btn-clear")
                yield Button("Start New Order", id="btn-start", variant="primary")

    def on_mount(self) -> None:
        self.query_one("#btn-start").focus()

    def say(self, text: str) -> None:
        self.query_one(RichLog).write(Markdown(text))

    async def read_line(self, prompt: str) -> Optional[str]:
        """Show `prompt` and wait for one submitted line; None if escaped."""
        self.query_one(RichLog).write(Text(prompt, style="bold cyan"))
        console_input = self.query_one("#input-console", Input)
        console_input.disabled = False
        console_input.placeholder = "Type your answer and press Enter (Esc cancels)"
        console_input.focus()

        self._pending = asyncio.get_running_loop().create_future()
        try:
            return await self._pending
        finally:
            self._pending = None

    def _answer(self, line: Optional[str]) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.set_result(line)

    @on(Input.Submitted, "#input-console")
    def handle_submit(self, event: Input.Submitted) -> None:
        if self._pending is None:
            return
        self.query_one(RichLog).write(Text(f"> {event.value}", style="dim"))
        event.input.value = ""
        self._answer(event.value)

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape" and self._pending is not None:
            event.stop()
            self._answer(None)

    @on(Button.Pressed, "#btn-clear")
    def handle_clear(self) -> None:
        self.query_one(RichLog).clear()

    @on(Button.Pressed, "#btn-start")
    @work(exclusive=True, group="order")
    async def handle_start(self) -> None:
        btn_start = self.query_one("#btn-start", Button)
        console_input = self.query_one("#input-console", Input)
        btn_start.disabled = True
        self.say("## Place Order")

        workflow = OrderWorkflow(self.app.state.login, self.read_line, self.say)
        try:
            order = await workflow.run()
        finally:
            console_input.disabled = True
            console_input.placeholder = "Press 'Start New Order' to begin"
            btn_start.disabled = False
            btn_start.focus()

        if order is not None:
            self.app.post_message(NewOrderMessage())
            self.notify(f"Order {order.rental_order_id} placed.")
        elif workflow.stage is OrderStage.FAILED:
            self.notify("The order could not be placed.", severity="error")
