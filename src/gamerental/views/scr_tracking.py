from datetime import datetime
from typing import Optional

import aiosqlite
from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, MarkdownViewer

import gamerental.db.crud as crud
from gamerental import config
from gamerental.db.models import TrackingInfo
from gamerental.utils.errors import AuthorizationError
from gamerental.utils.logger import get_logger
from gamerental.utils.messages import ModeSwitchedMessage
from gamerental.utils.pure import generate_markdown_table
from gamerental.views.base_screen import BaseScreen
from gamerental.views.modal_dialog import ConfirmDialogModal

_logger = get_logger(__name__)


class TrackingScreen(BaseScreen):
    """
    Look up tracking information by trackingID or rentalOrderID.
    Employees and managers also get a form to update the record.
    """

    def __init__(self) -> None:
        super().__init__()
        self._tracking: Optional[TrackingInfo] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-tracking-lookup"):
                yield Input(
                    placeholder="trackingid1 or gamerentalorder1", id="input-tracking-id"
                )
                yield Button("Look Up", id="btn-lookup", variant="primary")
            yield MarkdownViewer(id="md-tracking", show_table_of_contents=False)
            with Vertical(id="div-tracking-update"):
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Status")
                        yield Input(id="input-status")
                    with Vertical():
                        yield Label("Current Location")
                        yield Input(id="input-location")
                    with Vertical():
                        yield Label("Courier")
                        yield Input(id="input-courier")
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Additional Comments")
                        yield Input(id="input-comments")
                    yield Button("Update Tracking", id="btn-update", variant="success")

    def on_mount(self) -> None:
        self.query_one("#input-tracking-id", Input).focus()
        self._sync_update_form()

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    def _sync_update_form(self) -> None:
        form = self.query_one("#div-tracking-update")
        form.set_class(not (self.app.state.is_staff and self._tracking), "hidden")

    @on(Input.Submitted, "#input-tracking-id")
    @on(Button.Pressed, "#btn-lookup")
    def handle_lookup(self) -> None:
        key = self.query_one("#input-tracking-id", Input).value.strip()
        if key:
            self.load_tracking(key)

    @work(exclusive=True, group="tracking")
    async def load_tracking(self, key: str) -> None:
        if key.startswith(config.TRACKING_ID_PREFIX):
            tracking = await crud.get_tracking(key)
        else:
            tracking = await crud.get_tracking_for_order(key)

        if tracking is not None:
            owner = await crud.get_order_owner(tracking.rental_order_id)
            if not self.app.state.can_view_order_of(owner):
                tracking = None

        self._tracking = tracking
        await self._render(key)
        self._sync_update_form()
        if tracking is not None:
            self.query_one("#input-status", Input).value = tracking.status
            self.query_one("#input-location", Input).value = tracking.current_location
            self.query_one("#input-courier", Input).value = tracking.courier
            self.query_one("#input-comments", Input).value = tracking.comments or ""

    async def _render(self, key: str) -> None:
        viewer = self.query_one("#md-tracking", MarkdownViewer)
        tracking = self._tracking
        if tracking is None:
            await viewer.document.update(f"### No tracking information found for {key}.")
            return
        rows = [
            ["Tracking ID", tracking.tracking_id],
            ["Rental Order", tracking.rental_order_id],
            ["Status", tracking.status],
            ["Current Location", tracking.current_location],
            ["Courier", tracking.courier],
            ["Last Updated", tracking.last_updated],
            ["Comments", tracking.comments],
        ]
        await viewer.document.update(
            "### Tracking Information\n\n"
            + generate_markdown_table(["Field", "Value"], rows, ["l", "l"])
        )

    @on(Button.Pressed, "#btn-update")
    @work(exclusive=True)
    async def handle_update(self) -> None:
        if self._tracking is None:
            return
        try:
            await self.app.state.require_role(*config.STAFF_ROLES)
        except AuthorizationError:
            self.notify(
                "You are unauthorized to update tracking information.", severity="error"
            )
            self._sync_update_form()
            return

        fields = {
            "status": self.query_one("#input-status", Input).value.strip(),
            "current_location": self.query_one("#input-location", Input).value.strip(),
            "courier": self.query_one("#input-courier", Input).value.strip(),
        }
        for name, value in fields.items():
            if not value:
                self.notify(f"{name.replace('_', ' ').capitalize()} cannot be empty.", severity="error")
                return
        comments = self.query_one("#input-comments", Input).value.strip()

        if not await self.app.push_screen_wait(
            ConfirmDialogModal(f"Update tracking {self._tracking.tracking_id}?", tone="positive")
        ):
            return

        tracking_id = self._tracking.tracking_id
        try:
            updated = await crud.update_tracking(
                tracking_id, datetime.now(), comments=comments, **fields
            )
        except aiosqlite.Error as e:
            _logger.error(f"Tracking update for {tracking_id} failed: {e}")
            self.notify(f"Database error: {e}", severity="error")
            return

        if updated:
            self.notify("Tracking information updated.")
        else:
            self.notify("Update failed.", severity="error")
        self.load_tracking(tracking_id)
