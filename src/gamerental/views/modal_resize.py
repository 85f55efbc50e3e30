from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Resize
from textual.screen import ModalScreen
from textual.widgets import Label


class ResizeScreenPromptModal(ModalScreen[None]):
    """
    Covers the screen while the terminal is smaller than the layout needs,
    and closes itself once it is large enough again.
    """

    def __init__(self, min_width: int = 60, min_height: int = 20) -> None:
        super().__init__()
        self.min_width = min_width
        self.min_height = min_height

    def compose(self) -> ComposeResult:
        with Container(id="div-resize"):
            yield Label(self._caption(self.app.size.width, self.app.size.height), id="prompt")

    def _caption(self, width: int, height: int) -> str:
        return (
            f"Terminal is {width}x{height}. "
            f"Resize to at least {self.min_width}x{self.min_height}."
        )

    def on_resize(self, event: Resize) -> None:
        width, height = event.size.width, event.size.height
        if width >= self.min_width and height >= self.min_height:
            self.dismiss()
        else:
            self.query_one("#prompt", Label).update(self._caption(width, height))
