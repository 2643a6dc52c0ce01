from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.screen import ModalScreen
from textual.widgets import Label, Static


class ConfirmScreen(ModalScreen[bool]):
    BINDINGS = [
        Binding("y", "confirm", "Yes"),
        Binding("n", "cancel", "No"),
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    CSS = """
    ConfirmScreen {
        align: center middle;
    }
    #confirm-dialog {
        width: 64;
        height: auto;
        padding: 1 2;
        border: thick $accent;
        background: $surface;
    }
    #confirm-prompt {
        text-align: center;
        margin-bottom: 1;
    }
    #confirm-warning {
        text-align: center;
        color: $warning;
        margin-bottom: 1;
    }
    #confirm-hint {
        text-align: center;
        color: $text-muted;
    }
    """

    WARNINGS = {
        "up": "Configuration files will be overwritten.",
        "down": "Services will be stopped and configuration archived.",
        "restart": "Services will be stopped, then configured and started again.",
    }

    def __init__(self, action: str, title: str, host: str):
        super().__init__()
        self.action = action
        self.title_text = title
        self.host = host

    def compose(self) -> ComposeResult:
        with Vertical(id="confirm-dialog"):
            yield Label(
                f"Bring [b]{self.title_text}[/b] {self.action} on [b]{self.host}[/b]?"
                if self.action in ("up", "down")
                else f"Restart [b]{self.title_text}[/b] on [b]{self.host}[/b]?",
                id="confirm-prompt",
            )
            yield Static(self.WARNINGS.get(self.action, ""), id="confirm-warning")
            yield Static(r"\[y] Yes  /  \[n] No", id="confirm-hint")

    def action_confirm(self) -> None:
        self.dismiss(True)

    def action_cancel(self) -> None:
        self.dismiss(False)
