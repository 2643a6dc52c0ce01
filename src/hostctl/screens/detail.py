import os
import subprocess
import tempfile

from textual.app import ComposeResult
from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, Static

from hostctl.backend import BackendError
from hostctl.profiles import Profile

PAGER = os.environ.get("HOSTCTL_PAGER", "vim")


class DetailScreen(Screen):
    """Configuration files, probes and the last operation log of a profile."""

    BINDINGS = [
        Binding("escape", "go_back", "Back"),
    ]

    CSS = """
    #detail-title {
        dock: top;
        height: 1;
        background: $accent;
        color: $text;
        padding: 0 1;
    }
    DataTable {
        height: 1fr;
    }
    """

    def __init__(self, profile: Profile):
        super().__init__()
        self.profile = profile

    def compose(self) -> ComposeResult:
        yield Header()
        yield Static(f"  {self.profile.title} @ {self.app.backend.address}", id="detail-title")
        yield DataTable(id="detail-table")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#detail-table", DataTable)
        table.add_columns("Type", "Name")
        table.cursor_type = "row"

        table.add_row("Log", "last operation", key="log")
        for i, template in enumerate(self.profile.templates):
            table.add_row("File", template.path, key=f"file:{i}")
        for i, probe in enumerate(self.profile.status_probes):
            table.add_row("Command", " ".join(probe.argv), key=f"cmd:{i}")

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        key = event.row_key.value
        self.run_worker(self._fetch_and_view(key), exclusive=True, group="view")

    async def _fetch(self, key: str) -> tuple[str, str] | None:
        backend = self.app.backend
        if key == "log":
            return self.app.last_log or "No operation has run yet.\n", ".log"
        if key.startswith("file:"):
            path = self.profile.templates[int(key.removeprefix("file:"))].path
            _, ext = os.path.splitext(path)
            return await backend.read_file(path), ext or ".txt"
        if key.startswith("cmd:"):
            probe = self.profile.status_probes[int(key.removeprefix("cmd:"))]
            result = await backend.run(list(probe.argv))
            return result.stdout + result.stderr or probe.fallback, ".txt"
        return None

    async def _fetch_and_view(self, key: str) -> None:
        try:
            fetched = await self._fetch(key)
        except BackendError as exc:
            self.notify(str(exc), severity="error", timeout=5)
            return
        if fetched is None:
            return
        content, suffix = fetched

        fd, tmp_path = tempfile.mkstemp(suffix=suffix)
        try:
            with os.fdopen(fd, "w") as f:
                f.write(content)
            with self.app.suspend():
                subprocess.run([PAGER, "-R", tmp_path])
        finally:
            os.unlink(tmp_path)

    def action_go_back(self) -> None:
        self.dismiss()
