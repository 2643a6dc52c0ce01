from rich.console import Console
from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.screen import Screen
from textual.widgets import DataTable, Footer, Header, LoadingIndicator

from hostctl.backend import BackendError
from hostctl.models import ServiceState
from hostctl.orchestrator import Orchestrator
from hostctl.profiles import Profile
from hostctl.reporter import Reporter

AUTO_REFRESH_SECONDS = 30

STATE_STYLES = {
    ServiceState.RUNNING: ("● running", "bold green"),
    ServiceState.STOPPED: ("○ stopped", "bold yellow"),
    ServiceState.NOT_INSTALLED: ("- not installed", "dim"),
}

OPERATIONS = {
    "up": "bring_up",
    "down": "bring_down",
    "restart": "restart",
}


class MainScreen(Screen):
    BINDINGS = [
        Binding("r", "refresh", "Refresh"),
        Binding("u", "bring_up", "Up"),
        Binding("d", "bring_down", "Down"),
        Binding("t", "restart", "Restart"),
        Binding("q", "quit", "Quit"),
    ]

    CSS = """
    #loading {
        align: center middle;
    }
    #table-container {
        height: 1fr;
    }
    DataTable {
        height: 1fr;
    }
    """

    def __init__(self, profile: Profile):
        super().__init__()
        self.profile = profile
        self._states: dict[str, ServiceState] = {}
        self._error: str | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Container(LoadingIndicator(), id="loading")
        yield Container(DataTable(id="service-table"), id="table-container")
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#service-table", DataTable)
        table.add_columns("Unit", "State")
        table.cursor_type = "row"
        self.query_one("#table-container").display = False
        self.run_worker(self._refresh_states(), exclusive=True)
        self._auto_refresh_timer = self.set_interval(
            AUTO_REFRESH_SECONDS, self._auto_refresh, pause=False,
        )

    def _orchestrator(self, reporter: Reporter | None = None) -> Orchestrator:
        app = self.app
        return Orchestrator(
            self.profile,
            app.backend,
            reporter=reporter or Reporter(Console(quiet=True)),
            settle_delay=app.settings.settle_delay,
        )

    async def _refresh_states(self) -> None:
        try:
            self._states = await self._orchestrator().service_states()
            self._error = None
        except BackendError as exc:
            self._states = {}
            self._error = str(exc)
        self._populate_table()

    def _populate_table(self) -> None:
        table = self.query_one("#service-table", DataTable)
        table.clear()

        if self._error:
            table.add_row("-", Text(f"⚠ {self._error}", style="bold red"), key="error")
        else:
            for unit in self.profile.services:
                label, style = STATE_STYLES[self._states[unit]]
                table.add_row(unit, Text(label, style=style), key=unit)

        self.query_one("#loading").display = False
        self.query_one("#table-container").display = True

    def _auto_refresh(self) -> None:
        self.run_worker(self._refresh_states(), exclusive=True)

    def action_refresh(self) -> None:
        self.run_worker(self._refresh_states(), exclusive=True)

    def action_quit(self) -> None:
        self.app.exit()

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._auto_refresh_timer.pause()

        def on_detail_return(_=None) -> None:
            self._auto_refresh_timer.resume()
            self.run_worker(self._refresh_states(), exclusive=True)

        from hostctl.screens.detail import DetailScreen
        self.app.push_screen(DetailScreen(self.profile), callback=on_detail_return)

    def _do_operation(self, action: str) -> None:
        from hostctl.screens.confirm import ConfirmScreen

        def on_confirm(confirmed: bool) -> None:
            if confirmed:
                self.run_worker(self._execute_operation(action), exclusive=True)

        self.app.push_screen(
            ConfirmScreen(action, self.profile.title, self.app.backend.address),
            callback=on_confirm,
        )

    async def _execute_operation(self, action: str) -> None:
        reporter = Reporter(Console(quiet=True))
        orchestrator = self._orchestrator(reporter)
        try:
            result = await getattr(orchestrator, OPERATIONS[action])()
        except BackendError as exc:
            self.notify(f"{action.title()}: {exc}", severity="error", timeout=5)
            return
        finally:
            self.app.last_log = reporter.text()

        failures = result.failures
        if result.aborted or failures:
            names = ", ".join(step.name for step in failures)
            self.notify(f"{action.title()} {self.profile.title}: failed {names}", severity="error", timeout=5)
        else:
            self.notify(f"{action.title()} {self.profile.title} done", timeout=3)
        await self._refresh_states()

    def action_bring_up(self) -> None:
        self._do_operation("up")

    def action_bring_down(self) -> None:
        self._do_operation("down")

    def action_restart(self) -> None:
        self._do_operation("restart")
