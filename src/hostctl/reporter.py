from __future__ import annotations

import logging

from rich.console import Console

log = logging.getLogger(__name__)

GREEN = "green"
YELLOW = "bold yellow"
RED = "red"


class Reporter:
    """Coloured progress lines for an operation.

    Every line is also kept in ``lines`` as ``(style, text)`` so callers
    without a terminal (the dashboard, tests) can replay it.
    """

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)
        self.lines: list[tuple[str, str]] = []

    def _emit(self, style: str, message: str) -> None:
        self.lines.append((style, message))
        self.console.print(message, style=style or None, markup=False, highlight=False)

    def success(self, message: str) -> None:
        log.info(message)
        self._emit(GREEN, message)

    def progress(self, message: str) -> None:
        log.info(message)
        self._emit(YELLOW, message)

    def warning(self, message: str) -> None:
        log.warning(message)
        self._emit(YELLOW, message)

    def failure(self, message: str) -> None:
        log.error(message)
        self._emit(RED, message)

    def banner(self, message: str, style: str = GREEN) -> None:
        log.info(message)
        self._emit(style, message)

    def plain(self, message: str = "") -> None:
        self._emit("", message)

    def text(self) -> str:
        return "\n".join(message for _, message in self.lines)
