"""Textual screens for the Escea TUI."""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime
from typing import TYPE_CHECKING

from textual.containers import Vertical
from textual.screen import Screen
from textual.widgets import Footer, Header, RichLog, Static

from escea.tui.widgets import StatusPanel

if TYPE_CHECKING:
    from textual.app import ComposeResult

    from escea.fireplace import Fireplace
    from escea.models import Status

_LOGGER = logging.getLogger(__name__)

_LEVEL_MARKUP: dict[int, tuple[str, str]] = {
    logging.DEBUG: ("[dim]", "[/dim]"),
    logging.INFO: ("", ""),
    logging.WARNING: ("[yellow]", "[/yellow]"),
    logging.ERROR: ("[red]", "[/red]"),
    logging.CRITICAL: ("[bold red]", "[/bold red]"),
}

_DASHBOARD_CSS = """
#dashboard-container {
    padding: 1 2;
}
#status-panel {
    height: auto;
    padding: 1 2;
    border: solid $primary;
}
#messages-label {
    height: auto;
    margin-top: 1;
    padding: 0 2;
    text-style: bold;
}
#messages-panel {
    height: 1fr;
    min-height: 4;
    padding: 0 2;
    border: solid $accent;
}
"""


class _TuiLogHandler(logging.Handler):
    """Logging handler that writes records into a Textual RichLog widget."""

    def __init__(self, rich_log: RichLog) -> None:
        super().__init__()
        self._rich_log = rich_log

    def emit(self, record: logging.LogRecord) -> None:
        try:
            ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
            msg = self.format(record)
            open_tag, close_tag = _LEVEL_MARKUP.get(record.levelno, ("", ""))
            self._rich_log.write(
                f"[dim]{ts}[/dim] {open_tag}{msg}{close_tag}",
                shrink=False,
            )
        except Exception:  # noqa: BLE001
            self.handleError(record)


class DashboardScreen(Screen[None]):
    """Dashboard showing one fireplace's status and a message log."""

    CSS = _DASHBOARD_CSS

    def __init__(self, fireplace: Fireplace, name: str | None = None) -> None:
        super().__init__(name=name)
        self.fireplace = fireplace
        self._previous: Status | None = None
        self._log_handler: _TuiLogHandler | None = None
        self.sub_title = fireplace.address

    def compose(self) -> ComposeResult:
        """Compose the dashboard layout."""
        yield Header()
        with Vertical(id="dashboard-container"):
            yield StatusPanel(id="status-panel")
            yield Static("[bold]Messages[/bold]", id="messages-label")
            yield RichLog(id="messages-panel", markup=True, wrap=True)
        yield Footer()

    def on_mount(self) -> None:
        """Install the log handler and render the initial state."""
        rich_log = self.query_one("#messages-panel", RichLog)
        self._log_handler = _TuiLogHandler(rich_log)
        self._log_handler.setFormatter(
            logging.Formatter("%(levelname)s %(name)s: %(message)s")
        )
        logging.getLogger("escea").addHandler(self._log_handler)
        self.update_status(self.fireplace.status)

    def on_unmount(self) -> None:
        """Remove the TUI log handler when the screen is unmounted."""
        if self._log_handler is not None:
            logging.getLogger("escea").removeHandler(self._log_handler)
            self._log_handler = None

    def log_message(self, msg: str, level: int = logging.INFO) -> None:
        """Write a timestamped, level-colored message to the messages panel."""
        ts = datetime.now().strftime("%H:%M:%S")
        open_tag, close_tag = _LEVEL_MARKUP.get(level, ("", ""))
        rich_log = self.query_one("#messages-panel", RichLog)
        rich_log.write(f"[dim]{ts}[/dim] {open_tag}{msg}{close_tag}", shrink=False)

    def update_status(self, status: Status | None) -> None:
        """Show *status* and log what changed since the previous one."""
        panel = self.query_one("#status-panel", StatusPanel)
        panel.update_status(status, self.fireplace.identity)

        if status is None:
            return
        if self._previous is not None and self._previous != status:
            self._log_changes(self._previous, status)
        self._previous = status
        self.sub_title = (
            f"{self.fireplace.address} | Updated: {datetime.now().strftime('%H:%M:%S')}"
        )

    def _log_changes(self, old: Status, new: Status) -> None:
        for field in dataclasses.fields(new):
            old_val = getattr(old, field.name)
            new_val = getattr(new, field.name)
            if old_val != new_val:
                label = field.name.replace("_", " ").title()
                self.log_message(f"{label}: {old_val} → {new_val}")
