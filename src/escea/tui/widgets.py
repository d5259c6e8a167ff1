"""Custom Textual widgets for the Escea TUI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from textual.widgets import Static

if TYPE_CHECKING:
    from escea.models import DeviceIdentity, Status


def _on_off(value: bool) -> str:
    return "[green]On[/green]" if value else "[dim]Off[/dim]"


def format_status(
    status: Status | None,
    identity: DeviceIdentity | None = None,
) -> list[tuple[str, str]]:
    """Format a status snapshot as (label, value) rows for display."""
    rows: list[tuple[str, str]] = []
    if identity is not None:
        rows.append(("Serial", str(identity.serial)))
        rows.append(("PIN", str(identity.pin)))

    if status is None:
        rows.append(("Status", "[dim]Waiting for fireplace...[/dim]"))
        return rows

    rows.extend(
        [
            ("Fire", _on_off(status.is_on)),
            ("Flame Effect", _on_off(status.flame_effect_is_on)),
            ("Fan Boost", _on_off(status.fan_boost_is_on)),
            ("Timers", "Set" if status.has_timers else "None"),
            ("Target", f"{status.target_temperature}°C"),
            ("Room", f"{status.current_temperature}°C"),
        ]
    )
    return rows


class StatusPanel(Static):
    """Panel showing the last known fireplace status."""

    def update_status(
        self,
        status: Status | None,
        identity: DeviceIdentity | None = None,
    ) -> None:
        """Re-render the panel for *status*."""
        lines = [
            f"[bold]{label + ':':<14}[/bold]{value}"
            for label, value in format_status(status, identity)
        ]
        self.update("\n".join(lines))
