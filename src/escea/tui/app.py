"""Main Textual application for the Escea TUI."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from textual.app import App

from escea.const import MAX_TEMPERATURE, MIN_TEMPERATURE, REFRESH_INTERVAL
from escea.controller import FireplaceController
from escea.models import (
    SetFanBoostInstruction,
    SetFlameEffectInstruction,
    SetPowerInstruction,
    SetTemperatureInstruction,
)
from escea.tui.screens import DashboardScreen

if TYPE_CHECKING:
    from escea.fireplace import Fireplace
    from escea.models import Instruction, Status

_LOGGER = logging.getLogger(__name__)


class EsceaApp(App[None]):
    """Textual TUI application for monitoring and controlling a fireplace.

    All fireplace traffic goes through a :class:`FireplaceController` that
    runs as a worker for the lifetime of the app.
    """

    TITLE = "Escea Fireplace"

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("p", "toggle_power", "Power On/Off"),
        ("plus", "temperature_up", "Temp +"),
        ("minus", "temperature_down", "Temp -"),
        ("f", "toggle_flame_effect", "Flame Effect"),
        ("b", "toggle_fan_boost", "Fan Boost"),
    ]

    def __init__(
        self,
        fireplace: Fireplace,
        *,
        refresh_interval: float = REFRESH_INTERVAL,
    ) -> None:
        super().__init__()
        self.fireplace = fireplace
        self.controller = FireplaceController(
            fireplace,
            refresh_interval=refresh_interval,
            on_status=self.show_status,
        )
        self._write_in_progress = False

    def on_mount(self) -> None:
        """Start the controller and show the dashboard."""
        self.push_screen(DashboardScreen(self.fireplace))
        self.run_worker(
            self.controller.run(), name="controller", group="controller", thread=False
        )

    def on_unmount(self) -> None:
        """Stop the controller when the app exits."""
        self.controller.stop()

    def show_status(self, status: Status) -> None:
        """Forward a refreshed status to the dashboard."""
        screen = self.screen
        if isinstance(screen, DashboardScreen):
            screen.update_status(status)

    def _run_instruction(self, instruction: Instruction, description: str) -> None:
        """Submit *instruction* in a worker, ignoring keypresses meanwhile."""
        screen = self.screen
        if not isinstance(screen, DashboardScreen):
            return
        if self._write_in_progress:
            return
        self._write_in_progress = True
        self.run_worker(
            self._execute(screen, instruction, description),
            group="instructions",
            exclusive=True,
            thread=False,
        )

    async def _execute(
        self,
        screen: DashboardScreen,
        instruction: Instruction,
        description: str,
    ) -> None:
        screen.log_message(f"{description}...")
        try:
            await self.controller.execute(instruction)
            screen.log_message(f"{description}: done")
            self.controller.request_refresh()
        except Exception as exc:
            _LOGGER.exception("%s failed", description)
            screen.log_message(f"{description} failed: {exc}", level=logging.ERROR)
        finally:
            self._write_in_progress = False

    def action_refresh(self) -> None:
        """Handle the 'r' key binding to refresh the status."""
        screen = self.screen
        if isinstance(screen, DashboardScreen):
            screen.log_message("Refreshing...")
        self.controller.request_refresh()

    def action_toggle_power(self) -> None:
        """Handle the 'p' key binding to toggle fireplace power."""
        status = self.fireplace.status
        on = status is None or not status.is_on
        self._run_instruction(
            SetPowerInstruction(on=on), "Turning on" if on else "Turning off"
        )

    def _change_temperature(self, delta: int) -> None:
        status = self.fireplace.status
        if status is None:
            return
        target = status.target_temperature + delta
        if not MIN_TEMPERATURE <= target <= MAX_TEMPERATURE:
            screen = self.screen
            if isinstance(screen, DashboardScreen):
                screen.log_message(
                    f"Temperature must be between {MIN_TEMPERATURE} and "
                    f"{MAX_TEMPERATURE}°C",
                    level=logging.WARNING,
                )
            return
        self._run_instruction(
            SetTemperatureInstruction(temperature=target),
            f"Setting temperature to {target}°C",
        )

    def action_temperature_up(self) -> None:
        """Handle the '+' key binding to raise the target temperature."""
        self._change_temperature(1)

    def action_temperature_down(self) -> None:
        """Handle the '-' key binding to lower the target temperature."""
        self._change_temperature(-1)

    def action_toggle_flame_effect(self) -> None:
        """Handle the 'f' key binding to toggle the flame effect."""
        status = self.fireplace.status
        on = status is None or not status.flame_effect_is_on
        self._run_instruction(
            SetFlameEffectInstruction(on=on),
            f"Flame effect {'on' if on else 'off'}",
        )

    def action_toggle_fan_boost(self) -> None:
        """Handle the 'b' key binding to toggle fan boost."""
        status = self.fireplace.status
        on = status is None or not status.fan_boost_is_on
        self._run_instruction(
            SetFanBoostInstruction(on=on),
            f"Fan boost {'on' if on else 'off'}",
        )


async def run_tui(
    fireplace: Fireplace,
    *,
    refresh_interval: float = REFRESH_INTERVAL,
    verbose: bool = False,
) -> None:
    """Launch the Escea TUI dashboard for *fireplace*.

    Args:
        fireplace: The fireplace to control.
        refresh_interval: Seconds between automatic status refreshes.
        verbose: When True, set the escea logger to DEBUG so that all log
            messages appear in the TUI messages panel.
    """
    # Suppress stderr log output so it doesn't corrupt the TUI rendering.
    # The DashboardScreen installs its own handler to capture logs in-app.
    root_logger = logging.getLogger()
    saved_handlers: list[logging.Handler] = []
    for handler in root_logger.handlers[:]:
        if isinstance(handler, logging.StreamHandler):
            root_logger.removeHandler(handler)
            saved_handlers.append(handler)

    escea_logger = logging.getLogger("escea")
    prev_level = escea_logger.level
    escea_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    try:
        app = EsceaApp(fireplace, refresh_interval=refresh_interval)
        await app.run_async()
    finally:
        escea_logger.setLevel(prev_level)
        for handler in saved_handlers:
            root_logger.addHandler(handler)
