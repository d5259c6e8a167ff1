"""Single-writer controller loop for a fireplace.

The wire protocol has no request identifiers, so two requests in flight to
the same fireplace cannot be told apart. :class:`FireplaceController` owns a
:class:`~escea.fireplace.Fireplace` exclusively: callers submit instructions
to its queue and wait on a per-instruction future, while one loop executes
them in order and interleaves periodic status refreshes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import assert_never

from escea.const import REFRESH_INTERVAL
from escea.exceptions import ControllerStoppedError
from escea.fireplace import Fireplace
from escea.models import (
    ControllerState,
    Instruction,
    SetFanBoostInstruction,
    SetFlameEffectInstruction,
    SetPowerInstruction,
    SetTemperatureInstruction,
    Status,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class _Envelope:
    """A queued instruction and the future its submitter is waiting on."""

    instruction: Instruction
    future: asyncio.Future[None]

    def complete(self, error: BaseException | None = None) -> None:
        if self.future.done():
            # The submitter gave up waiting.
            return
        if error is None:
            self.future.set_result(None)
        else:
            self.future.set_exception(error)


class FireplaceController:
    """Serialises all access to one fireplace.

    Run :meth:`run` as a task; submit work from any other task with
    :meth:`submit` or :meth:`execute`::

        controller = FireplaceController(fireplace)
        task = asyncio.create_task(controller.run())
        await controller.execute(SetTemperatureInstruction(22))
        controller.stop()
        await task
    """

    def __init__(
        self,
        fireplace: Fireplace,
        *,
        refresh_interval: float = REFRESH_INTERVAL,
        on_status: Callable[[Status], None] | None = None,
    ) -> None:
        self.fireplace = fireplace
        self.refresh_interval = refresh_interval
        self._on_status = on_status
        self._queue: asyncio.Queue[_Envelope] = asyncio.Queue()
        self._state = ControllerState.IDLE
        self._started = False
        self._stop_requested = asyncio.Event()
        self._refresh_requested = asyncio.Event()
        self._current: _Envelope | None = None

    @property
    def state(self) -> ControllerState:
        """Return the current lifecycle state."""
        return self._state

    @property
    def accepting(self) -> bool:
        """Return True while new instructions will be queued."""
        return not self._stop_requested.is_set() and self._state in (
            ControllerState.IDLE,
            ControllerState.RUNNING,
        )

    # ------------------------------------------------------------------
    # Submission side
    # ------------------------------------------------------------------

    def submit(self, instruction: Instruction) -> asyncio.Future[None]:
        """Queue *instruction* and return the future that reports its outcome.

        The future resolves to ``None`` on success or raises the error the
        fireplace operation failed with. Once the controller is stopping,
        the returned future fails immediately with
        :class:`ControllerStoppedError`.
        """
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        if not self.accepting:
            future.set_exception(
                ControllerStoppedError(f"Controller for {self.fireplace} is stopped")
            )
            return future

        self._queue.put_nowait(_Envelope(instruction, future))
        _LOGGER.debug("Queued %s (%d pending)", instruction, self._queue.qsize())
        return future

    async def execute(self, instruction: Instruction) -> None:
        """Submit *instruction* and wait for it to complete."""
        await self.submit(instruction)

    def request_refresh(self) -> None:
        """Ask the loop to refresh the status on its next iteration."""
        self._refresh_requested.set()

    def stop(self) -> None:
        """Stop accepting instructions and let the loop wind down.

        The instruction being executed, if any, finishes; queued ones are
        rejected with :class:`ControllerStoppedError`.
        """
        if self._state is ControllerState.STOPPED:
            return
        self._stop_requested.set()
        if not self._started:
            self._reject_pending()
            self._state = ControllerState.STOPPED
            return
        self._state = ControllerState.DRAINING

    # ------------------------------------------------------------------
    # Loop side
    # ------------------------------------------------------------------

    async def run(self) -> None:
        """Run the controller loop until :meth:`stop` or cancellation."""
        if self._started or self._state is ControllerState.STOPPED:
            msg = "Controller has already been started or stopped"
            raise RuntimeError(msg)
        self._started = True

        loop = asyncio.get_running_loop()
        getter: asyncio.Future[_Envelope] | None = None
        stopper = asyncio.ensure_future(self._stop_requested.wait())
        refresher: asyncio.Future[bool] | None = None

        _LOGGER.info("Starting controller for %s", self.fireplace)
        try:
            await self._refresh()
            if not self._stop_requested.is_set():
                self._state = ControllerState.RUNNING
            next_refresh = loop.time() + self.refresh_interval

            while not self._stop_requested.is_set():
                if getter is None:
                    getter = asyncio.ensure_future(self._queue.get())
                if refresher is None:
                    refresher = asyncio.ensure_future(self._refresh_requested.wait())

                delay = max(0.0, next_refresh - loop.time())
                done, _ = await asyncio.wait(
                    {getter, stopper, refresher},
                    timeout=delay,
                    return_when=asyncio.FIRST_COMPLETED,
                )

                if stopper in done:
                    break

                if getter in done:
                    envelope = getter.result()
                    getter = None
                    await self._execute(envelope)
                elif refresher in done or loop.time() >= next_refresh:
                    if refresher in done:
                        refresher = None
                        self._refresh_requested.clear()
                    await self._refresh()
                    next_refresh = loop.time() + self.refresh_interval
        finally:
            self._state = ControllerState.DRAINING
            self._stop_requested.set()
            for waiter in (stopper, refresher):
                if waiter is not None:
                    waiter.cancel()
            if getter is not None:
                if getter.done() and not getter.cancelled():
                    getter.result().complete(self._stopped_error())
                else:
                    getter.cancel()
            if self._current is not None:
                self._current.complete(self._stopped_error())
                self._current = None
            self._reject_pending()
            self._state = ControllerState.STOPPED
            _LOGGER.info("Stopped controller for %s", self.fireplace)

    async def _execute(self, envelope: _Envelope) -> None:
        """Run one instruction and report its outcome on its future."""
        _LOGGER.debug("Executing %s", envelope.instruction)
        self._current = envelope
        error: Exception | None = None
        try:
            await self._apply(envelope.instruction)
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("%s failed: %s", envelope.instruction, exc)
            error = exc
        self._current = None
        envelope.complete(error)

    async def _apply(self, instruction: Instruction) -> None:
        fireplace = self.fireplace
        match instruction:
            case SetTemperatureInstruction(temperature=temperature):
                await fireplace.set_temperature(temperature)
            case SetPowerInstruction(on=on):
                await fireplace.set_power(on)
            case SetFanBoostInstruction(on=on):
                await fireplace.set_fan_boost(on)
            case SetFlameEffectInstruction(on=on):
                await fireplace.set_flame_effect(on)
            case _:
                assert_never(instruction)

    async def _refresh(self) -> None:
        """Refresh the fireplace status, logging rather than raising errors."""
        try:
            status = await self.fireplace.refresh()
        except Exception as exc:  # noqa: BLE001
            _LOGGER.warning("Failed to refresh %s: %s", self.fireplace, exc)
            return

        _LOGGER.info(
            "Refreshed %s: %s, target %d°C, room %d°C",
            self.fireplace,
            "on" if status.is_on else "off",
            status.target_temperature,
            status.current_temperature,
        )
        if self._on_status is not None:
            try:
                self._on_status(status)
            except Exception:
                _LOGGER.exception("Status callback failed")

    def _stopped_error(self) -> ControllerStoppedError:
        return ControllerStoppedError(f"Controller for {self.fireplace} stopped")

    def _reject_pending(self) -> None:
        while True:
            try:
                envelope = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            envelope.complete(self._stopped_error())
