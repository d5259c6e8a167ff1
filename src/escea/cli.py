"""Command-line interface for escea."""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys

from escea.const import DISCOVERY_TIMEOUT, REFRESH_INTERVAL
from escea.controller import FireplaceController
from escea.exceptions import EsceaError
from escea.fireplace import Fireplace, open_fireplace
from escea.models import DiscoveredFireplace, Status
from escea.transport import discover

_LOGGER = logging.getLogger(__name__)


def _on_off(value: bool) -> str:
    """Format a boolean flag for display."""
    return "On" if value else "Off"


def _display_status(address: str, status: Status) -> None:
    """Print a fireplace status in human-readable form."""
    print(f"Fireplace: {address}")
    print(f"  {'─' * 40}")
    print(f"    Fire Status:         {_on_off(status.is_on)}")
    print(f"    Flame Effect:        {_on_off(status.flame_effect_is_on)}")
    print(f"    Fan Boost:           {_on_off(status.fan_boost_is_on)}")
    print(f"    Timers:              {'Set' if status.has_timers else 'None'}")
    print(f"    Desired Temperature: {status.target_temperature}°C")
    print(f"    Room Temperature:    {status.current_temperature}°C")


def _matches(
    found: DiscoveredFireplace, serial: int | None, pin: int | None
) -> bool:
    """Return True if *found* matches the optional serial and PIN filters."""
    if serial is not None and found.identity.serial != serial:
        return False
    return pin is None or found.identity.pin == pin


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def cmd_search(timeout: float) -> None:
    """Search the local network for fireplaces."""
    print(f"Searching for fireplaces ({timeout:g}s)...")
    found = await discover(timeout)
    if not found:
        print("No fireplaces found.")
        return
    print(f"Found {len(found)} fireplace(s):\n")
    for item in found:
        identity = item.identity
        print(f"  {item.address:<16} serial={identity.serial} pin={identity.pin}")


async def cmd_status(fireplace: Fireplace) -> None:
    """Display the current status of a fireplace."""
    status = await fireplace.refresh()
    _display_status(fireplace.address, status)


async def cmd_power(fireplace: Fireplace, on: bool) -> None:
    """Turn a fireplace on or off."""
    await fireplace.set_power(on)
    print(f"Fireplace {fireplace.address} powered {'on' if on else 'off'}.")


async def cmd_set_temp(fireplace: Fireplace, temperature: int) -> None:
    """Set the target temperature of a fireplace."""
    await fireplace.set_temperature(temperature)
    print(f"Temperature set to {temperature}°C.")


async def cmd_fan_boost(fireplace: Fireplace, on: bool) -> None:
    """Switch fan boost on or off."""
    await fireplace.set_fan_boost(on)
    print(f"Fan boost {'on' if on else 'off'}.")


async def cmd_flame_effect(fireplace: Fireplace, on: bool) -> None:
    """Switch the flame effect on or off."""
    await fireplace.set_flame_effect(on)
    print(f"Flame effect {'on' if on else 'off'}.")


async def cmd_monitor(
    *,
    serial: int | None,
    pin: int | None,
    interval: float,
    timeout: float,
) -> None:
    """Discover fireplaces and run a controller for each until interrupted."""
    found = await discover(timeout)
    _LOGGER.info("Completed fireplace search, found %d", len(found))

    controllers: list[FireplaceController] = []
    for item in found:
        if not _matches(item, serial, pin):
            _LOGGER.info("Skipping fireplace %d", item.identity.serial)
            continue
        controllers.append(
            FireplaceController(
                Fireplace.from_discovery(item), refresh_interval=interval
            )
        )

    if not controllers:
        print("Error: no matching fireplaces found.")
        sys.exit(1)

    loop = asyncio.get_running_loop()

    def _shutdown() -> None:
        _LOGGER.info("Interrupt signal received")
        for controller in controllers:
            controller.stop()

    signals = (signal.SIGINT, signal.SIGTERM)
    for sig in signals:
        loop.add_signal_handler(sig, _shutdown)
    try:
        async with asyncio.TaskGroup() as group:
            for controller in controllers:
                group.create_task(controller.run())
    finally:
        for sig in signals:
            loop.remove_signal_handler(sig)


async def cmd_tui(
    fireplace: Fireplace, interval: float, *, verbose: bool = False
) -> None:
    """Launch the TUI, showing install message if missing."""
    try:
        from escea.tui import run_tui
    except ImportError:
        print("The TUI requires the 'tui' extra. Install with:")
        print("  pip install escea-fireplace[tui]")
        sys.exit(1)
    await run_tui(fireplace, refresh_interval=interval, verbose=verbose)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_ip(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--ip", required=True, help="IP address of the fireplace")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argparse parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="escea",
        description="Remote control for Escea fireplaces",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # search
    sp_search = subparsers.add_parser(
        "search", help="Search for fireplaces on the network"
    )
    sp_search.add_argument(
        "--timeout",
        type=float,
        default=DISCOVERY_TIMEOUT,
        help="Seconds to wait for replies",
    )

    # status / on / off
    _add_ip(subparsers.add_parser("status", help="Get the status of a fireplace"))
    _add_ip(subparsers.add_parser("on", help="Power on the fireplace"))
    _add_ip(subparsers.add_parser("off", help="Power off the fireplace"))

    # set-temp
    sp_temp = subparsers.add_parser(
        "set-temp", help="Set the temperature of the fireplace"
    )
    _add_ip(sp_temp)
    sp_temp.add_argument("--temp", type=int, required=True, help="Temperature to set")

    # fan-boost / flame-effect
    sp_fan = subparsers.add_parser("fan-boost", help="Switch fan boost on or off")
    _add_ip(sp_fan)
    sp_fan.add_argument("state", choices=("on", "off"))

    sp_flame = subparsers.add_parser(
        "flame-effect", help="Switch the flame effect on or off"
    )
    _add_ip(sp_flame)
    sp_flame.add_argument("state", choices=("on", "off"))

    # monitor
    sp_monitor = subparsers.add_parser(
        "monitor", help="Discover fireplaces and keep their status refreshed"
    )
    sp_monitor.add_argument("--serial", type=int, help="Only control this serial")
    sp_monitor.add_argument("--pin", type=int, help="Only control this PIN")
    sp_monitor.add_argument(
        "--interval",
        type=float,
        default=REFRESH_INTERVAL,
        help="Seconds between status refreshes",
    )
    sp_monitor.add_argument(
        "--timeout",
        type=float,
        default=DISCOVERY_TIMEOUT,
        help="Seconds to wait for discovery replies",
    )

    # tui
    sp_tui = subparsers.add_parser("tui", help="Launch the interactive TUI")
    _add_ip(sp_tui)
    sp_tui.add_argument(
        "--interval",
        type=float,
        default=REFRESH_INTERVAL,
        help="Seconds between status refreshes",
    )

    return parser


# ---------------------------------------------------------------------------
# Async entry point
# ---------------------------------------------------------------------------


async def async_main(args: argparse.Namespace) -> None:
    """Run the appropriate subcommand."""
    if args.command == "search":
        await cmd_search(args.timeout)
        return
    if args.command == "monitor":
        await cmd_monitor(
            serial=args.serial,
            pin=args.pin,
            interval=args.interval,
            timeout=args.timeout,
        )
        return

    fireplace = open_fireplace(str(args.ip))
    if args.command == "status":
        await cmd_status(fireplace)
    elif args.command == "on":
        await cmd_power(fireplace, True)
    elif args.command == "off":
        await cmd_power(fireplace, False)
    elif args.command == "set-temp":
        await cmd_set_temp(fireplace, int(args.temp))
    elif args.command == "fan-boost":
        await cmd_fan_boost(fireplace, args.state == "on")
    elif args.command == "flame-effect":
        await cmd_flame_effect(fireplace, args.state == "on")
    elif args.command == "tui":
        await cmd_tui(fireplace, args.interval, verbose=args.verbose)


# ---------------------------------------------------------------------------
# Synchronous entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Entry point for the escea CLI."""
    parser = build_parser()
    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        level = logging.DEBUG
    elif args.command == "monitor":
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level)

    try:
        asyncio.run(async_main(args))
    except EsceaError as exc:
        print(f"Error: {exc}")
        sys.exit(1)
