"""
Command line front end for tegrasettings.

Plays the part of the settings UI: lists displays and modes, stores mode
choices, and flips the panel and fan controls.
"""

import argparse
import logging
import sys
from typing import List, Optional

from tegrasettings.core.config import Config, load_config
from tegrasettings.core.errors import ServiceUnavailable
from tegrasettings.display.service import DisplaySettingsService, create_display_service
from tegrasettings.platform.controls import DeviceControls
from tegrasettings.platform.hal import HardwareAbstractionLayer

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tegrasettings", description="Tegra device settings")
    parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
        default=None
    )
    parser.add_argument(
        "-v", "--verbose",
        help="Enable verbose logging",
        action="store_true"
    )
    parser.add_argument(
        "--debug",
        help="Enable debug logging",
        action="store_true"
    )

    sub = parser.add_subparsers(dest="command", required=True)

    panel = sub.add_parser("panel", help="Power the internal panel on or off")
    panel.add_argument("state", choices=["on", "off"])

    color = sub.add_parser("color-mode", help="Show or set the OLED panel color mode")
    color.add_argument("mode", nargs="?", default=None)

    fan = sub.add_parser("fan", help="Set the fan profile")
    fan.add_argument("profile")

    sub.add_parser("displays", help="List connected displays")

    modes = sub.add_parser("modes", help="List the modes of a display")
    modes.add_argument("connector", type=int)

    set_mode = sub.add_parser("set-mode", help="Apply (and optionally store) a display mode")
    set_mode.add_argument("connector", type=int)
    set_mode.add_argument("index", type=int, nargs="?", default=None)

    sub.add_parser("refresh", help="Re-apply stored modes on all displays")

    return parser


def _run_display_command(args: argparse.Namespace, service: DisplaySettingsService) -> int:
    if args.command == "displays":
        for entry in service.list_displays():
            print(f"{entry.connector}: {entry.label} (uid {entry.uid}, mode {entry.mode_index})")
        return 0

    if args.command == "modes":
        try:
            entries = service.list_modes(args.connector)
        except ServiceUnavailable as e:
            logger.error(f"Failed to list modes: {e}")
            return 1
        for entry in entries:
            print(f"{entry.index}: {entry.description} {entry.color}")
        return 0

    if args.command == "set-mode":
        if args.index is None:
            ok = service.set_display_mode(args.connector)
        else:
            ok = service.select_mode(args.connector, args.index)
        return 0 if ok else 1

    if args.command == "refresh":
        results = service.refresh_all()
        return 0 if all(results.values()) else 1

    raise ValueError(f"Unknown command: {args.command}")


def _run_control_command(args: argparse.Namespace, controls: DeviceControls) -> int:
    if args.command == "panel":
        ok = controls.set_internal_display_state(args.state == "on")
    elif args.command == "color-mode":
        if args.mode is None:
            print(controls.get_panel_color_mode().rstrip("\x00"))
            return 0
        ok = controls.set_panel_color_mode(args.mode)
    elif args.command == "fan":
        ok = controls.set_fan_profile(args.profile)
    else:
        raise ValueError(f"Unknown command: {args.command}")
    return 0 if ok else 1


def run(args: argparse.Namespace, config: Config) -> int:
    """Execute a parsed command against the configured hardware."""
    hal = HardwareAbstractionLayer(config)

    if args.command in ("panel", "color-mode", "fan"):
        return _run_control_command(args, DeviceControls(hal.controls, config.controls))

    return _run_display_command(args, create_display_service(config, hal))


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the tegrasettings command."""
    args = build_parser().parse_args(argv)

    # Setup logging
    log_level = logging.DEBUG if args.debug else (logging.INFO if args.verbose else logging.WARNING)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    try:
        sys.exit(run(args, load_config(args.config)))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except ValueError as e:
        logger.error(f"tegrasettings failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
