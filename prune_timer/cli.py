import argparse
import logging
import sys
from pathlib import Path

import yaml
from dotenv import load_dotenv
from rich.table import Table

from prune_timer import __version__
from prune_timer.command import render_prune_command
from prune_timer.config import PruneTimerConfig, load_config
from prune_timer.exceptions import SystemctlError
from prune_timer.output import (
    _debug,
    _print_error,
    _print_status,
    _print_success,
    _print_unit,
    _print_warning,
    console,
)
from prune_timer.systemd import ProvisionResult, SystemdManager
from prune_timer.units import render_units

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2


class PruneTimerCLI:
    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def _manager(self, args: argparse.Namespace) -> SystemdManager:
        return SystemdManager(dry_run=getattr(args, "dry_run", False))

    def render(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        """Print both unit files, or write them to --output-dir."""
        units = render_units(config)

        output_dir = getattr(args, "output_dir", None)
        if output_dir:
            target = Path(output_dir)
            target.mkdir(parents=True, exist_ok=True)
            for name, content in units.items():
                (target / name).write_text(content, encoding="utf-8")
                _print_success(f"Wrote {target / name}")
            return EXIT_OK

        for name, content in units.items():
            _print_unit(name, content)
        return EXIT_OK

    def command(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        """Print the rendered prune command line."""
        print(render_prune_command(config))
        return EXIT_OK

    def show_config(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        """Print the resolved configuration as YAML."""
        print(yaml.safe_dump(config.to_dict(), sort_keys=False), end="")
        return EXIT_OK

    def install(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        manager = self._manager(args)
        result = manager.install(config)
        self._report(result)

        state = "enabled" if config.enabled else "disabled"
        if result.dry_run:
            _print_status("🔍", f"Dry run: {config.timer_name} would be {state}")
        else:
            _print_success(f"{config.timer_name} installed and {state}")
        return EXIT_OK

    def uninstall(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        manager = self._manager(args)
        result = manager.uninstall(config)
        self._report(result)

        if not result.changed:
            _print_warning(f"{config.timer_name} is not installed")
        elif result.dry_run:
            _print_status("🔍", f"Dry run: {config.timer_name} would be removed")
        else:
            _print_success(f"{config.timer_name} removed")
        return EXIT_OK

    def status(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        status = SystemdManager().status(config)

        table = Table(title=status.timer, show_header=False)
        table.add_column("Property", style="cyan")
        table.add_column("Value")
        table.add_row("Installed", "yes" if status.installed else "no")
        table.add_row("Enabled", status.enabled)
        table.add_row("Active", status.active)
        table.add_row("Next run", status.next_run or "-")
        table.add_row("Schedule", config.schedule)
        table.add_row("Command", render_prune_command(config))
        console.print(table)
        return EXIT_OK

    def run(self, config: PruneTimerConfig, args: argparse.Namespace) -> int:
        """Trigger one prune now through the service unit."""
        manager = self._manager(args)
        result = manager.run_now(config)
        self._report(result)
        if not result.dry_run:
            _print_success(f"Started {config.service_name}")
        return EXIT_OK

    def _report(self, result: ProvisionResult) -> None:
        verb = "Would change" if result.dry_run else "Changed"
        for path in result.changed_files:
            _print_status("📝", f"{verb} {path}")
        verb = "Would remove" if result.dry_run else "Removed"
        for path in result.removed_files:
            _print_status("🗑️ ", f"{verb} {path}")
        for command in result.commands:
            _debug(" ".join(command), self.verbose or result.dry_run)


def _add_override_arguments(parser: argparse.ArgumentParser) -> None:
    """Flags that override the file/environment configuration."""
    group = parser.add_argument_group("configuration overrides")
    group.add_argument("--schedule", help="systemd OnCalendar= expression (e.g. daily, Sun 03:00)")
    group.add_argument(
        "--randomized-delay",
        dest="randomized_delay",
        help="systemd RandomizedDelaySec= time span (e.g. 1h, 30min)",
    )
    group.add_argument(
        "--volumes",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also prune unused volumes",
    )
    group.add_argument("--until", help="Only prune resources older than this (empty to disable)")
    group.add_argument(
        "--filter",
        dest="filters",
        action="append",
        metavar="FILTER",
        help="Extra prune filter, repeatable (replaces configured filters)",
    )
    group.add_argument(
        "--no-filters",
        dest="filters",
        action="store_const",
        const=[],
        help="Clear the configured filters (later --filter flags still apply)",
    )
    group.add_argument(
        "--all",
        dest="prune_all",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Remove all unused images, not just dangling ones",
    )
    group.add_argument(
        "--persistent",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Catch up on runs missed while the host was off",
    )
    toggle = parser.add_mutually_exclusive_group()
    toggle.add_argument(
        "--enable", dest="enabled", action="store_const", const=True, default=None,
        help="Enable and start the timer",
    )
    toggle.add_argument(
        "--disable", dest="enabled", action="store_const", const=False,
        help="Install the units but leave the timer disabled",
    )
    group.add_argument("--unit-name", dest="unit_name", help="Base name of the unit files")
    group.add_argument("--unit-dir", dest="unit_dir", help="Directory to write unit files to")
    group.add_argument("--docker-binary", dest="docker_binary", help="Absolute path to docker")


OVERRIDE_KEYS = (
    "schedule",
    "randomized_delay",
    "volumes",
    "until",
    "filters",
    "prune_all",
    "persistent",
    "enabled",
    "unit_name",
    "unit_dir",
    "docker_binary",
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-prune-timer",
        description="Schedule `docker system prune` with a systemd timer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  docker-prune-timer render                         # Preview both unit files
  docker-prune-timer command --volumes --until 72h  # Show the prune command line
  docker-prune-timer install --dry-run              # Show what install would do
  docker-prune-timer install --schedule "Sun 03:00" # Weekly prune on Sunday night
  docker-prune-timer status

Environment Variables:
  PRUNE_TIMER_CONFIG   Path to a YAML config file
  PRUNE_TIMER_<KEY>    Override any setting (e.g. PRUNE_TIMER_VOLUMES=true)
        """,
    )
    parser.add_argument("--version", "-V", action="version", version=f"docker-prune-timer {__version__}")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show detailed output")
    parser.add_argument("--config", "-c", help="Path to a YAML config file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    overrides = argparse.ArgumentParser(add_help=False)
    _add_override_arguments(overrides)

    render_parser = subparsers.add_parser("render", parents=[overrides], help="Print the unit files")
    render_parser.add_argument("--output-dir", "-o", help="Write the unit files to this directory instead")

    subparsers.add_parser("command", parents=[overrides], help="Print the prune command line")
    subparsers.add_parser("config", parents=[overrides], help="Show the resolved configuration")

    install_parser = subparsers.add_parser(
        "install", parents=[overrides], help="Install the units and enable the timer"
    )
    install_parser.add_argument("--dry-run", action="store_true", help="Show changes without applying them")

    uninstall_parser = subparsers.add_parser(
        "uninstall", parents=[overrides], help="Disable the timer and remove the units"
    )
    uninstall_parser.add_argument("--dry-run", action="store_true", help="Show changes without applying them")

    subparsers.add_parser("status", parents=[overrides], help="Show timer state and next run")

    run_parser = subparsers.add_parser("run", parents=[overrides], help="Run one prune now")
    run_parser.add_argument("--dry-run", action="store_true", help="Show the command without running it")

    return parser


def main(argv: list[str] | None = None) -> int:
    # .env values must be in place before the config reads the environment
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        config = load_config(args.config)
        config = config.with_overrides(**{key: getattr(args, key, None) for key in OVERRIDE_KEYS})
    except ValueError as e:
        _print_error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    logger.debug(f"Resolved configuration: {config}")

    cli = PruneTimerCLI(verbose=args.verbose)
    commands = {
        "render": cli.render,
        "command": cli.command,
        "config": cli.show_config,
        "install": cli.install,
        "uninstall": cli.uninstall,
        "status": cli.status,
        "run": cli.run,
    }

    try:
        return commands[args.command](config, args)
    except SystemctlError as e:
        _print_error(str(e))
        return EXIT_FAILURE
    except PermissionError as e:
        _print_error(f"Permission denied: {e.filename or e}. Try running with sudo.")
        return EXIT_FAILURE
    except OSError as e:
        _print_error(str(e))
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
