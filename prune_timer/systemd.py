"""
systemd provisioning for the prune timer.

Writes the rendered units into the unit directory and drives systemctl to
reload, enable or disable the timer. Scheduling itself is left to systemd.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from prune_timer.config import PruneTimerConfig
from prune_timer.exceptions import SystemctlError
from prune_timer.units import render_units

logger = logging.getLogger(__name__)

SYSTEMCTL_TIMEOUT = 60
UNKNOWN = "unknown"


@dataclass
class ProvisionResult:
    """Outcome of an install or uninstall."""

    changed_files: list[str] = field(default_factory=list)
    removed_files: list[str] = field(default_factory=list)
    commands: list[list[str]] = field(default_factory=list)
    enabled: bool | None = None
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.changed_files or self.removed_files)


@dataclass
class TimerStatus:
    """Observed state of the timer unit."""

    timer: str
    installed: bool
    enabled: str = UNKNOWN
    active: str = UNKNOWN
    next_run: str | None = None


class SystemdManager:
    """Installs, removes and inspects the prune service/timer pair."""

    def __init__(
        self,
        unit_dir: Path | str | None = None,
        systemctl: str = "systemctl",
        dry_run: bool = False,
    ):
        """
        Args:
            unit_dir: Overrides the unit directory from the config
            systemctl: systemctl binary name or path
            dry_run: Log what would happen without touching the system
        """
        self.unit_dir = Path(unit_dir) if unit_dir is not None else None
        self.systemctl = systemctl
        self.dry_run = dry_run

    def _unit_dir(self, config: PruneTimerConfig) -> Path:
        return self.unit_dir if self.unit_dir is not None else Path(config.unit_dir)

    def unit_paths(self, config: PruneTimerConfig) -> dict[str, Path]:
        """Paths of the service and timer files, keyed by unit name."""
        unit_dir = self._unit_dir(config)
        return {
            config.service_name: unit_dir / config.service_name,
            config.timer_name: unit_dir / config.timer_name,
        }

    def _systemctl_binary(self, command: list[str]) -> str:
        binary = shutil.which(self.systemctl)
        if not binary:
            raise SystemctlError(command, stderr=f"{self.systemctl} not found in PATH")
        return binary

    def _run(self, args: list[str], result: ProvisionResult | None = None) -> None:
        """Run a state-changing systemctl command, honouring dry-run."""
        command = [self.systemctl, *args]
        if result is not None:
            result.commands.append(command)

        if self.dry_run:
            logger.info(f"[dry-run] Would run: {' '.join(command)}")
            return

        binary = self._systemctl_binary(command)
        logger.debug(f"Running: {' '.join(command)}")
        try:
            subprocess.run(
                [binary, *args],
                check=True,
                capture_output=True,
                text=True,
                timeout=SYSTEMCTL_TIMEOUT,
            )
        except subprocess.CalledProcessError as e:
            raise SystemctlError(command, e.returncode, e.stderr or "") from e
        except subprocess.TimeoutExpired as e:
            raise SystemctlError(command, stderr=f"timed out after {SYSTEMCTL_TIMEOUT}s") from e

    def _query(self, args: list[str]) -> str:
        """Run a read-only systemctl query and return its stdout.

        Query commands such as is-enabled exit non-zero for a disabled or
        inactive unit, so the exit code is not treated as an error.
        """
        binary = shutil.which(self.systemctl)
        if not binary:
            return UNKNOWN
        try:
            proc = subprocess.run(
                [binary, *args],
                check=False,
                capture_output=True,
                text=True,
                timeout=SYSTEMCTL_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"{self.systemctl} {' '.join(args)} timed out")
            return UNKNOWN
        return proc.stdout.strip() or UNKNOWN

    def _write_unit(self, path: Path, content: str, result: ProvisionResult) -> None:
        if path.exists() and path.read_text(encoding="utf-8") == content:
            logger.debug(f"{path} is up to date")
            return

        result.changed_files.append(str(path))
        if self.dry_run:
            logger.info(f"[dry-run] Would write {path}")
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        path.chmod(0o644)
        logger.info(f"Wrote {path}")

    def install(self, config: PruneTimerConfig) -> ProvisionResult:
        """
        Write both units and bring the timer into the configured state.

        The timer ends up enabled and started iff config.enabled is true.

        Returns:
            ProvisionResult listing changed files and systemctl commands

        Raises:
            SystemctlError: If systemctl fails or is missing
            PermissionError: If the unit directory is not writable
        """
        result = ProvisionResult(dry_run=self.dry_run)
        paths = self.unit_paths(config)

        for name, content in render_units(config).items():
            self._write_unit(paths[name], content, result)

        if result.changed:
            self._run(["daemon-reload"], result)

        if config.enabled:
            self._run(["enable", "--now", config.timer_name], result)
        else:
            self._run(["disable", "--now", config.timer_name], result)
        result.enabled = config.enabled

        return result

    def uninstall(self, config: PruneTimerConfig) -> ProvisionResult:
        """Disable the timer and remove both unit files."""
        result = ProvisionResult(dry_run=self.dry_run)
        paths = self.unit_paths(config)

        if paths[config.timer_name].exists():
            self._run(["disable", "--now", config.timer_name], result)
        else:
            logger.debug(f"{config.timer_name} not installed, skipping disable")

        for path in paths.values():
            if not path.exists():
                continue
            result.removed_files.append(str(path))
            if self.dry_run:
                logger.info(f"[dry-run] Would remove {path}")
            else:
                path.unlink()
                logger.info(f"Removed {path}")

        if result.changed:
            self._run(["daemon-reload"], result)
        result.enabled = False

        return result

    def status(self, config: PruneTimerConfig) -> TimerStatus:
        """Report whether the timer is installed, enabled and active."""
        paths = self.unit_paths(config)
        status = TimerStatus(
            timer=config.timer_name,
            installed=all(path.exists() for path in paths.values()),
        )

        status.enabled = self._query(["is-enabled", config.timer_name])
        status.active = self._query(["is-active", config.timer_name])

        next_run = self._query(
            ["show", config.timer_name, "--property=NextElapseUSecRealtime", "--value"]
        )
        if next_run != UNKNOWN:
            status.next_run = next_run

        return status

    def run_now(self, config: PruneTimerConfig) -> ProvisionResult:
        """Trigger one prune immediately through the service unit."""
        result = ProvisionResult(dry_run=self.dry_run)
        self._run(["start", config.service_name], result)
        return result
