"""
Prune timer configuration.

Holds the handful of scalars that drive the rendered units and resolves them
from defaults, an optional YAML file and ``PRUNE_TIMER_*`` environment
variables.
"""

import logging
import os
import re
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from prune_timer.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("/etc/docker-prune-timer/config.yaml")
CONFIG_ENV_VAR = "PRUNE_TIMER_CONFIG"
ENV_PREFIX = "PRUNE_TIMER_"

# Top-level key the YAML document may nest its settings under
CONFIG_SECTION = "docker_prune_timer"

# Longer units first: each token is matched once, without backtracking into a shorter unit
_TIME_UNITS = (
    "usec|us|µs|msec|ms|seconds|second|sec|s|minutes|minute|min|months|month|m|"
    "hours|hour|hr|h|days|day|d|weeks|week|w|M|years|year|y"
)
TIME_SPAN_TOKEN = re.compile(rf"\s*\d+(?:\.\d+)?\s*(?:{_TIME_UNITS})?\s*")
UNIT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9:_.@\\-]+$")
# systemd splits ExecStart= on whitespace and expands %, $, quotes and backslashes
DOCKER_BINARY_PATTERN = re.compile(r'^/[^\s%$"\\]*$')


def is_time_span(value: str) -> bool:
    """Check a value against systemd's time span syntax (e.g. 30s, 1h 30min, 2h30m)."""
    pos = 0
    while pos < len(value):
        match = TIME_SPAN_TOKEN.match(value, pos)
        if not match:
            return False
        pos = match.end()
    return pos > 0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class PruneTimerConfig:
    """Settings for the prune service and its timer.

    Attributes:
        enabled: Enable and start the timer when installing
        schedule: systemd OnCalendar= expression
        randomized_delay: systemd RandomizedDelaySec= time span
        volumes: Also prune unused volumes
        until: Only prune resources older than this; empty disables the filter
        filters: Extra ``--filter`` values, passed in order
        prune_all: Remove all unused images, not just dangling ones
        persistent: Run on next boot if a scheduled run was missed
        unit_name: Base name of the .service/.timer pair
        docker_binary: Absolute path to the docker CLI
        unit_dir: Directory the unit files are written to
    """

    enabled: bool = True
    schedule: str = "daily"
    randomized_delay: str = "1h"
    volumes: bool = False
    until: str = "24h"
    filters: list[str] = field(default_factory=list)
    prune_all: bool = True
    persistent: bool = True
    unit_name: str = "docker-prune"
    docker_binary: str = "/usr/bin/docker"
    unit_dir: str = "/etc/systemd/system"

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if f.type is bool and not isinstance(value, bool):
                raise ValueError(f"{f.name} must be a boolean, got {value!r}")
            if f.type is str:
                if not isinstance(value, str):
                    raise ValueError(f"{f.name} must be a string, got {value!r}")
                _reject_newlines(f.name, value)

        if not isinstance(self.filters, list):
            raise ValueError("filters must be a list of strings")
        for entry in self.filters:
            if not isinstance(entry, str) or not entry.strip():
                raise ValueError(f"filters entries must be non-empty strings, got {entry!r}")
            _reject_newlines("filters", entry)

        if not self.schedule.strip():
            raise ValueError("schedule must not be empty")
        if not is_time_span(self.randomized_delay):
            raise ValueError(
                f"randomized_delay must be a systemd time span (e.g. 30min, 1h), "
                f"got {self.randomized_delay!r}"
            )
        if not UNIT_NAME_PATTERN.match(self.unit_name):
            raise ValueError(f"unit_name contains invalid characters: {self.unit_name!r}")
        if self.unit_name.endswith((".service", ".timer")):
            raise ValueError("unit_name must not include a .service or .timer suffix")
        if not self.docker_binary.startswith("/"):
            raise ValueError(f"docker_binary must be an absolute path, got {self.docker_binary!r}")
        if not DOCKER_BINARY_PATTERN.match(self.docker_binary):
            raise ValueError(
                f"docker_binary must not contain whitespace, %, $, quotes or backslashes, "
                f"got {self.docker_binary!r}"
            )
        if not self.unit_dir:
            raise ValueError("unit_dir must not be empty")

    @property
    def service_name(self) -> str:
        return f"{self.unit_name}.service"

    @property
    def timer_name(self) -> str:
        return f"{self.unit_name}.timer"

    def to_dict(self) -> dict[str, Any]:
        """Convert to a plain dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PruneTimerConfig":
        """Create from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = dict(data)
        if "filters" in values:
            values["filters"] = _normalize_filters(values["filters"])
        for key in ("until", "randomized_delay"):
            # YAML reads a bare `0` or `3600` as a number
            if key in values:
                if values[key] is None:
                    values[key] = ""
                elif isinstance(values[key], (int, float)) and not isinstance(values[key], bool):
                    values[key] = str(values[key])
        return cls(**values)

    def with_overrides(self, **changes: Any) -> "PruneTimerConfig":
        """Return a copy with every non-None change applied."""
        applied = {k: v for k, v in changes.items() if v is not None}
        if not applied:
            return self
        return replace(self, **applied)


def _reject_newlines(name: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValueError(f"{name} must not contain newlines")


def _normalize_filters(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ValueError(f"filters must be a string or a list of strings, got {value!r}")


def parse_bool(value: str, name: str = "value") -> bool:
    """Parse a boolean from an environment-style string."""
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be one of 1/0, true/false, yes/no, on/off, got {value!r}")


def read_config_file(path: Path | str) -> dict[str, Any]:
    """Read settings from a YAML file.

    Args:
        path: Path to the YAML document

    Returns:
        Mapping of setting name to value

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    if CONFIG_SECTION in data:
        section = data[CONFIG_SECTION] or {}
        if not isinstance(section, dict):
            raise ConfigError(f"'{CONFIG_SECTION}' in {path} must be a mapping")
        return dict(section)
    return data


def read_env(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``PRUNE_TIMER_*`` settings from an environment mapping."""
    values: dict[str, Any] = {}
    for f in fields(PruneTimerConfig):
        env_name = ENV_PREFIX + f.name.upper()
        if env_name not in env:
            continue
        raw = env[env_name]
        if f.type is bool:
            values[f.name] = parse_bool(raw, env_name)
        elif f.name == "filters":
            values[f.name] = [item.strip() for item in raw.split(",") if item.strip()]
        else:
            values[f.name] = raw
    return values


def load_config(
    path: Path | str | None = None, env: Mapping[str, str] | None = None
) -> PruneTimerConfig:
    """
    Resolve the effective configuration.

    Precedence, lowest first: defaults, YAML file, environment variables.

    Args:
        path: Explicit config file; falls back to $PRUNE_TIMER_CONFIG, then
            the system-wide file if it exists
        env: Environment mapping (defaults to os.environ)

    Returns:
        Validated PruneTimerConfig

    Raises:
        ConfigError: On unreadable files, bad values or failed validation
    """
    env = os.environ if env is None else env

    if path is None and env.get(CONFIG_ENV_VAR):
        path = env[CONFIG_ENV_VAR]

    values: dict[str, Any] = {}
    if path is not None:
        logger.debug(f"Loading config from {path}")
        values.update(read_config_file(path))
    elif DEFAULT_CONFIG_FILE.exists():
        logger.debug(f"Loading config from {DEFAULT_CONFIG_FILE}")
        values.update(read_config_file(DEFAULT_CONFIG_FILE))

    values.update(read_env(env))

    try:
        return PruneTimerConfig.from_dict(values)
    except (TypeError, ValueError) as e:
        raise ConfigError(str(e)) from e
