"""
systemd unit rendering.

Produces the one-shot service that runs the prune and the timer that
schedules it. Output is deterministic so re-rendering an unchanged config
yields byte-identical files.
"""

from prune_timer.command import render_prune_command
from prune_timer.config import PruneTimerConfig

GENERATED_HEADER = "# Generated by docker-prune-timer. Manual changes are overwritten on install."


def _render_sections(sections: list[tuple[str, list[tuple[str, str]]]]) -> str:
    lines = [GENERATED_HEADER]
    for name, entries in sections:
        lines.append("")
        lines.append(f"[{name}]")
        for key, value in entries:
            lines.append(f"{key}={value}")
    return "\n".join(lines) + "\n"


def render_service_unit(config: PruneTimerConfig) -> str:
    """Render the one-shot service unit that runs the prune."""
    return _render_sections(
        [
            (
                "Unit",
                [
                    ("Description", "Prune unused Docker resources"),
                    ("Documentation", "man:docker-system-prune(1)"),
                    ("Requires", "docker.service"),
                    ("After", "docker.service"),
                ],
            ),
            (
                "Service",
                [
                    ("Type", "oneshot"),
                    ("ExecStart", render_prune_command(config)),
                ],
            ),
        ]
    )


def render_timer_unit(config: PruneTimerConfig) -> str:
    """Render the timer unit that schedules the service."""
    return _render_sections(
        [
            ("Unit", [("Description", f"Run {config.service_name} on schedule")]),
            (
                "Timer",
                [
                    ("OnCalendar", config.schedule),
                    ("RandomizedDelaySec", config.randomized_delay),
                    ("Persistent", "true" if config.persistent else "false"),
                    ("Unit", config.service_name),
                ],
            ),
            ("Install", [("WantedBy", "timers.target")]),
        ]
    )


def render_units(config: PruneTimerConfig) -> dict[str, str]:
    """Render both units keyed by file name."""
    return {
        config.service_name: render_service_unit(config),
        config.timer_name: render_timer_unit(config),
    }
