"""Rendering of the `docker system prune` command run by the service unit."""

from prune_timer.config import PruneTimerConfig


def _base_args(config: PruneTimerConfig) -> list[str]:
    args = [config.docker_binary, "system", "prune", "--force"]
    if config.prune_all:
        args.append("--all")
    if config.volumes:
        args.append("--volumes")
    return args


def prune_filters(config: PruneTimerConfig) -> list[str]:
    """Filter values in order: the until filter first, then each custom filter."""
    filters = []
    if config.until:
        filters.append(f"until={config.until}")
    filters.extend(config.filters)
    return filters


def build_prune_args(config: PruneTimerConfig) -> list[str]:
    """Build the prune command as an argument list.

    Flags are appended in a fixed order: --all, --volumes, the until filter,
    then each custom filter in the order configured.
    """
    args = _base_args(config)
    for value in prune_filters(config):
        args.extend(["--filter", value])
    return args


def quote_exec_arg(value: str) -> str:
    """Quote one argument for a systemd ExecStart= command line.

    The value is kept verbatim inside double quotes. Backslashes and quotes
    are escaped, and % and $ are doubled so systemd does not expand them as
    specifiers or environment variables.
    """
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("%", "%%").replace("$", "$$")
    return f'"{escaped}"'


def render_prune_command(config: PruneTimerConfig) -> str:
    """Render the prune command as a single ExecStart= command line."""
    rendered = _base_args(config)
    for value in prune_filters(config):
        rendered.extend(["--filter", quote_exec_arg(value)])
    return " ".join(rendered)
