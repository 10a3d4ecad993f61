"""Output utilities for the docker-prune-timer CLI.

Provides print helpers for status, error, and success messages.
"""

from rich.console import Console
from rich.syntax import Syntax

console = Console()
error_console = Console(stderr=True)


def _print_status(emoji: str, message: str) -> None:
    """Print a status message with emoji."""
    console.print(f"{emoji} {message}")


def _print_error(message: str) -> None:
    """Print an error message."""
    error_console.print(f"[red]✗[/red] {message}")


def _print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def _print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow]  {message}")


def _print_unit(name: str, content: str) -> None:
    """Print a unit file with INI highlighting under a rule."""
    console.rule(name)
    console.print(Syntax(content, "ini", theme="monokai", line_numbers=False))


def _debug(message: str, verbose: bool = False) -> None:
    """Print debug message if verbose mode is enabled."""
    if verbose:
        console.print(f"[dim]↳ {message}[/dim]")
