"""Rich console output utilities for pgtestenv-cli.

Status lines (success/error/warning) and command reports share one console
on standard output, matching where the bootstrap prints its diagnostics.
NO_COLOR is honoured, as is the global --no-color flag.
"""

from __future__ import annotations

import os
from typing import Any

from rich.console import Console

_force_no_color = os.environ.get("NO_COLOR") is not None


def create_console(no_color: bool = False) -> Console:
    """Create a Rich Console on standard output.

    Args:
        no_color: If True, disable colored output. NO_COLOR also disables it.

    Returns:
        Configured Console instance.
    """
    disabled = no_color or _force_no_color
    return Console(force_terminal=False if disabled else None, no_color=disabled)


console = create_console()


def get_console() -> Console:
    """Current module-level console (replaced by --no-color)."""
    return console


def success(message: str, **kwargs: Any) -> None:
    """Print a success message with a green check mark.

    Example:
        >>> success("Provisioned 11 steps")
        ✓ Provisioned 11 steps
    """
    console.print(f"[green]✓[/green] {message}", **kwargs)


def error(message: str, **kwargs: Any) -> None:
    """Print an error message with a red cross.

    Example:
        >>> error("Unsupported flavor")
        ✗ Unsupported flavor
    """
    console.print(f"[red]✗[/red] {message}", **kwargs)


def warning(message: str, **kwargs: Any) -> None:
    """Print a warning message with a yellow triangle."""
    console.print(f"[yellow]⚠[/yellow] {message}", **kwargs)


def info(message: str, **kwargs: Any) -> None:
    """Print an informational message."""
    console.print(message, **kwargs)


def write_raw(text: str) -> None:
    """Write text verbatim (no markup, no wrapping), e.g. for JSON output."""
    if console.file is not None:
        console.file.write(text if text.endswith("\n") else text + "\n")
    else:
        print(text)


def set_no_color(no_color: bool) -> None:
    """Replace the module-level console to enable/disable colors."""
    global console
    console = create_console(no_color=no_color)
