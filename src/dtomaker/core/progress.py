"""User-facing console output for CLI commands.

Design principles:
- One consolidated report per run; advisories are never interleaved with work
- Single line messages, no spam
- Graceful degradation in non-TTY (CI, pipes)

Usage::

    from dtomaker.core.progress import status, note

    status("Created: src/Dto/TaskData.php", style="success")  # ✓ Created: ...
    note(["The maker imported assertion annotations."])     # ! [NOTE] ...
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape

if TYPE_CHECKING:
    from structlog.stdlib import BoundLogger

# Console for the run summary (standard output)
_console = Console()

# Style prefixes
_STYLES = {
    "success": "[green]✓[/green] ",
    "error": "[red]✗[/red] ",
    "warning": "[yellow]![/yellow] ",
    "info": "  ",
    "none": "",
}


def _get_logger() -> BoundLogger:
    """Get logger lazily to respect runtime config."""
    from dtomaker.core.logging import get_logger

    return get_logger("progress")


def get_console() -> Console:
    """Get the shared Rich console instance."""
    return _console


def status(message: str, *, style: str = "info", indent: int = 0) -> None:
    """Print a styled status message."""
    prefix = _STYLES.get(style, "")
    padding = " " * indent
    _console.print(f"{padding}{prefix}{escape(message)}", highlight=False, soft_wrap=True)

    _get_logger().debug("status", message=message, style=style)


def note(lines: Sequence[str]) -> None:
    """Print a note block, one bullet per line after the first."""
    if not lines:
        return
    _console.print()
    first, *rest = lines
    _console.print(f" [yellow]{escape('! [NOTE]')}[/yellow] {escape(first)}", highlight=False, soft_wrap=True)
    for line in rest:
        _console.print(f"          {escape(line)}", highlight=False, soft_wrap=True)


def success(message: str = "Success!") -> None:
    """Print the success banner shown after files were written."""
    _console.print()
    _console.print(f" [bold green]{escape(message)}[/bold green]", highlight=False)
    _console.print()


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """Return grammatically correct singular/plural form.

    Args:
        count: The number of items
        singular: Singular form (e.g., "property")
        plural: Plural form (default: singular + "s")

    Returns:
        Formatted string like "1 method" or "3 methods"
    """
    if plural is None:
        plural = singular + "s"
    word = singular if count == 1 else plural
    return f"{count} {word}"
