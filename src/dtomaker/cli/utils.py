"""CLI utilities."""

from pathlib import Path

import click


def find_project_root(start_path: Path | None = None) -> Path:
    """Find the PHP project root from the given path.

    Walks up the directory tree looking for a composer.json file.
    If start_path is None, uses the current working directory.

    Args:
        start_path: Starting directory to search from

    Returns:
        Path to project root

    Raises:
        click.ClickException: If no composer.json is found
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()

    while current != current.parent:
        if (current / "composer.json").is_file():
            return current
        current = current.parent

    if (current / "composer.json").is_file():
        return current

    raise click.ClickException(
        f"Not inside a Composer project: {start_path}\n"
        "Run dtomaker from a directory below composer.json, or pass --root."
    )
