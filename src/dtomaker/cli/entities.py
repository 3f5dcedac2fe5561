"""dtomaker entities command - list the Doctrine entities of a project."""

import json
from pathlib import Path

import click

from dtomaker.cli.utils import find_project_root
from dtomaker.config.loader import load_config
from dtomaker.core.errors import DtoMakerError
from dtomaker.maker.dto import DtoMaker


@click.command()
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="PHP project root (default: nearest directory with composer.json)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def entities_command(root: Path | None, as_json: bool) -> None:
    """List mapped entities a DTO can be generated from.

    Names are relative to the entity namespace, as accepted by make:dto.
    """
    project_root = root.resolve() if root else find_project_root()
    try:
        maker = DtoMaker(project_root, load_config(project_root))
        names = maker.entities()
    except DtoMakerError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(json.dumps({"root": str(project_root), "entities": names}))
        return
    if not names:
        click.echo(f"No entities found in {project_root}")
        return
    for name in names:
        click.echo(name)
