"""dtomaker CLI - dtomaker command."""

import click

from dtomaker.cli.entities import entities_command
from dtomaker.cli.make_dto import make_dto_command
from dtomaker.core.logging import configure_logging


@click.group()
@click.version_option(version="0.1.0", prog_name="dtomaker")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """dtomaker - Generate data transfer objects from Doctrine entities."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(level="DEBUG" if verbose else "WARNING")


cli.add_command(make_dto_command, name="make:dto")
cli.add_command(entities_command, name="entities")


if __name__ == "__main__":
    cli()
