"""dtomaker make:dto command - generate a DTO class from a Doctrine entity."""

import json
from pathlib import Path
from typing import Any

import click
import questionary

from dtomaker.cli.utils import find_project_root
from dtomaker.config.loader import load_config
from dtomaker.core.errors import AdvisoryKind, DtoMakerError
from dtomaker.core.logging import clear_run_id, configure_logging, get_log_file_path, get_logger, set_run_id
from dtomaker.core.progress import get_console, note, pluralize, status, success
from dtomaker.maker.dto import DtoMaker, DtoRequest, GenerationReport

DOCS_URL = "https://symfony.com/doc/current/forms/data_transfer_objects.html"

# Advisories repeated line by line under the status output
_WARNED = (AdvisoryKind.MEMBER_ALREADY_EXISTS, AdvisoryKind.IMPORT_ALIAS_CLASH)

PROMPT_STYLE = questionary.Style([("question", "bold"), ("highlighted", "fg:cyan bold")])

log = get_logger("cli.make_dto")


@click.command()
@click.argument("name")
@click.argument("entity", required=False)
@click.option(
    "--helpers/--no-helpers",
    default=None,
    help="Add extract/fill helper methods (asked when omitted, default yes)",
)
@click.option(
    "--accessors/--no-accessors",
    default=None,
    help="Generate getters/setters (asked when omitted, default no)",
)
@click.option("--overwrite/--no-overwrite", default=None, help="Replace properties that already exist")
@click.option("--annotations/--no-annotations", default=None, help="Copy validation annotations")
@click.option("--fluent/--no-fluent", default=None, help="Setters return $this")
@click.option("--dry-run", is_flag=True, help="Print the change as a diff without writing")
@click.option(
    "--root",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="PHP project root (default: nearest directory with composer.json)",
)
@click.option("--json", "as_json", is_flag=True, help="Output the report as JSON")
@click.pass_context
def make_dto_command(
    ctx: click.Context,
    name: str,
    entity: str | None,
    helpers: bool | None,
    accessors: bool | None,
    overwrite: bool | None,
    annotations: bool | None,
    fluent: bool | None,
    dry_run: bool,
    root: Path | None,
    as_json: bool,
) -> None:
    """Create or update a DTO class bound to a Doctrine entity.

    NAME is the DTO class name, resolved under the DTO namespace
    (e.g. Task gives App\\Dto\\TaskData). ENTITY is the entity class,
    resolved under the entity namespace; it is asked for when omitted.

    Existing DTO files are merged into: members that already exist are left
    unchanged unless --overwrite is given for properties.
    """
    project_root = root.resolve() if root else find_project_root()
    try:
        config = load_config(project_root)
    except DtoMakerError as e:
        raise click.ClickException(str(e)) from e

    if not (ctx.obj or {}).get("verbose"):
        configure_logging(config=config.logging)

    generation = config.generation
    set_run_id()
    try:
        maker = DtoMaker(project_root, config)
        if entity is None:
            entity = _ask_entity(maker)
        if helpers is None:
            helpers = as_json or _confirm("Add helper extract/fill methods?", default=True)
        if accessors is None:
            accessors = False if as_json else _confirm("Generate getters/setters?", default=False)

        report = maker.generate(
            DtoRequest(
                name=name,
                entity=entity,
                add_helpers=helpers,
                generate_accessors=accessors,
                overwrite_existing_members=(
                    generation.overwrite_existing_members if overwrite is None else overwrite
                ),
                use_annotations=generation.use_annotations if annotations is None else annotations,
                use_fluent_mutators=generation.use_fluent_mutators if fluent is None else fluent,
                dry_run=dry_run,
            )
        )
    except DtoMakerError as e:
        log.error("generation_failed", code=e.code.value, error=e.error_name, details=e.details)
        raise click.ClickException(_with_log_pointer(str(e))) from e
    finally:
        clear_run_id()

    if as_json:
        click.echo(json.dumps(_report_dict(report, project_root), indent=2))
        return
    _print_report(report, project_root)


def _with_log_pointer(message: str) -> str:
    log_file = get_log_file_path()
    return f"{message.rstrip('.')}. See {log_file} for details." if log_file else message


def _ask_entity(maker: DtoMaker) -> str:
    choices = maker.entities()
    if not choices:
        raise click.ClickException(
            "No Doctrine entities found. Pass ENTITY explicitly or check project.entity_namespace."
        )
    answer = questionary.autocomplete(
        "The class name of the entity to create the DTO from",
        choices=choices,
        validate=lambda value: value in choices or "Not a mapped entity",
        style=PROMPT_STYLE,
    ).ask()
    if answer is None:
        raise click.Abort()
    return answer


def _confirm(message: str, *, default: bool) -> bool:
    answer = questionary.confirm(message, default=default, style=PROMPT_STYLE).ask()
    if answer is None:
        raise click.Abort()
    return answer


def _display_path(path: Path, project_root: Path) -> str:
    return str(path.relative_to(project_root)) if path.is_relative_to(project_root) else str(path)


def _print_report(report: GenerationReport, project_root: Path) -> None:
    display = _display_path(report.path, project_root)

    if report.diff is not None:
        if report.diff:
            click.echo(report.diff, nl=False)
        else:
            status(f"no changes: {display}", style="info")
        return

    if report.created:
        status(f"created: {display}", style="success")
    elif report.written:
        status(f"updated: {display}", style="success")
    else:
        status(f"unchanged: {display}", style="info")

    merge = report.merge
    if merge.added_members:
        status(f"added {pluralize(len(merge.added_members), 'member')}", style="info", indent=2)
    if merge.replaced_members:
        status(f"replaced {pluralize(len(merge.replaced_members), 'property', 'properties')}", indent=2)
    for kind in _WARNED:
        for advisory in report.advisories_of(kind):
            status(advisory.message, style="warning", indent=2)

    success()
    for lines in report.notes():
        note(lines)

    console = get_console()
    console.print()
    for line in (
        f"Next: Review the new DTO {display}",
        "Then: Create a form for this DTO by running:",
        f"$ php bin/console make:form {report.entity.relative_name}",
        f"and enter \\{report.dto.full_name}",
        "",
        f"Find the documentation at {DOCS_URL}",
    ):
        status(line, style="none")


def _report_dict(report: GenerationReport, project_root: Path) -> dict[str, Any]:
    merge = report.merge
    return {
        "path": _display_path(report.path, project_root),
        "dto": report.dto.full_name,
        "entity": report.entity.full_name,
        "created": report.created,
        "written": report.written,
        "changed": report.changed,
        "fields": list(report.fields),
        "added": list(merge.added_members),
        "replaced": list(merge.replaced_members),
        "skipped": list(merge.pre_existing),
        "imports": list(merge.added_imports),
        "advisories": [
            {"kind": a.kind.value, "message": a.message, "subject": a.subject} for a in report.advisories
        ],
        "notes": [list(lines) for lines in report.notes()],
        "content_hash": report.content_hash,
        "diff": report.diff,
    }
