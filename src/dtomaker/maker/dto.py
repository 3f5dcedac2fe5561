"""make:dto - generate or update a DTO class bound to a Doctrine entity.

One run: resolve names, describe the entity's fields, load the existing DTO
file (or render an empty class), synthesize declarations, merge them, then
write the result in one atomic replace. Nothing is written when any step
fails, and non-fatal findings are returned as advisories for the caller to
report.
"""

from __future__ import annotations

import difflib
import hashlib
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from dtomaker.config.models import DtoMakerConfig
from dtomaker.core.errors import Advisory, AdvisoryKind, ConfigError
from dtomaker.core.logging import get_logger
from dtomaker.core.naming import as_camel_case
from dtomaker.maker.naming import ClassNameDetails, create_class_name_details, namespace_for
from dtomaker.maker.skeleton import render_skeleton
from dtomaker.metadata.bridge import MetadataBridge
from dtomaker.source.editor import MergeResult, apply
from dtomaker.source.fragments import DeclarationFragment, FieldDescriptor, GenerationOptions
from dtomaker.source.loader import load
from dtomaker.source.serializer import serialize
from dtomaker.source.synthesizer import synthesize, synthesize_helpers

log = get_logger("maker.dto")

# Note blocks shown once per run when at least one advisory of the kind exists
NOTES: dict[AdvisoryKind, tuple[str, str]] = {
    AdvisoryKind.ASSERTIONS_IMPORTED: (
        "The maker imported assertion annotations.",
        "Consider removing them from the entity or make sure to keep them updated in both places.",
    ),
    AdvisoryKind.VALIDATION_METADATA_MISMATCH: (
        "The entity possibly uses Yaml/Xml validators.",
        "Make sure to update the validations to include the new DTO class.",
    ),
    AdvisoryKind.MISSING_ENTITY_ACCESSORS: (
        "The maker found missing getters/setters for properties in the entity.",
        "Please review the generated DTO for @todo comments.",
    ),
}


@dataclass(frozen=True, slots=True)
class DtoRequest:
    name: str
    entity: str
    add_helpers: bool = True
    generate_accessors: bool = False
    overwrite_existing_members: bool = False
    use_annotations: bool = True
    use_fluent_mutators: bool = True
    dry_run: bool = False

    @property
    def options(self) -> GenerationOptions:
        return GenerationOptions(
            overwrite_existing_members=self.overwrite_existing_members,
            use_annotations=self.use_annotations,
            use_fluent_mutators=self.use_fluent_mutators,
            generate_accessors=self.generate_accessors,
        )


@dataclass(frozen=True)
class GenerationReport:
    """Outcome of one make:dto run."""

    path: Path
    dto: ClassNameDetails
    entity: ClassNameDetails
    created: bool
    written: bool
    source: str
    fields: tuple[str, ...]
    merge: MergeResult
    advisories: tuple[Advisory, ...] = ()
    diff: str | None = None

    @property
    def changed(self) -> bool:
        return self.created or self.merge.plan.changes_source

    @property
    def content_hash(self) -> str:
        return hashlib.sha256(self.source.encode("utf-8")).hexdigest()[:16]

    def advisories_of(self, kind: AdvisoryKind) -> tuple[Advisory, ...]:
        return tuple(a for a in self.advisories if a.kind is kind)

    def notes(self) -> list[tuple[str, str]]:
        return [lines for kind, lines in NOTES.items() if self.advisories_of(kind)]


class DtoMaker:
    def __init__(
        self,
        root: Path,
        config: DtoMakerConfig | None = None,
        bridge: MetadataBridge | None = None,
    ) -> None:
        self.root = root
        self.config = config or DtoMakerConfig()
        self.bridge = bridge or MetadataBridge.for_project(
            root,
            self.config.project,
            validation_enabled=self.config.generation.validation_enabled,
        )

    def resolve_dto(self, name: str) -> ClassNameDetails:
        project = self.config.project
        return create_class_name_details(name, project.dto_namespace, project.dto_suffix, project.psr4_prefix)

    def resolve_entity(self, name: str) -> ClassNameDetails:
        project = self.config.project
        return create_class_name_details(name, project.entity_namespace, root_namespace=project.psr4_prefix)

    def entities(self) -> list[str]:
        """Mapped entities, relative to the entity namespace (``Task``, ``Admin\\User``)."""
        project = self.config.project
        namespace = namespace_for(project.psr4_prefix, project.entity_namespace)
        return [class_name[len(namespace) + 1 :] for class_name in self.bridge.list_entities(namespace)]

    def target_path(self, dto: ClassNameDetails) -> Path:
        """File the DTO class lives in.

        Raises:
            ConfigError: When no PSR-4 prefix covers the DTO namespace.
        """
        path = self.bridge.reader.locator.path_for(dto.full_name)
        if path is None:
            raise ConfigError.invalid_value(
                "project.psr4_prefix",
                self.config.project.psr4_prefix,
                f"{dto.full_name} is not below any autoloaded namespace",
            )
        return path

    def generate(self, request: DtoRequest) -> GenerationReport:
        """Generate or update the DTO described by ``request``.

        Raises:
            InvalidClassName: When NAME or ENTITY is not a valid class name.
            InvalidEntityReference: When ENTITY is missing or not mapped.
            ParseError: When the entity or existing DTO cannot be loaded.
            MergeConflict: When the existing DTO has no anchor for an edit.
        """
        dto = self.resolve_dto(request.name)
        entity = self.resolve_entity(request.entity)
        log.info("generation_started", dto=dto.full_name, entity=entity.full_name)

        fields = self.bridge.describe_fields(entity.full_name)
        path = self.target_path(dto)
        created = not path.exists()
        original = render_skeleton(dto, entity) if created else _read(path)
        model = load(original)
        if model.fqcn != dto.full_name:
            log.warning("dto_class_mismatch", path=str(path), expected=dto.full_name, found=model.fqcn)

        options = request.options
        fragments: list[DeclarationFragment] = []
        if request.add_helpers:
            fragments.append(synthesize_helpers(entity.full_name, fields))
        fragments.extend(synthesize(f, options) for f in fields)

        merge = apply(model, fragments, options)
        source = serialize(merge.model)
        advisories = merge.advisories + self._field_advisories(entity, fields, request)

        written = False
        if not request.dry_run and (created or source != original):
            _write_atomic(path, source)
            written = True

        diff = None
        if request.dry_run:
            relative = path.relative_to(self.root) if path.is_relative_to(self.root) else path
            diff = "".join(
                difflib.unified_diff(
                    [] if created else original.splitlines(keepends=True),
                    source.splitlines(keepends=True),
                    fromfile="/dev/null" if created else f"a/{relative}",
                    tofile=f"b/{relative}",
                )
            )

        log.info(
            "generation_finished",
            dto=dto.full_name,
            path=str(path),
            created=created,
            written=written,
            added=len(merge.added_members),
            skipped=len(merge.pre_existing),
            advisories=len(advisories),
        )
        return GenerationReport(
            path=path,
            dto=dto,
            entity=entity,
            created=created,
            written=written,
            source=source,
            fields=tuple(f.name for f in fields),
            merge=merge,
            advisories=advisories,
            diff=diff,
        )

    def _field_advisories(
        self,
        entity: ClassNameDetails,
        fields: tuple[FieldDescriptor, ...],
        request: DtoRequest,
    ) -> tuple[Advisory, ...]:
        advisories: list[Advisory] = []

        copied = [f for f in fields if f.annotations]
        if request.use_annotations and copied:
            count = sum(len(f.annotations) for f in copied)
            advisories.append(
                Advisory(
                    AdvisoryKind.ASSERTIONS_IMPORTED,
                    f"Copied {count} validation constraint(s) from {entity.short_name} onto "
                    + ", ".join(f"${f.name}" for f in copied),
                )
            )

        for f in fields:
            if self.bridge.suspect_inconsistent_validations(entity.full_name, f.name, len(f.annotations)):
                advisories.append(
                    Advisory(
                        AdvisoryKind.VALIDATION_METADATA_MISMATCH,
                        f"Validator metadata for {entity.short_name}::${f.name} does not match its inline constraints.",
                        subject=f.name,
                    )
                )

        if request.add_helpers:
            for f in fields:
                missing = [
                    f"{prefix}{as_camel_case(f.name)}()"
                    for prefix, present in (("get", f.has_existing_getter), ("set", f.has_existing_setter))
                    if not present
                ]
                if missing:
                    advisories.append(
                        Advisory(
                            AdvisoryKind.MISSING_ENTITY_ACCESSORS,
                            f"{entity.short_name} has no {' or '.join(missing)} for ${f.name}.",
                            subject=f.name,
                        )
                    )
        return tuple(advisories)


def _read(path: Path) -> str:
    # newline="" keeps \r\n line endings intact
    with path.open(encoding="utf-8", newline="") as f:
        return f.read()


def _write_atomic(path: Path, content: str) -> None:
    """Write ``content`` to a sibling temp file, then replace ``path`` with it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    log.debug("file_written", path=str(path), bytes=len(content.encode("utf-8")))
