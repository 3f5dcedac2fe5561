"""Doctrine entity metadata read statically from source files.

Nothing is executed: entity classes are located through PSR-4 prefixes,
loaded with the Class Model Loader and their mapping markers read from
docblock annotations or PHP 8 attributes. Mapped ancestors reached through
``extends`` contribute their fields, tagged with the class declaring them.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from dtomaker.core.errors import ConfigError, InvalidEntityReference, ParseError
from dtomaker.core.logging import get_logger
from dtomaker.metadata.annotations import parse_attributes, parse_docblock
from dtomaker.source.fragments import AnnotationSpec, Constant
from dtomaker.source.loader import load
from dtomaker.source.model import ClassModel, Property

log = get_logger("metadata.entities")

ORM_NAMESPACE = "Doctrine\\ORM\\Mapping"

TO_ONE = frozenset({"ManyToOne", "OneToOne"})
TO_MANY = frozenset({"OneToMany", "ManyToMany"})

# PHP property type -> Doctrine type used when a Column omits ``type``
_INFERRED_TYPES = {
    "string": "string",
    "int": "integer",
    "float": "float",
    "bool": "boolean",
    "array": "json",
    "datetimeinterface": "datetime",
    "datetime": "datetime",
    "datetimeimmutable": "datetime_immutable",
    "dateinterval": "dateinterval",
}


class SymbolOrigin(StrEnum):
    LOCAL = "local"
    INHERITED = "inherited"


@dataclass(frozen=True, slots=True)
class MethodSymbol:
    name: str
    declared_in: str
    visibility: str
    origin: SymbolOrigin


class SymbolTable:
    """Methods of one class, declared locally or in a loadable ancestor.

    Built once per class from source. Answers capability queries such as
    "does the entity expose a public ``getDueDate``?" without reflection.
    """

    def __init__(self, class_name: str, methods: dict[str, MethodSymbol]) -> None:
        self.class_name = class_name
        self._methods = methods

    @classmethod
    def build(cls, chain: list[ClassModel]) -> SymbolTable:
        """Build from a class followed by its ancestors, nearest first."""
        methods: dict[str, MethodSymbol] = {}
        for depth, model in enumerate(chain):
            origin = SymbolOrigin.LOCAL if depth == 0 else SymbolOrigin.INHERITED
            for method in model.methods:
                methods.setdefault(
                    method.name.lower(),
                    MethodSymbol(method.name, model.fqcn, method.visibility, origin),
                )
        return cls(chain[0].fqcn, methods)

    def method(self, name: str) -> MethodSymbol | None:
        return self._methods.get(name.lower())

    def has_method(self, name: str) -> bool:
        return name.lower() in self._methods

    def has_public_method(self, name: str) -> bool:
        symbol = self.method(name)
        return symbol is not None and symbol.visibility == "public"

    def origin(self, name: str) -> SymbolOrigin | None:
        symbol = self.method(name)
        return symbol.origin if symbol else None

    def __len__(self) -> int:
        return len(self._methods)


@dataclass(frozen=True, slots=True)
class FieldMapping:
    name: str
    type: str
    nullable: bool = False
    is_identifier: bool = False
    declared_in: str | None = None
    php_type: str | None = None
    annotations: tuple[AnnotationSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class AssociationMapping:
    name: str
    kind: str
    target: str | None = None
    nullable: bool = True
    is_identifier: bool = False
    declared_in: str | None = None
    annotations: tuple[AnnotationSpec, ...] = ()

    @property
    def is_collection(self) -> bool:
        return self.kind in TO_MANY


@dataclass(frozen=True, slots=True)
class EntityMetadata:
    """Mapped members of an entity in declaration order, inherited ones first."""

    class_name: str
    mappings: tuple[FieldMapping | AssociationMapping, ...] = ()

    @property
    def fields(self) -> tuple[FieldMapping, ...]:
        return tuple(m for m in self.mappings if isinstance(m, FieldMapping))

    @property
    def associations(self) -> tuple[AssociationMapping, ...]:
        return tuple(m for m in self.mappings if isinstance(m, AssociationMapping))

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(m.name for m in self.mappings if m.is_identifier)

    def is_identifier(self, name: str) -> bool:
        return name in self.identifiers

    def mapping(self, name: str) -> FieldMapping | AssociationMapping | None:
        return next((m for m in self.mappings if m.name == name), None)


class ClassLocator:
    """Map class names to files with PSR-4 prefixes (``App\\`` -> ``src/``)."""

    def __init__(self, root: Path, prefixes: dict[str, str | list[str]]) -> None:
        self.root = root
        self.prefixes: list[tuple[str, Path]] = []
        for prefix, dirs in prefixes.items():
            normalized = prefix.strip("\\") + "\\"
            for directory in [dirs] if isinstance(dirs, str) else dirs:
                self.prefixes.append((normalized, root / directory))
        # Longest prefix wins
        self.prefixes.sort(key=lambda item: len(item[0]), reverse=True)

    @classmethod
    def for_project(cls, root: Path, prefix: str = "App\\", source_dir: str = "src") -> ClassLocator:
        """Locator from ``composer.json`` autoload settings, else ``prefix`` -> ``source_dir``.

        Raises:
            ConfigError: When ``composer.json`` exists but is not valid JSON.
        """
        composer = root / "composer.json"
        prefixes: dict[str, str | list[str]] = {}
        if composer.exists():
            try:
                data = json.loads(composer.read_text(encoding="utf-8"))
            except json.JSONDecodeError as e:
                raise ConfigError.parse_error(str(composer), str(e)) from e
            prefixes.update(data.get("autoload", {}).get("psr-4", {}))
        prefixes.setdefault(prefix, source_dir)
        return cls(root, prefixes)

    def path_for(self, class_name: str) -> Path | None:
        """Expected file of ``class_name`` (None when no prefix matches)."""
        name = class_name.strip("\\")
        for prefix, directory in self.prefixes:
            if name.startswith(prefix):
                return directory / (name[len(prefix) :].replace("\\", "/") + ".php")
        return None

    def find(self, class_name: str) -> Path | None:
        """Existing file of ``class_name``, trying every matching prefix."""
        name = class_name.strip("\\")
        for prefix, directory in self.prefixes:
            if name.startswith(prefix):
                candidate = directory / (name[len(prefix) :].replace("\\", "/") + ".php")
                if candidate.is_file():
                    return candidate
        return None

    def classes_in(self, namespace: str) -> list[str]:
        """Class names of every ``.php`` file below ``namespace``, sorted."""
        wanted = namespace.strip("\\") + "\\"
        found: set[str] = set()
        for prefix, directory in self.prefixes:
            if wanted.startswith(prefix):
                base = directory / wanted[len(prefix) :].replace("\\", "/")
                ns = wanted
            elif prefix.startswith(wanted):
                base, ns = directory, prefix
            else:
                continue
            if not base.is_dir():
                continue
            for path in base.rglob("*.php"):
                relative = path.relative_to(base).with_suffix("")
                found.add(ns + "\\".join(relative.parts))
        return sorted(found)


class EntityMetadataReader:
    """Mapping metadata of entity classes, loaded lazily and kept per reader."""

    def __init__(self, locator: ClassLocator) -> None:
        self.locator = locator
        self._models: dict[str, ClassModel] = {}
        self._metadata: dict[str, EntityMetadata] = {}
        self._symbols: dict[str, SymbolTable] = {}

    def load_class(self, class_name: str) -> ClassModel:
        """Loaded model of ``class_name``.

        Raises:
            InvalidEntityReference: When no source file exists for the class.
            ParseError: When the file cannot be loaded.
        """
        name = class_name.strip("\\")
        if name not in self._models:
            path = self.locator.find(name)
            if path is None:
                expected = self.locator.path_for(name)
                raise InvalidEntityReference.not_found(name, str(expected) if expected else None)
            self._models[name] = load(path.read_text(encoding="utf-8"))
            log.debug("class_file_loaded", class_name=name, path=str(path))
        return self._models[name]

    def is_mapped_entity(self, class_name: str) -> bool:
        try:
            model = self.load_class(class_name)
        except InvalidEntityReference:
            return False
        return "Entity" in _class_markers(model)

    def ancestors(self, class_name: str) -> list[ClassModel]:
        """Loadable parent classes, nearest first; stops at the first missing one."""
        chain: list[ClassModel] = []
        model = self.load_class(class_name)
        seen = {model.fqcn.lower()}
        while model.parent:
            parent = model.resolve_name(model.parent)
            if parent.lower() in seen:
                break
            try:
                model = self.load_class(parent)
            except InvalidEntityReference:
                log.debug("ancestor_not_found", class_name=class_name, parent=parent)
                break
            seen.add(parent.lower())
            chain.append(model)
        return chain

    def symbol_table(self, class_name: str) -> SymbolTable:
        name = class_name.strip("\\")
        if name not in self._symbols:
            self._symbols[name] = SymbolTable.build([self.load_class(name), *self.ancestors(name)])
        return self._symbols[name]

    def get_metadata(self, class_name: str) -> EntityMetadata:
        """Fields and associations of a mapped entity, inherited ones first.

        Raises:
            InvalidEntityReference: When the class is missing or not mapped.
        """
        name = class_name.strip("\\")
        if name in self._metadata:
            return self._metadata[name]
        if not self.is_mapped_entity(name):
            self.load_class(name)
            raise InvalidEntityReference.not_mapped(name)

        model = self.load_class(name)
        mappings: dict[str, FieldMapping | AssociationMapping] = {}
        mapped_chain = [
            ancestor
            for ancestor in self.ancestors(name)
            if _class_markers(ancestor) & {"Entity", "MappedSuperclass"}
        ]
        for declaring in [*reversed(mapped_chain), model]:
            for prop in declaring.properties:
                specs = _property_markers(declaring, prop)
                mapping = _map_property(declaring, prop, specs)
                if mapping is not None:
                    mappings[prop.name] = mapping

        metadata = EntityMetadata(class_name=name, mappings=tuple(mappings.values()))
        self._metadata[name] = metadata
        log.debug(
            "entity_metadata_read",
            class_name=name,
            fields=len(metadata.fields),
            associations=len(metadata.associations),
        )
        return metadata

    def list_entities(self, namespace: str) -> list[str]:
        """Mapped entity classes below ``namespace``; unreadable files are skipped."""
        entities = []
        for class_name in self.locator.classes_in(namespace):
            try:
                if self.is_mapped_entity(class_name):
                    entities.append(class_name)
            except ParseError as e:
                log.warning("entity_scan_skipped", class_name=class_name, error=e.message)
        return entities


def _orm_short_name(spec: AnnotationSpec) -> str | None:
    if spec.class_name.startswith(ORM_NAMESPACE + "\\"):
        return spec.class_name[len(ORM_NAMESPACE) + 1 :]
    return None


def _class_markers(model: ClassModel) -> set[str]:
    specs = parse_docblock(model.doc_comment, model.resolve_name) + parse_attributes(
        model.attributes, model.resolve_name
    )
    return {short for spec in specs if (short := _orm_short_name(spec))}


def _property_markers(model: ClassModel, prop: Property) -> tuple[AnnotationSpec, ...]:
    return parse_docblock(prop.doc_comment, model.resolve_name) + parse_attributes(
        prop.attributes, model.resolve_name
    )


def _map_property(
    model: ClassModel,
    prop: Property,
    specs: tuple[AnnotationSpec, ...],
) -> FieldMapping | AssociationMapping | None:
    orm = {short: spec for spec in specs if (short := _orm_short_name(spec))}
    is_identifier = "Id" in orm

    for kind in (*TO_ONE, *TO_MANY):
        if kind in orm:
            join = orm.get("JoinColumn")
            nullable = join.argument("nullable", True) if join is not None else True
            return AssociationMapping(
                name=prop.name,
                kind=kind,
                target=_target_entity(model, prop, orm[kind], collection=kind in TO_MANY),
                nullable=bool(nullable),
                is_identifier=is_identifier,
                declared_in=model.fqcn,
                annotations=specs,
            )

    column = orm.get("Column")
    if column is None and not is_identifier:
        return None
    doctrine_type = column.argument("type") if column is not None else None
    return FieldMapping(
        name=prop.name,
        type=_doctrine_type(doctrine_type, prop.type),
        nullable=bool(column.argument("nullable", False)) if column is not None else False,
        is_identifier=is_identifier,
        declared_in=model.fqcn,
        php_type=prop.type,
        annotations=specs,
    )


def _doctrine_type(declared: object, php_type: str | None) -> str:
    """Doctrine type name from a Column ``type`` argument or the property type."""
    if isinstance(declared, Constant):
        # Types::DATE_MUTABLE -> "date", Types::DATETIME_IMMUTABLE -> "datetime_immutable"
        member = declared.expression.rpartition("::")[2].lower()
        return member.removesuffix("_mutable")
    if isinstance(declared, str) and declared:
        return declared
    if php_type:
        bare = php_type.lstrip("?").lstrip("\\").rsplit("\\", 1)[-1].lower()
        return _INFERRED_TYPES.get(bare, "string")
    return "string"


def _target_entity(model: ClassModel, prop: Property, spec: AnnotationSpec, collection: bool) -> str | None:
    target = spec.argument("targetEntity")
    if isinstance(target, Constant) and target.expression.endswith("::class"):
        return model.resolve_name(target.expression.removesuffix("::class"))
    if isinstance(target, str) and target:
        if "\\" in target:
            return target.lstrip("\\")
        return f"{model.namespace}\\{target}" if model.namespace else target
    if not collection and prop.type:
        return model.resolve_name(prop.type.lstrip("?"))
    return None
