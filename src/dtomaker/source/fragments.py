"""Inputs and outputs of the Declaration Synthesizer.

FieldDescriptors come from the metadata bridge; DeclarationFragments go to the
source editor. Fragment lines use a four-space indentation unit relative to
the class member level; the editor re-indents them to the target file's style.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from dtomaker.source.model import MemberKind

# Scalar kinds and the PHP type each renders to (None: no type declaration)
SCALAR_TYPES: dict[str, str | None] = {
    "string": "string",
    "int": "int",
    "float": "float",
    "bool": "bool",
    "array": "array",
    "datetime": "\\DateTimeInterface",
    "datetime_immutable": "\\DateTimeImmutable",
    "dateinterval": "\\DateInterval",
    "mixed": None,
}


class TypeKind(StrEnum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    ARRAY = "array"
    DATETIME = "datetime"
    DATETIME_IMMUTABLE = "datetime_immutable"
    DATEINTERVAL = "dateinterval"
    MIXED = "mixed"
    REFERENCE = "reference"


@dataclass(frozen=True, slots=True)
class FieldType:
    """Semantic type of a field: a scalar kind or a reference to another class."""

    kind: TypeKind
    nullable: bool = False
    reference: str | None = None

    @property
    def reference_short_name(self) -> str | None:
        if self.reference is None:
            return None
        return self.reference.rsplit("\\", 1)[-1]

    def php_type(self) -> str | None:
        """Type declaration without nullability (None when untyped)."""
        if self.kind is TypeKind.REFERENCE:
            return self.reference_short_name
        return SCALAR_TYPES[self.kind.value]


@dataclass(frozen=True, slots=True)
class Constant:
    """A constant expression kept verbatim (e.g. ``Types::STRING``, ``Tag::class``)."""

    expression: str

    def __str__(self) -> str:
        return self.expression


@dataclass(frozen=True)
class AnnotationSpec:
    """A metadata marker plus ordered arguments.

    ``arguments`` holds (key, value) pairs; positional values use key None.
    Values are str, int, float, bool, None, list, dict, Constant or a nested
    AnnotationSpec.
    """

    name: str
    arguments: tuple[tuple[str | None, Any], ...] = ()
    namespace: str | None = None
    alias: str | None = None

    @property
    def short_name(self) -> str:
        return self.name.rsplit("\\", 1)[-1]

    @property
    def class_name(self) -> str:
        """Fully qualified class the marker refers to."""
        if self.alias and self.namespace:
            return self.namespace + self.name[len(self.alias) :]
        return self.namespace or self.name.lstrip("\\")

    def argument(self, key: str, default: Any = None) -> Any:
        for k, value in self.arguments:
            if k == key:
                return value
        return default


@dataclass(frozen=True)
class FieldDescriptor:
    """One field to add to the DTO."""

    name: str
    type: FieldType
    is_collection: bool = False
    annotations: tuple[AnnotationSpec, ...] = ()
    has_existing_getter: bool = False
    has_existing_setter: bool = False
    declared_in: str | None = None


@dataclass(frozen=True, slots=True)
class GenerationOptions:
    overwrite_existing_members: bool = False
    use_annotations: bool = True
    use_fluent_mutators: bool = True
    generate_accessors: bool = False


@dataclass(frozen=True, slots=True)
class Import:
    """A use statement the fragment needs (``fqn as alias``)."""

    fqn: str
    alias: str | None = None

    @property
    def short_name(self) -> str:
        return self.alias or self.fqn.rsplit("\\", 1)[-1]

    def render(self) -> str:
        return f"use {self.fqn} as {self.alias};" if self.alias else f"use {self.fqn};"


@dataclass(frozen=True, slots=True)
class MemberFragment:
    kind: MemberKind
    name: str
    lines: tuple[str, ...]
    modifiers: tuple[str, ...] = ()
    type: str | None = None


@dataclass(frozen=True)
class DeclarationFragment:
    """Everything synthesized for one field (or for the helper methods)."""

    property_member: MemberFragment | None = None
    methods: tuple[MemberFragment, ...] = ()
    imports: tuple[Import, ...] = ()
    descriptor: FieldDescriptor | None = field(default=None, compare=False)

    @property
    def members(self) -> tuple[MemberFragment, ...]:
        head = (self.property_member,) if self.property_member is not None else ()
        return head + self.methods
