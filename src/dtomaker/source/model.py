"""Structural model of a single PHP class file.

The model partitions the file text into three regions:

- ``prefix``: everything up to and including the class body's opening brace
  (open tag, namespace, use statements, class header)
- ``members``: one exact text span per class member, each starting right
  after the previous member (leading whitespace, comments and doc-comments
  belong to the member that follows them)
- ``suffix``: everything after the last member (closing brace and the rest)

Joining the three regions reproduces the original text exactly, so edits only
ever touch the spans they replace or insert.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

VISIBILITIES = ("public", "protected", "private")


class MemberKind(StrEnum):
    PROPERTY = "property"
    METHOD = "method"
    CONSTANT = "constant"


class UseKind(StrEnum):
    CLASS = "class"
    FUNCTION = "function"
    CONST = "const"


@dataclass(frozen=True, slots=True)
class UseStatement:
    """One imported name. Grouped statements yield one entry per name."""

    fqn: str
    alias: str | None = None
    kind: UseKind = UseKind.CLASS
    start: int = 0
    end: int = 0

    @property
    def short_name(self) -> str:
        return self.alias or self.fqn.rsplit("\\", 1)[-1]

    def resolves(self, fqn: str, alias: str | None = None) -> bool:
        """True when this statement imports ``fqn`` under the same local name."""
        if self.kind is not UseKind.CLASS:
            return False
        if self.fqn.lower() != fqn.strip("\\").lower():
            return False
        wanted = alias or fqn.strip("\\").rsplit("\\", 1)[-1]
        return self.short_name.lower() == wanted.lower()


@dataclass(frozen=True, slots=True)
class Parameter:
    name: str
    type: str | None = None
    default: str | None = None
    modifiers: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    text: str = ""

    @property
    def is_promoted(self) -> bool:
        return any(m in VISIBILITIES or m == "readonly" for m in self.modifiers)


@dataclass(frozen=True, slots=True)
class Member:
    """A class member and its exact source span."""

    kind: MemberKind
    name: str
    text: str
    modifiers: tuple[str, ...] = ()
    doc_comment: str | None = None
    attributes: tuple[str, ...] = ()
    type: str | None = None
    default: str | None = None
    parameters: tuple[Parameter, ...] = ()
    body: str | None = None

    @property
    def visibility(self) -> str:
        for modifier in self.modifiers:
            if modifier in VISIBILITIES:
                return modifier
        return "public"

    @property
    def is_static(self) -> bool:
        return "static" in self.modifiers


@dataclass(frozen=True, slots=True)
class Property:
    """Property view; promoted constructor parameters are included."""

    name: str
    type: str | None
    default: str | None
    visibility: str
    doc_comment: str | None = None
    attributes: tuple[str, ...] = ()
    promoted: bool = False


@dataclass(frozen=True)
class ClassModel:
    prefix: str
    members: tuple[Member, ...]
    suffix: str
    class_name: str
    namespace: str | None = None
    use_statements: tuple[UseStatement, ...] = ()
    parent: str | None = None
    interfaces: tuple[str, ...] = ()
    doc_comment: str | None = None
    attributes: tuple[str, ...] = ()
    open_tag_end: int | None = None
    namespace_end: int | None = None
    declare_end: int | None = None
    newline: str = "\n"
    _member_index: dict[tuple[MemberKind, str], int] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for i, member in enumerate(self.members):
            key = (member.kind, _fold(member.kind, member.name))
            self._member_index.setdefault(key, i)

    @property
    def fqcn(self) -> str:
        return f"{self.namespace}\\{self.class_name}" if self.namespace else self.class_name

    @property
    def methods(self) -> tuple[Member, ...]:
        return tuple(m for m in self.members if m.kind is MemberKind.METHOD)

    @property
    def constructor(self) -> Member | None:
        index = self.find(MemberKind.METHOD, "__construct")
        return None if index is None else self.members[index]

    @property
    def properties(self) -> tuple[Property, ...]:
        props = [
            Property(
                name=m.name,
                type=m.type,
                default=m.default,
                visibility=m.visibility,
                doc_comment=m.doc_comment,
                attributes=m.attributes,
            )
            for m in self.members
            if m.kind is MemberKind.PROPERTY
        ]
        ctor = self.constructor
        if ctor is not None:
            props.extend(
                Property(
                    name=p.name,
                    type=p.type,
                    default=p.default,
                    visibility=next((m for m in p.modifiers if m in VISIBILITIES), "public"),
                    attributes=p.attributes,
                    promoted=True,
                )
                for p in ctor.parameters
                if p.is_promoted
            )
        return tuple(props)

    def find(self, kind: MemberKind, name: str) -> int | None:
        """Index of the first member of ``kind`` named ``name``."""
        return self._member_index.get((kind, _fold(kind, name)))

    def has_property(self, name: str) -> bool:
        return any(p.name == name for p in self.properties)

    def has_method(self, name: str) -> bool:
        return self.find(MemberKind.METHOD, name) is not None

    def last_index(self, kind: MemberKind) -> int | None:
        for i in range(len(self.members) - 1, -1, -1):
            if self.members[i].kind is kind:
                return i
        return None

    def resolve_name(self, name: str) -> str:
        """Resolve a class reference as written in this file to its FQCN."""
        if name.startswith("\\"):
            return name[1:]
        head, _, rest = name.partition("\\")
        if head.lower() == "namespace" and rest:
            return f"{self.namespace}\\{rest}" if self.namespace else rest
        for use in self.use_statements:
            if use.kind is UseKind.CLASS and use.short_name.lower() == head.lower():
                return f"{use.fqn}\\{rest}" if rest else use.fqn
        return f"{self.namespace}\\{name}" if self.namespace else name


def _fold(kind: MemberKind, name: str) -> str:
    # Method names are case-insensitive; property and constant names are not
    return name.lower() if kind is MemberKind.METHOD else name
