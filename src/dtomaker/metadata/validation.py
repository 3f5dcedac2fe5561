"""Validator metadata: every constraint registered for an entity member.

Constraints come from two places. Inline markers sit on the property (or its
getter) in the entity source. Mapping files are Symfony ``config/validator``
YAML or XML documents. A member's registered constraints are the union of
both, across the class and its loadable ancestors.

Mapping files are parsed once, on first use, and the per-class index is kept
by the instance for the rest of the run.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from dtomaker.core.errors import ConfigError
from dtomaker.core.logging import get_logger
from dtomaker.core.naming import as_camel_case
from dtomaker.metadata.annotations import parse_attributes, parse_docblock
from dtomaker.metadata.entities import EntityMetadataReader
from dtomaker.source.fragments import AnnotationSpec
from dtomaker.source.model import ClassModel

log = get_logger("metadata.validation")

VALIDATOR_NAMESPACE = "Symfony\\Component\\Validator\\Constraints"

_GETTER_PREFIXES = ("get", "is", "has")

# member name -> constraint names, per class
_ClassIndex = dict[str, list[str]]


def is_constraint(spec: AnnotationSpec) -> bool:
    return spec.class_name.startswith(VALIDATOR_NAMESPACE + "\\")


@dataclass(frozen=True, slots=True)
class MemberConstraints:
    """Constraint names registered for one member, by source."""

    inline: tuple[str, ...] = ()
    mapped: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.inline) + len(self.mapped)


class ValidatorMetadata:
    def __init__(
        self,
        reader: EntityMetadataReader,
        root: Path,
        mapping_dirs: Sequence[str] = ("config/validator",),
    ) -> None:
        self.reader = reader
        self.root = root
        self.mapping_dirs = tuple(mapping_dirs)
        self._mapped: dict[str, _ClassIndex] | None = None
        self._cache: dict[str, dict[str, MemberConstraints]] = {}

    def constraints(self, class_name: str, property_name: str) -> MemberConstraints:
        """Constraints on ``property_name`` and its getter, including ancestors."""
        name = class_name.strip("\\")
        per_class = self._cache.setdefault(name, {})
        if property_name not in per_class:
            chain = [self.reader.load_class(name), *self.reader.ancestors(name)]
            inline: list[str] = []
            mapped: list[str] = []
            for model in chain:
                inline.extend(_inline_constraints(model, property_name))
                mapped.extend(self._mapping_index().get(model.fqcn, {}).get(property_name, []))
            per_class[property_name] = MemberConstraints(tuple(inline), tuple(mapped))
        return per_class[property_name]

    def constraint_count(self, class_name: str, property_name: str) -> int:
        return self.constraints(class_name, property_name).count

    def mapping_files(self) -> list[Path]:
        files: list[Path] = []
        for directory in self.mapping_dirs:
            base = self.root / directory
            if base.is_dir():
                files.extend(sorted(p for p in base.rglob("*") if p.suffix in (".yaml", ".yml", ".xml")))
        return files

    def _mapping_index(self) -> dict[str, _ClassIndex]:
        if self._mapped is None:
            index: dict[str, _ClassIndex] = {}
            files = self.mapping_files()
            for path in files:
                parsed = _parse_xml(path) if path.suffix == ".xml" else _parse_yaml(path)
                for class_name, members in parsed.items():
                    target = index.setdefault(class_name, {})
                    for member, names in members.items():
                        target.setdefault(member, []).extend(names)
            self._mapped = index
            log.debug("validator_mappings_loaded", files=len(files), classes=len(index))
        return self._mapped


def _inline_constraints(model: ClassModel, property_name: str) -> list[str]:
    getters = {(prefix + as_camel_case(property_name)).lower() for prefix in _GETTER_PREFIXES}
    marked: list[tuple[str | None, tuple[str, ...]]] = [
        (prop.doc_comment, prop.attributes) for prop in model.properties if prop.name == property_name
    ]
    marked.extend((m.doc_comment, m.attributes) for m in model.methods if m.name.lower() in getters)

    names: list[str] = []
    for doc_comment, attributes in marked:
        specs = parse_docblock(doc_comment, model.resolve_name) + parse_attributes(attributes, model.resolve_name)
        names.extend(spec.short_name for spec in specs if is_constraint(spec))
    return names


def _constraint_names(entries: Any) -> list[str]:
    """Top-level constraint names of a YAML member entry."""
    if entries is None:
        return []
    if not isinstance(entries, list):
        entries = [entries]
    names = []
    for entry in entries:
        if isinstance(entry, dict):
            names.extend(str(key) for key in entry)
        else:
            names.append(str(entry))
    return names


def _parse_yaml(path: Path) -> dict[str, _ClassIndex]:
    """Raises ConfigError on invalid YAML."""
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigError.parse_error(str(path), "Expected a mapping of class names at the top level")

    result: dict[str, _ClassIndex] = {}
    for class_name, sections in data.items():
        if not isinstance(sections, dict):
            continue
        members: _ClassIndex = {}
        for section in ("properties", "getters"):
            entries_by_member = sections.get(section) or {}
            if not isinstance(entries_by_member, dict):
                raise ConfigError.parse_error(str(path), f"Expected a mapping of members under {class_name}.{section}")
            for member, entries in entries_by_member.items():
                members.setdefault(member, []).extend(_constraint_names(entries))
        result[str(class_name).strip("\\")] = members
    return result


def _local(tag: str) -> str:
    return tag.rpartition("}")[2]


def _parse_xml(path: Path) -> dict[str, _ClassIndex]:
    """Raises ConfigError on malformed XML."""
    try:
        tree = ET.parse(path)
    except ET.ParseError as e:
        raise ConfigError.parse_error(str(path), str(e)) from e

    result: dict[str, _ClassIndex] = {}
    for node in tree.getroot():
        if _local(node.tag) != "class" or not node.get("name"):
            continue
        members: _ClassIndex = {}
        for child in node:
            tag = _local(child.tag)
            if tag == "property":
                member = child.get("name")
            elif tag == "getter":
                member = child.get("property")
            else:
                continue
            if not member:
                continue
            names = [c.get("name", "") for c in child if _local(c.tag) == "constraint"]
            members.setdefault(member, []).extend(names)
        result[node.get("name", "").strip("\\")] = members
    return result
