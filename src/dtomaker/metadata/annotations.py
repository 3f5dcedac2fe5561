"""Read metadata markers attached to declarations.

Two syntaxes are understood and both produce AnnotationSpecs:

- Doctrine docblock annotations: ``@ORM\\Column(type="string", length=255)``,
  with ``{...}`` arrays, nested ``@Annotations`` and ``Class::CONST`` values
- PHP 8 attributes: ``#[ORM\\Column(type: 'string', length: 255)]``, with
  ``[...]`` arrays and ``new Marker(...)`` nested markers

Marker names are resolved against the declaring file's imports through the
``resolve`` callable (normally ``ClassModel.resolve_name``).
"""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

from dtomaker.core.errors import ParseError
from dtomaker.source.fragments import AnnotationSpec, Constant
from dtomaker.source.treesitter import PhpSource, child_of_type, children_of_type, compact, field

Resolver = Callable[[str], str]

_DOC_NAME = re.compile(r"\\?[A-Za-z_][A-Za-z0-9_]*(?:\\[A-Za-z_][A-Za-z0-9_]*)*")
_DOC_IDENT = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_DOC_NUMBER = re.compile(r"-?(?:\d+\.\d*|\.\d+|\d+)(?:[eE][-+]?\d+)?")
_DOC_LINE = re.compile(r"^[ \t]*\*(?!/)", re.MULTILINE)


def parse_docblock(doc_comment: str | None, resolve: Resolver | None = None) -> tuple[AnnotationSpec, ...]:
    """All markers in a ``/** ... */`` comment, in source order.

    Raises:
        ParseError: When a marker's argument list is malformed.
    """
    if not doc_comment:
        return ()
    body = doc_comment.strip().removeprefix("/**").removesuffix("*/")
    return tuple(_DocParser(_DOC_LINE.sub("", body), resolve).annotations())


def parse_attributes(
    attributes: tuple[str, ...] | list[str],
    resolve: Resolver | None = None,
) -> tuple[AnnotationSpec, ...]:
    """All markers in a sequence of ``#[...]`` attribute groups, in source order.

    Raises:
        ParseError: When a group does not parse as PHP attribute syntax.
    """
    specs: list[AnnotationSpec] = []
    for group in attributes:
        specs.extend(_AttributeReader(group, resolve).attributes())
    return tuple(specs)


def _is_marker(name: str) -> bool:
    # Lowercase tags (@var, @param, @return, ...) are documentation
    bare = name.lstrip("\\")
    return "\\" in bare or bare[:1].isupper()


def _spec(name: str, arguments: list[tuple[str | None, Any]], resolve: Resolver | None) -> AnnotationSpec:
    if name.startswith("\\") or resolve is None:
        return AnnotationSpec(name=name, arguments=tuple(arguments))
    head, sep, _ = name.partition("\\")
    if sep:
        return AnnotationSpec(name=name, arguments=tuple(arguments), namespace=resolve(head), alias=head)
    return AnnotationSpec(name=name, arguments=tuple(arguments), namespace=resolve(name))


def _collect(items: list[tuple[Any, Any]]) -> list[Any] | dict[Any, Any]:
    """Array literal as a list when it has no keys, else as a dict."""
    if all(key is None for key, _ in items):
        return [value for _, value in items]
    result: dict[Any, Any] = {}
    auto = 0
    for key, value in items:
        if key is None:
            key = auto
        if isinstance(key, int):
            auto = key + 1
        result[key] = value
    return result


class _DocParser:
    """Recursive-descent parser over the text of one docblock."""

    def __init__(self, text: str, resolve: Resolver | None) -> None:
        self.text = text
        self.pos = 0
        self.resolve = resolve

    def annotations(self) -> list[AnnotationSpec]:
        found: list[AnnotationSpec] = []
        while (at := self.text.find("@", self.pos)) >= 0:
            self.pos = at + 1
            if at > 0 and not (self.text[at - 1].isspace() or self.text[at - 1] == "*"):
                continue
            name = self._match(_DOC_NAME)
            if name is None or not _is_marker(name):
                continue
            found.append(self._annotation(name))
        return found

    def _annotation(self, name: str) -> AnnotationSpec:
        arguments: list[tuple[str | None, Any]] = []
        if self.text.startswith("(", self.pos):
            self.pos += 1
            self._skip_ws()
            while self._peek() != ")":
                arguments.append(self._argument())
                self._skip_ws()
                if self._peek() == ",":
                    self.pos += 1
                    self._skip_ws()
                elif self._peek() != ")":
                    raise self._error(f"expected ',' or ')' in @{name}")
            self.pos += 1
        return _spec(name, arguments, self.resolve)

    def _argument(self) -> tuple[str | None, Any]:
        start = self.pos
        key = self._match(_DOC_IDENT)
        if key is not None:
            self._skip_ws()
            if self._peek() == "=" or (self._peek() == ":" and not self.text.startswith("::", self.pos)):
                self.pos += 1
                self._skip_ws()
                return key, self._value()
        self.pos = start
        return None, self._value()

    def _value(self) -> Any:
        char = self._peek()
        if char == '"':
            return self._string()
        if char == "{":
            return self._array()
        if char == "@":
            self.pos += 1
            name = self._match(_DOC_NAME)
            if name is None:
                raise self._error("expected annotation name after '@'")
            return self._annotation(name)
        if number := self._match(_DOC_NUMBER):
            return float(number) if any(c in number for c in ".eE") else int(number)
        name = self._match(_DOC_NAME)
        if name is None:
            raise self._error(f"unexpected {char!r}")
        lowered = name.lower()
        if lowered in ("true", "false"):
            return lowered == "true"
        if lowered == "null":
            return None
        if self.text.startswith("::", self.pos):
            self.pos += 2
            member = self._match(_DOC_IDENT)
            if member is None:
                raise self._error(f"expected constant name after {name}::")
            return Constant(f"{name}::{member}")
        return Constant(name)

    def _string(self) -> str:
        self.pos += 1
        parts: list[str] = []
        while True:
            end = self.text.find('"', self.pos)
            if end < 0:
                raise self._error("unterminated string")
            parts.append(self.text[self.pos : end])
            if self.text.startswith('""', end):
                parts.append('"')
                self.pos = end + 2
                continue
            self.pos = end + 1
            return "".join(parts)

    def _array(self) -> list[Any] | dict[Any, Any]:
        self.pos += 1
        items: list[tuple[Any, Any]] = []
        self._skip_ws()
        while self._peek() != "}":
            value = self._value()
            self._skip_ws()
            if self._peek() == "=" or (self._peek() == ":" and not self.text.startswith("::", self.pos)):
                self.pos += 1
                self._skip_ws()
                items.append((str(value) if isinstance(value, Constant) else value, self._value()))
            else:
                items.append((None, value))
            self._skip_ws()
            if self._peek() == ",":
                self.pos += 1
                self._skip_ws()
            elif self._peek() != "}":
                raise self._error("expected ',' or '}' in array")
        self.pos += 1
        return _collect(items)

    def _peek(self) -> str:
        if self.pos >= len(self.text):
            raise self._error("unexpected end of docblock")
        return self.text[self.pos]

    def _match(self, pattern: re.Pattern[str]) -> str | None:
        match = pattern.match(self.text, self.pos)
        if match is None:
            return None
        self.pos = match.end()
        return match.group(0)

    def _skip_ws(self) -> None:
        while self.pos < len(self.text) and self.text[self.pos].isspace():
            self.pos += 1

    def _error(self, reason: str) -> ParseError:
        return ParseError.at(f"Malformed annotation: {reason}")


class _AttributeReader:
    """Reads the markers of one ``#[...]`` group from its tree-sitter parse."""

    def __init__(self, group: str, resolve: Resolver | None) -> None:
        self.group = group.strip()
        self.source = PhpSource(f"<?php\n{self.group}\nclass Attributed {{}}\n")
        self.resolve = resolve

    def attributes(self) -> list[AnnotationSpec]:
        if self.source.root.has_error:
            raise ParseError.at(f"Malformed attribute: {self.group[:60]!r}")
        declaration = child_of_type(self.source.root, "class_declaration")
        attribute_list = field(declaration, "attributes", "attribute_list") if declaration is not None else None
        if attribute_list is None:
            raise ParseError.at(f"Malformed attribute: {self.group[:60]!r}")

        specs: list[AnnotationSpec] = []
        for child in attribute_list.children:
            nodes = children_of_type(child, "attribute") if child.type == "attribute_group" else [child]
            specs.extend(self._marker(node) for node in nodes if node.type == "attribute")
        return specs

    def text(self, node: Any) -> str:
        return self.source.node_text(node)

    def _marker(self, node: Any) -> AnnotationSpec:
        name = child_of_type(node, "name", "qualified_name")
        if name is None:
            raise ParseError.at(f"Malformed attribute: no name in {self.text(node)!r}")
        arguments = field(node, "parameters", "arguments")
        return _spec(compact(self.text(name)), self._arguments(arguments), self.resolve)

    def _arguments(self, node: Any | None) -> list[tuple[str | None, Any]]:
        if node is None:
            return []
        arguments: list[tuple[str | None, Any]] = []
        for argument in children_of_type(node, "argument"):
            named = [c for c in argument.named_children if c.type != "comment"]
            keyed = len(named) > 1 and named[0].type == "name" and any(c.type == ":" for c in argument.children)
            if keyed:
                arguments.append((self.text(named[0]), self._value(named[1])))
            elif named:
                arguments.append((None, self._value(named[0])))
        return arguments

    def _value(self, node: Any) -> Any:
        kind = node.type
        text = self.text(node)
        if kind in ("string", "encapsed_string"):
            return _unquote(text)
        if kind in ("integer", "float"):
            return _number(text)
        if kind == "unary_op_expression" and text.lstrip()[:1] in "-+":
            value = self._value(node.named_children[-1])
            return -value if text.lstrip().startswith("-") else value
        if kind == "parenthesized_expression" and node.named_children:
            return self._value(node.named_children[0])
        if kind == "array_creation_expression":
            return self._array(node)
        if kind == "object_creation_expression":
            return self._marker(node)
        if kind in ("boolean", "null", "name", "qualified_name"):
            lowered = text.lower()
            if lowered in ("true", "false"):
                return lowered == "true"
            if lowered == "null":
                return None
        return Constant(compact(text))

    def _array(self, node: Any) -> list[Any] | dict[Any, Any]:
        items: list[tuple[Any, Any]] = []
        for element in children_of_type(node, "array_element_initializer"):
            named = [c for c in element.named_children if c.type != "comment"]
            if len(named) == 2:
                key = self._value(named[0])
                items.append((str(key) if isinstance(key, Constant) else key, self._value(named[1])))
            elif named:
                items.append((None, self._value(named[0])))
        return _collect(items)


def _unquote(text: str) -> str:
    quote, body = text[0], text[1:-1]
    if quote == "'":
        return body.replace("\\'", "'").replace("\\\\", "\\")
    return body.replace('\\"', '"').replace("\\\\", "\\")


def _number(text: str) -> int | float:
    cleaned = text.replace("_", "")
    if cleaned[:2].lower() in ("0x", "0b"):
        return int(cleaned, 0)
    if any(c in cleaned for c in ".eE"):
        return float(cleaned)
    return int(cleaned)
