"""Tree-sitter parsing of PHP source.

Wraps the ``tree_sitter_php`` grammar with the few helpers the class loader
and the attribute reader share: node text, byte to character offsets and
locating the first syntax error.
"""

from __future__ import annotations

import importlib
from functools import lru_cache
from typing import Any

import tree_sitter

from dtomaker.core.errors import InternalError, ParseError

GRAMMAR_MODULE = "tree_sitter_php"
LANGUAGE_FUNC = "language_php"

TYPE_NODES = frozenset(
    {
        "named_type",
        "optional_type",
        "primitive_type",
        "union_type",
        "intersection_type",
        "disjunctive_normal_form_type",
        "bottom_type",
    }
)


@lru_cache(maxsize=1)
def _language() -> tree_sitter.Language:
    try:
        mod = importlib.import_module(GRAMMAR_MODULE)
        lang_fn = getattr(mod, LANGUAGE_FUNC)
    except (ImportError, AttributeError) as err:
        raise InternalError.unexpected("PHP grammar not available", module=GRAMMAR_MODULE) from err
    return tree_sitter.Language(lang_fn())


class PhpSource:
    """One parsed PHP text and its UTF-8 encoding."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.data = text.encode("utf-8")
        parser = tree_sitter.Parser()
        parser.language = _language()
        self.tree = parser.parse(self.data)
        # Non-ASCII text needs byte offsets mapped back to str indices
        self._ascii = len(self.data) == len(text)

    @property
    def root(self) -> Any:
        return self.tree.root_node

    def slice(self, start: int, end: int) -> str:
        """Text between two byte offsets."""
        return self.data[start:end].decode("utf-8")

    def node_text(self, node: Any) -> str:
        return self.slice(node.start_byte, node.end_byte)

    def char_offset(self, byte_offset: int) -> int:
        if self._ascii:
            return byte_offset
        return len(self.data[:byte_offset].decode("utf-8"))

    def check_syntax(self) -> None:
        """Raise on the first ERROR or MISSING node.

        Raises:
            ParseError: When the text does not parse cleanly.
        """
        if not self.root.has_error:
            return
        node = first_error(self.root)
        if node is None:
            raise ParseError.at("Syntax error")
        line = node.start_point[0] + 1
        if node.is_missing:
            raise ParseError.at(f"Missing {node.type!r}", line)
        snippet = self.node_text(node).strip()
        if not snippet:
            raise ParseError.at("Syntax error", line)
        raise ParseError.at(f"Syntax error near {snippet.splitlines()[0][:40]!r}", line)


def first_error(node: Any) -> Any | None:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing or child.type == "ERROR":
            found = first_error(child)
            if found is not None:
                return found
    return None


def field(node: Any, name: str, *types: str) -> Any | None:
    """Child in field ``name``, else the first child of one of ``types``."""
    found = node.child_by_field_name(name)
    return found if found is not None else child_of_type(node, *types)


def children_of_type(node: Any, *types: str) -> list[Any]:
    return [child for child in node.children if child.type in types]


def child_of_type(node: Any, *types: str) -> Any | None:
    for child in node.children:
        if child.type in types:
            return child
    return None


def is_doc_comment(text: str) -> bool:
    return text.startswith("/**") and text != "/**/"


def compact(text: str) -> str:
    """Type or name text with all whitespace removed."""
    return "".join(text.split())
