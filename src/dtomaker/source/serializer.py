"""Serialize a ClassModel back to text and infer the file's layout style."""

from __future__ import annotations

import re

from dtomaker.source.model import ClassModel

DEFAULT_INDENT = "    "

_LEADING_LINE = re.compile(r"(?:^|\n)([ \t]*)\S")


def serialize(model: ClassModel) -> str:
    """Join the model's regions; untouched spans come out byte-identical."""
    return model.prefix + "".join(m.text for m in model.members) + model.suffix


def detect_indent(model: ClassModel) -> str:
    """Indentation unit of class members, from the first existing member.

    Falls back to four spaces for classes without members or members that
    share a line with the opening brace.
    """
    if not model.members:
        return DEFAULT_INDENT
    match = _LEADING_LINE.search(model.members[0].text)
    if match is None or not match.group(0).startswith("\n"):
        return DEFAULT_INDENT
    indent = match.group(1)
    return indent or DEFAULT_INDENT


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def reindent(lines: tuple[str, ...] | list[str], unit: str, depth: int = 1) -> list[str]:
    """Re-indent lines written with a four-space unit to ``unit`` at ``depth``.

    Blank lines stay empty so no trailing whitespace is introduced.
    """
    out: list[str] = []
    for line in lines:
        if not line.strip():
            out.append("")
            continue
        stripped = line.lstrip(" ")
        level, extra = divmod(len(line) - len(stripped), 4)
        out.append(unit * (depth + level) + " " * extra + stripped)
    return out


def count_leading_newlines(text: str) -> int:
    """Newlines in the whitespace run at the start of ``text``."""
    match = re.match(r"[ \t\r\n]*", text)
    return match.group(0).count("\n") if match else 0
