"""Identifier casing and inflection helpers.

Examples:
    as_camel_case("due_date") -> "DueDate"
    as_lower_camel_case("DueDate") -> "dueDate"
    as_class_name("task", "Data") -> "TaskData"
    singularize("categories") -> "category"
"""

from __future__ import annotations

import re

_WORD_SEPARATORS = re.compile(r"[\s_.\-]+")

# Checked in order; first match wins
_SINGULAR_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(?i)(quiz)zes$"), r"\1"),
    (re.compile(r"(?i)(matr|vert|ind)ices$"), r"\1ix"),
    (re.compile(r"(?i)(alias|status|bus)es$"), r"\1"),
    (re.compile(r"(?i)([^aeiouy])ies$"), r"\1y"),
    (re.compile(r"(?i)(x|ch|ss|sh|zz)es$"), r"\1"),
    (re.compile(r"(?i)(ve)s$"), r"\1"),
    (re.compile(r"(?i)(analy|ba|diagno|parenthe|progno|synop|the)ses$"), r"\1sis"),
    (re.compile(r"(?i)(m)en$"), r"\1an"),
    (re.compile(r"(?i)(child)ren$"), r"\1"),
    (re.compile(r"(?i)(ss|us)$"), r"\1"),
    (re.compile(r"(?i)s$"), ""),
)

_UNCOUNTABLE = frozenset({"data", "equipment", "information", "metadata", "news", "series", "species"})


def as_camel_case(value: str) -> str:
    """UpperCamelCase from snake_case, kebab-case, dotted or space separated words."""
    return "".join(word[:1].upper() + word[1:] for word in _WORD_SEPARATORS.split(value) if word)


def as_lower_camel_case(value: str) -> str:
    camel = as_camel_case(value)
    return camel[:1].lower() + camel[1:]


def as_class_name(value: str, suffix: str = "") -> str:
    """Class name with ``suffix`` appended unless already present."""
    name = as_camel_case(value)
    if suffix and not name.lower().endswith(suffix.lower()):
        name += suffix
    return name


def singularize(value: str) -> str:
    if value.lower() in _UNCOUNTABLE:
        return value
    for pattern, replacement in _SINGULAR_RULES:
        if pattern.search(value):
            return pattern.sub(replacement, value, count=1)
    return value
