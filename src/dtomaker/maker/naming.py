"""Resolve command-line names to fully qualified class names."""

from __future__ import annotations

import re
from dataclasses import dataclass

from dtomaker.core.errors import InvalidClassName
from dtomaker.core.naming import as_camel_case, as_class_name

_SEGMENT = re.compile(r"^[A-Za-z_\x80-\U0010ffff][A-Za-z0-9_\x80-\U0010ffff]*$")

RESERVED_WORDS = frozenset(
    """
    __halt_compiler abstract and array as bool break callable case catch class clone const
    continue declare default do echo else elseif empty enddeclare endfor endforeach endif
    endswitch endwhile eval exit extends false final finally float fn for foreach
    function global goto if implements include include_once instanceof insteadof int
    interface isset iterable list match mixed namespace never new null object or parent
    print private protected public readonly require require_once return self static string
    switch throw trait true try unset use var void while xor yield
    """.split()
)


@dataclass(frozen=True, slots=True)
class ClassNameDetails:
    """A class name split the ways the generator needs it.

    ``namespace_prefix`` is the namespace the name was resolved under
    (``App\\Dto``); ``relative_name`` is what follows it (``Admin\\TaskData``).
    """

    full_name: str
    namespace_prefix: str
    suffix: str = ""

    @property
    def short_name(self) -> str:
        return self.full_name.rsplit("\\", 1)[-1]

    @property
    def namespace(self) -> str:
        return self.full_name.rpartition("\\")[0]

    @property
    def relative_name(self) -> str:
        prefix = self.namespace_prefix + "\\" if self.namespace_prefix else ""
        if prefix and self.full_name.startswith(prefix):
            return self.full_name[len(prefix) :]
        return self.full_name

    @property
    def relative_name_without_suffix(self) -> str:
        name = self.relative_name
        if self.suffix and name.endswith(self.suffix) and len(name) > len(self.suffix):
            return name[: -len(self.suffix)]
        return name


def create_class_name_details(
    name: str,
    namespace_prefix: str,
    suffix: str = "",
    root_namespace: str = "App",
) -> ClassNameDetails:
    """Resolve ``name`` under ``root_namespace\\namespace_prefix``.

    A leading backslash marks a fully qualified name that is used as given.
    Otherwise each ``\\`` or ``/`` separated segment is camel-cased and
    ``suffix`` is appended to the last one unless already present:
    ``create_class_name_details("task", "Dto", "Data")`` gives ``App\\Dto\\TaskData``.

    Raises:
        InvalidClassName: When a segment is empty, not an identifier or a
            reserved word.
    """
    prefix = namespace_for(root_namespace, namespace_prefix)
    if not name.strip().strip("\\/"):
        raise InvalidClassName.for_name(name, "the name is empty")
    if name.startswith("\\"):
        full_name = name.strip("\\")
    else:
        *parents, last = re.split(r"[\\/]", name.strip().strip("\\/"))
        segments = [as_camel_case(part) for part in parents] + [as_class_name(last, suffix)]
        full_name = "\\".join(part for part in (prefix, *segments) if part)

    _validate(name, full_name)
    return ClassNameDetails(full_name=full_name, namespace_prefix=prefix, suffix=suffix)


def namespace_for(root_namespace: str, namespace_prefix: str) -> str:
    """``App\\`` and ``Dto`` give ``App\\Dto``."""
    return "\\".join(part for part in (root_namespace.strip("\\"), namespace_prefix.strip("\\")) if part)


def _validate(given: str, full_name: str) -> None:
    if not full_name:
        raise InvalidClassName.for_name(given, "the name is empty")
    for segment in full_name.split("\\"):
        if not segment:
            raise InvalidClassName.for_name(given, "empty namespace segment")
        if not _SEGMENT.match(segment):
            raise InvalidClassName.for_name(given, f"'{segment}' is not an identifier")
        if segment.lower() in RESERVED_WORDS:
            raise InvalidClassName.for_name(given, f"'{segment}' is a reserved word")
