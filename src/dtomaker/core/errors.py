"""dtomaker error types with typed error codes.

Error code ranges:
- 1xxx: Command input
- 2xxx: Config
- 3xxx: Entity metadata
- 4xxx: Source parsing
- 5xxx: Merge
- 9xxx: Internal

Fatal conditions are raised as exceptions. Non-fatal conditions (members that
already exist, validation metadata that may be out of sync) are never raised;
they are collected as ``Advisory`` records and reported once at the end of a run.
"""

from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Command input (1xxx)
    INVALID_CLASS_NAME = 1001

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Entity metadata (3xxx)
    ENTITY_NOT_FOUND = 3001
    ENTITY_NOT_MAPPED = 3002

    # Source parsing (4xxx)
    PARSE_ERROR = 4001
    UNSUPPORTED_CONSTRUCT = 4002

    # Merge (5xxx)
    MERGE_MISSING_ANCHOR = 5001

    # Internal (9xxx)
    INTERNAL_ERROR = 9001


@dataclass(frozen=True, slots=True)
class DtoMakerError(Exception):
    """Base error with structured context for CLI reporting."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class InvalidClassName(DtoMakerError):
    """A class name given on the command line is not a valid PHP class name."""

    @classmethod
    def for_name(cls, name: str, reason: str) -> "InvalidClassName":
        return cls(
            code=ErrorCode.INVALID_CLASS_NAME,
            message=f"'{name}' is not a valid PHP class name: {reason}",
            details={"name": name, "reason": reason},
        )


class ConfigError(DtoMakerError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class InvalidEntityReference(DtoMakerError):
    """The bound class does not resolve to a mapped persistent entity."""

    @classmethod
    def not_found(cls, class_name: str, path: str | None = None) -> "InvalidEntityReference":
        details: dict[str, Any] = {"class": class_name}
        if path is not None:
            details["path"] = path
        return cls(
            code=ErrorCode.ENTITY_NOT_FOUND,
            message=f"Class {class_name} could not be found",
            details=details,
        )

    @classmethod
    def not_mapped(cls, class_name: str) -> "InvalidEntityReference":
        return cls(
            code=ErrorCode.ENTITY_NOT_MAPPED,
            message=f"The bound class {class_name} is not a valid doctrine entity",
            details={"class": class_name},
        )


class ParseError(DtoMakerError):
    """Source text the class model cannot represent."""

    @classmethod
    def at(cls, reason: str, line: int | None = None) -> "ParseError":
        where = f" (line {line})" if line is not None else ""
        return cls(
            code=ErrorCode.PARSE_ERROR,
            message=f"{reason}{where}",
            details={"reason": reason, "line": line},
        )

    @classmethod
    def unsupported(cls, construct: str, line: int | None = None) -> "ParseError":
        where = f" (line {line})" if line is not None else ""
        return cls(
            code=ErrorCode.UNSUPPORTED_CONSTRUCT,
            message=f"Unsupported construct: {construct}{where}",
            details={"construct": construct, "line": line},
        )


class MergeConflict(DtoMakerError):
    """A structural anchor required for an edit is missing."""

    @classmethod
    def missing_anchor(cls, anchor: str) -> "MergeConflict":
        return cls(
            code=ErrorCode.MERGE_MISSING_ANCHOR,
            message=f"Cannot merge declarations: no {anchor} found",
            details={"anchor": anchor},
        )


class InternalError(DtoMakerError):
    """Internal/unexpected errors."""

    @classmethod
    def unexpected(cls, reason: str, **details: Any) -> "InternalError":
        return cls(
            code=ErrorCode.INTERNAL_ERROR,
            message=f"Internal error: {reason}",
            details=details,
        )


class AdvisoryKind(StrEnum):
    """Kinds of non-fatal conditions reported at the end of a run."""

    MEMBER_ALREADY_EXISTS = "member_already_exists"
    VALIDATION_METADATA_MISMATCH = "validation_metadata_mismatch"
    ASSERTIONS_IMPORTED = "assertions_imported"
    MISSING_ENTITY_ACCESSORS = "missing_entity_accessors"
    IMPORT_ALIAS_CLASH = "import_alias_clash"


@dataclass(frozen=True, slots=True)
class Advisory:
    """A non-fatal condition; generation proceeds."""

    kind: AdvisoryKind
    message: str
    subject: str | None = None
