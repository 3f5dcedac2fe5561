"""Core module exports."""

from dtomaker.core.errors import (
    Advisory,
    AdvisoryKind,
    ConfigError,
    DtoMakerError,
    ErrorCode,
    InternalError,
    InvalidClassName,
    InvalidEntityReference,
    MergeConflict,
    ParseError,
)
from dtomaker.core.logging import (
    clear_run_id,
    configure_logging,
    get_logger,
    get_run_id,
    set_run_id,
)
from dtomaker.core.progress import note, pluralize, status, success

__all__ = [
    # Errors
    "Advisory",
    "AdvisoryKind",
    "ConfigError",
    "DtoMakerError",
    "ErrorCode",
    "InternalError",
    "InvalidClassName",
    "InvalidEntityReference",
    "MergeConflict",
    "ParseError",
    # Logging
    "clear_run_id",
    "configure_logging",
    "get_logger",
    "get_run_id",
    "set_run_id",
    # Output
    "note",
    "pluralize",
    "status",
    "success",
]
