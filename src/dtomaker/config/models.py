"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (DTOMAKER__SECTION__KEY)
3. Project YAML (.dtomaker.yaml)
4. Global YAML (~/.config/dtomaker/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    DTOMAKER__<SECTION>__<KEY>=<VALUE>

Examples:
    DTOMAKER__LOGGING__LEVEL=DEBUG
    DTOMAKER__PROJECT__SOURCE_DIR=lib
    DTOMAKER__GENERATION__USE_FLUENT_MUTATORS=false
"""

import re
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

_NAMESPACE_SEGMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        DTOMAKER__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. The run summary is printed regardless of level.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class ProjectConfig(BaseModel):
    """Layout of the PHP project the maker writes into.

    Env vars:
        DTOMAKER__PROJECT__SOURCE_DIR: Directory mapped to the PSR-4 prefix
        DTOMAKER__PROJECT__PSR4_PREFIX: Root namespace (default: App\\)
    """

    source_dir: str = Field(
        default="src",
        description="Directory (relative to the project root) mapped to psr4_prefix.",
    )
    psr4_prefix: str = Field(
        default="App\\",
        description="Root namespace of the application classes.",
    )
    entity_namespace: str = Field(
        default="Entity",
        description="Sub-namespace holding Doctrine entities.",
    )
    dto_namespace: str = Field(
        default="Dto",
        description="Sub-namespace where generated DTO classes are written.",
    )
    dto_suffix: str = Field(
        default="Data",
        description="Suffix appended to DTO class names that do not already carry it.",
    )
    validator_dirs: list[str] = Field(
        default_factory=lambda: ["config/validator"],
        description="Directories scanned for YAML and XML validation mapping files.",
    )

    @field_validator("psr4_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        v = v.strip("\\")
        if not v or not all(_NAMESPACE_SEGMENT.match(part) for part in v.split("\\")):
            raise ValueError(f"Not a valid namespace prefix: {v!r}")
        return v + "\\"

    @field_validator("entity_namespace", "dto_namespace")
    @classmethod
    def validate_namespace(cls, v: str) -> str:
        v = v.strip("\\")
        if v and not all(_NAMESPACE_SEGMENT.match(part) for part in v.split("\\")):
            raise ValueError(f"Not a valid namespace: {v!r}")
        return v


class GenerationConfig(BaseModel):
    """Defaults for the generation options.

    Env vars:
        DTOMAKER__GENERATION__OVERWRITE_EXISTING_MEMBERS: Replace same-name properties
        DTOMAKER__GENERATION__USE_ANNOTATIONS: Copy validation annotations
        DTOMAKER__GENERATION__USE_FLUENT_MUTATORS: Setters return $this
        DTOMAKER__GENERATION__VALIDATION_ENABLED: Read validator metadata
    """

    overwrite_existing_members: bool = Field(
        default=False,
        description="Replace properties that already exist in the target class. "
        "Existing methods are never replaced.",
    )
    use_annotations: bool = Field(
        default=True,
        description="Copy validation constraint annotations onto DTO properties.",
    )
    use_fluent_mutators: bool = Field(
        default=True,
        description="Generated setters return the instance to allow chaining.",
    )
    validation_enabled: bool = Field(
        default=True,
        description="Compare inline constraints with the registered validator metadata. "
        "Disable when the project does not use the validator component.",
    )


class DtoMakerConfig(BaseModel):
    """Root configuration (for type hints; use DtoMakerSettings for loading)."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    project: ProjectConfig = Field(default_factory=ProjectConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
