"""Config module exports."""

from dtomaker.config.loader import DtoMakerSettings, load_config
from dtomaker.config.models import (
    DtoMakerConfig,
    GenerationConfig,
    LoggingConfig,
    ProjectConfig,
)

__all__ = [
    "load_config",
    "DtoMakerConfig",
    "DtoMakerSettings",
    "GenerationConfig",
    "LoggingConfig",
    "ProjectConfig",
]
