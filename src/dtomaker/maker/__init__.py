"""DTO maker: name resolution, class skeletons and the make:dto run."""

from dtomaker.maker.dto import NOTES, DtoMaker, DtoRequest, GenerationReport
from dtomaker.maker.naming import (
    ClassNameDetails,
    create_class_name_details,
    namespace_for,
)
from dtomaker.maker.skeleton import render_skeleton

__all__ = [
    # Generation
    "NOTES",
    "DtoMaker",
    "DtoRequest",
    "GenerationReport",
    # Naming
    "ClassNameDetails",
    "create_class_name_details",
    "namespace_for",
    # Skeleton
    "render_skeleton",
]
