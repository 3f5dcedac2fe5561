"""Metadata module - Doctrine mappings, validator metadata and the bridge."""

from dtomaker.metadata.bridge import MetadataBridge
from dtomaker.metadata.entities import (
    AssociationMapping,
    ClassLocator,
    EntityMetadata,
    EntityMetadataReader,
    FieldMapping,
    SymbolTable,
)
from dtomaker.metadata.validation import ValidatorMetadata

__all__ = [
    "AssociationMapping",
    "ClassLocator",
    "EntityMetadata",
    "EntityMetadataReader",
    "FieldMapping",
    "MetadataBridge",
    "SymbolTable",
    "ValidatorMetadata",
]
