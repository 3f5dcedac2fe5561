"""Metadata Bridge - entity metadata as FieldDescriptors for the synthesizer."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dtomaker.config.models import ProjectConfig
from dtomaker.core.logging import get_logger
from dtomaker.core.naming import as_camel_case
from dtomaker.metadata.entities import AssociationMapping, ClassLocator, EntityMetadataReader, FieldMapping
from dtomaker.metadata.validation import VALIDATOR_NAMESPACE, ValidatorMetadata, is_constraint
from dtomaker.source.fragments import AnnotationSpec, FieldDescriptor, FieldType, TypeKind

log = get_logger("metadata.bridge")

VALIDATOR_ALIAS = "Assert"

# Doctrine type name -> field type kind; anything else is mixed
DOCTRINE_TYPES: dict[str, TypeKind] = {
    "string": TypeKind.STRING,
    "text": TypeKind.STRING,
    "ascii_string": TypeKind.STRING,
    "guid": TypeKind.STRING,
    "decimal": TypeKind.STRING,
    "bigint": TypeKind.STRING,
    "integer": TypeKind.INT,
    "smallint": TypeKind.INT,
    "float": TypeKind.FLOAT,
    "boolean": TypeKind.BOOL,
    "array": TypeKind.ARRAY,
    "simple_array": TypeKind.ARRAY,
    "json": TypeKind.ARRAY,
    "json_array": TypeKind.ARRAY,
    "date": TypeKind.DATETIME,
    "datetime": TypeKind.DATETIME,
    "datetimetz": TypeKind.DATETIME,
    "time": TypeKind.DATETIME,
    "date_immutable": TypeKind.DATETIME_IMMUTABLE,
    "datetime_immutable": TypeKind.DATETIME_IMMUTABLE,
    "datetimetz_immutable": TypeKind.DATETIME_IMMUTABLE,
    "time_immutable": TypeKind.DATETIME_IMMUTABLE,
    "dateinterval": TypeKind.DATEINTERVAL,
}


class MetadataBridge:
    """Answers the generator's questions about one project's entities.

    Getter and setter existence is a capability query against a symbol table
    built once per entity. The validation check compares constraint counts
    between inline markers and all registered validator metadata; with no
    validator metadata it only checks that no inline constraints exist.
    """

    def __init__(self, reader: EntityMetadataReader, validator: ValidatorMetadata | None = None) -> None:
        self.reader = reader
        self.validator = validator

    @classmethod
    def for_project(cls, root: Path, project: ProjectConfig, *, validation_enabled: bool = True) -> MetadataBridge:
        locator = ClassLocator.for_project(root, project.psr4_prefix, project.source_dir)
        reader = EntityMetadataReader(locator)
        validator = ValidatorMetadata(reader, root, project.validator_dirs) if validation_enabled else None
        return cls(reader, validator)

    def is_mapped_entity(self, entity_ref: str) -> bool:
        return self.reader.is_mapped_entity(entity_ref)

    def list_entities(self, namespace: str) -> list[str]:
        return self.reader.list_entities(namespace)

    def describe_fields(self, entity_ref: str) -> tuple[FieldDescriptor, ...]:
        """Non-identifier mapped fields of ``entity_ref``, in declaration order.

        Raises:
            InvalidEntityReference: When the class is missing or not mapped.
        """
        metadata = self.reader.get_metadata(entity_ref)
        descriptors = []
        for mapping in metadata.mappings:
            if mapping.is_identifier:
                continue
            descriptors.append(
                FieldDescriptor(
                    name=mapping.name,
                    type=_field_type(mapping),
                    is_collection=isinstance(mapping, AssociationMapping) and mapping.is_collection,
                    annotations=tuple(_as_validator_annotation(s) for s in mapping.annotations if is_constraint(s)),
                    has_existing_getter=self.field_has_getter(entity_ref, mapping.name),
                    has_existing_setter=self.field_has_setter(entity_ref, mapping.name),
                    declared_in=mapping.declared_in,
                )
            )
        log.debug(
            "fields_described",
            entity=metadata.class_name,
            fields=len(descriptors),
            identifiers=list(metadata.identifiers),
        )
        return tuple(descriptors)

    def field_has_getter(self, entity_ref: str, field_name: str) -> bool:
        return self.reader.symbol_table(entity_ref).has_public_method(f"get{as_camel_case(field_name)}")

    def field_has_setter(self, entity_ref: str, field_name: str) -> bool:
        return self.reader.symbol_table(entity_ref).has_public_method(f"set{as_camel_case(field_name)}")

    def suspect_inconsistent_validations(
        self,
        entity_ref: str,
        field_name: str,
        inline_count: int | None = None,
    ) -> bool:
        """True when registered validator metadata has a different constraint count.

        ``inline_count`` defaults to the constraints declared on the field's
        property itself. Only counts are compared, not constraint kinds.
        """
        if inline_count is None:
            mapping = self.reader.get_metadata(entity_ref).mapping(field_name)
            inline_count = sum(1 for s in mapping.annotations if is_constraint(s)) if mapping else 0
        if self.validator is None:
            return inline_count != 0
        registered = self.validator.constraint_count(entity_ref, field_name)
        if registered != inline_count:
            log.debug(
                "validation_count_mismatch",
                entity=entity_ref,
                field=field_name,
                inline=inline_count,
                registered=registered,
            )
        return registered != inline_count


def _field_type(mapping: FieldMapping | AssociationMapping) -> FieldType:
    if isinstance(mapping, AssociationMapping):
        if mapping.target is None:
            return FieldType(TypeKind.MIXED, nullable=True)
        return FieldType(TypeKind.REFERENCE, nullable=mapping.nullable, reference=mapping.target)
    return FieldType(DOCTRINE_TYPES.get(mapping.type, TypeKind.MIXED), nullable=mapping.nullable)


def _as_validator_annotation(spec: AnnotationSpec) -> AnnotationSpec:
    """The constraint spelled ``@Assert\\Name`` whatever alias the entity used."""
    return AnnotationSpec(
        name=f"{VALIDATOR_ALIAS}\\{spec.class_name[len(VALIDATOR_NAMESPACE) + 1 :]}",
        arguments=tuple((key, _normalize(value)) for key, value in spec.arguments),
        namespace=VALIDATOR_NAMESPACE,
        alias=VALIDATOR_ALIAS,
    )


def _normalize(value: Any) -> Any:
    if isinstance(value, AnnotationSpec):
        return _as_validator_annotation(value) if is_constraint(value) else value
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    if isinstance(value, dict):
        return {k: _normalize(v) for k, v in value.items()}
    return value
