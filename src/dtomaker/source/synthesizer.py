"""Declaration Synthesizer - textual declarations for DTO fields.

Pure functions: identical inputs give identical fragments, nothing is read
from disk and nothing is logged.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from dtomaker.core.naming import as_camel_case, as_lower_camel_case, singularize
from dtomaker.source.fragments import (
    AnnotationSpec,
    Constant,
    DeclarationFragment,
    FieldDescriptor,
    GenerationOptions,
    Import,
    MemberFragment,
    TypeKind,
)
from dtomaker.source.model import MemberKind

ARRAY_COLLECTION = "Doctrine\\Common\\Collections\\ArrayCollection"


def synthesize(field: FieldDescriptor, options: GenerationOptions) -> DeclarationFragment:
    """Build the property, accessors and imports for one field."""
    imports: list[Import] = []
    annotations = field.annotations if options.use_annotations else ()
    for spec in annotations:
        if spec.namespace:
            _add_import(imports, Import(spec.namespace, spec.alias))
    if field.type.kind is TypeKind.REFERENCE and field.type.reference:
        _add_import(imports, Import(field.type.reference))

    methods: tuple[MemberFragment, ...] = ()
    if options.generate_accessors:
        if field.is_collection:
            methods = _collection_accessors(field, options)
        else:
            methods = _scalar_accessors(field, options)

    return DeclarationFragment(
        property_member=_property(field, annotations, options),
        methods=methods,
        imports=tuple(imports),
        descriptor=field,
    )


def synthesize_helpers(
    entity_class: str,
    fields: Sequence[FieldDescriptor],
) -> DeclarationFragment:
    """Helper methods binding the DTO to its entity.

    ``__construct`` extracts from an optional entity, ``extract`` copies entity
    data into the DTO and ``fill`` copies DTO data back into the entity.
    Fields whose entity accessor is missing are emitted as ``@todo`` comments.
    To-many fields travel as arrays in the DTO and as Collections in the entity.
    """
    entity = entity_class.rsplit("\\", 1)[-1]
    var = as_lower_camel_case(entity)

    constructor = MemberFragment(
        kind=MemberKind.METHOD,
        name="__construct",
        modifiers=("public",),
        lines=(
            f"public function __construct(?{entity} ${var} = null)",
            "{",
            f"    if (null !== ${var}) {{",
            f"        $this->extract(${var});",
            "    }",
            "}",
        ),
    )

    imports = [Import(entity_class)]
    fill_body: list[str] = []
    extract_body: list[str] = []
    for field in fields:
        camel = as_camel_case(field.name)
        if field.has_existing_setter and field.is_collection:
            # The DTO holds a plain array, the entity a Doctrine Collection
            fill_body.append(f"    ${var}->set{camel}(new ArrayCollection($this->{field.name}));")
            _add_import(imports, Import(ARRAY_COLLECTION))
        elif field.has_existing_setter:
            fill_body.append(f"    ${var}->set{camel}($this->{field.name});")
        else:
            fill_body.append(f"    // @todo add set{camel}() to {entity} and fill $this->{field.name}")
        if field.has_existing_getter and field.is_collection:
            extract_body.append(f"    $this->{field.name} = ${var}->get{camel}()->toArray();")
        elif field.has_existing_getter:
            extract_body.append(f"    $this->{field.name} = ${var}->get{camel}();")
        else:
            extract_body.append(f"    // @todo add get{camel}() to {entity} and extract $this->{field.name}")

    fill = MemberFragment(
        kind=MemberKind.METHOD,
        name="fill",
        modifiers=("public",),
        type=entity,
        lines=(
            "/**",
            f" * Fill the {entity} entity with data from this DTO.",
            " */",
            f"public function fill({entity} ${var}): {entity}",
            "{",
            *fill_body,
            *([""] if fill_body else []),
            f"    return ${var};",
            "}",
        ),
    )
    extract = MemberFragment(
        kind=MemberKind.METHOD,
        name="extract",
        modifiers=("public",),
        type="self",
        lines=(
            "/**",
            f" * Extract data from the {entity} entity into this DTO.",
            " */",
            f"public function extract({entity} ${var}): self",
            "{",
            *extract_body,
            *([""] if extract_body else []),
            "    return $this;",
            "}",
        ),
    )
    return DeclarationFragment(
        methods=(constructor, fill, extract),
        imports=tuple(imports),
    )


def render_annotation(spec: AnnotationSpec) -> str:
    """Doctrine-style annotation text, e.g. ``@Assert\\Length(max=255)``."""
    args = ", ".join(
        _render_value(value) if key is None else f"{key}={_render_value(value)}" for key, value in spec.arguments
    )
    return f"@{spec.name}({args})"


def _render_value(value: Any) -> str:
    if isinstance(value, AnnotationSpec):
        return render_annotation(value)
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return repr(value)
    if isinstance(value, dict):
        inner = ", ".join(f"{_render_value(k)}={_render_value(v)}" for k, v in value.items())
        return "{" + inner + "}"
    if isinstance(value, list | tuple):
        return "{" + ", ".join(_render_value(v) for v in value) + "}"
    if isinstance(value, Constant):
        return value.expression
    return '"' + str(value).replace('"', '""') + '"'


def _add_import(imports: list[Import], candidate: Import) -> None:
    if all(imp.fqn != candidate.fqn for imp in imports):
        imports.append(candidate)


def _property(
    field: FieldDescriptor,
    annotations: tuple[AnnotationSpec, ...],
    options: GenerationOptions,
) -> MemberFragment:
    visibility = "private" if options.generate_accessors else "public"
    lines: list[str] = []
    if annotations:
        lines.append("/**")
        lines.extend(f" * {render_annotation(spec)}" for spec in annotations)
        lines.append(" */")

    if field.is_collection:
        declared_type: str | None = "array"
        lines.append(f"{visibility} array ${field.name} = [];")
    else:
        php_type = field.type.php_type()
        declared_type = f"?{php_type}" if php_type else None
        if declared_type:
            lines.append(f"{visibility} {declared_type} ${field.name} = null;")
        else:
            lines.append(f"{visibility} ${field.name};")

    return MemberFragment(
        kind=MemberKind.PROPERTY,
        name=field.name,
        lines=tuple(lines),
        modifiers=(visibility,),
        type=declared_type,
    )


def _setter_tail(options: GenerationOptions) -> tuple[str, list[str]]:
    """Return type and closing body lines for a mutator."""
    if options.use_fluent_mutators:
        return "self", ["", "    return $this;"]
    return "void", []


def _scalar_accessors(field: FieldDescriptor, options: GenerationOptions) -> tuple[MemberFragment, ...]:
    camel = as_camel_case(field.name)
    php_type = field.type.php_type()
    getter_type = f": ?{php_type}" if php_type else ""
    if php_type:
        param_type = f"?{php_type} " if field.type.nullable else f"{php_type} "
    else:
        param_type = ""
    return_type, tail = _setter_tail(options)

    getter = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"get{camel}",
        modifiers=("public",),
        type=getter_type[2:] or None,
        lines=(
            f"public function get{camel}(){getter_type}",
            "{",
            f"    return $this->{field.name};",
            "}",
        ),
    )
    setter = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"set{camel}",
        modifiers=("public",),
        type=return_type,
        lines=(
            f"public function set{camel}({param_type}${field.name}): {return_type}",
            "{",
            f"    $this->{field.name} = ${field.name};",
            *tail,
            "}",
        ),
    )
    return getter, setter


def _collection_accessors(field: FieldDescriptor, options: GenerationOptions) -> tuple[MemberFragment, ...]:
    camel = as_camel_case(field.name)
    singular = singularize(field.name)
    if singular == field.name:
        singular = f"{field.name}Item"
    singular_camel = as_camel_case(singular)
    element_type = field.type.php_type() if field.type.kind is TypeKind.REFERENCE else None
    element_param = f"{element_type} ${singular}" if element_type else f"${singular}"
    return_type, tail = _setter_tail(options)

    getter = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"get{camel}",
        modifiers=("public",),
        type="array",
        lines=(
            f"public function get{camel}(): array",
            "{",
            f"    return $this->{field.name};",
            "}",
        ),
    )
    setter = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"set{camel}",
        modifiers=("public",),
        type=return_type,
        lines=(
            f"public function set{camel}(array ${field.name}): {return_type}",
            "{",
            f"    $this->{field.name} = ${field.name};",
            *tail,
            "}",
        ),
    )
    adder = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"add{singular_camel}",
        modifiers=("public",),
        type=return_type,
        lines=(
            f"public function add{singular_camel}({element_param}): {return_type}",
            "{",
            f"    if (!\\in_array(${singular}, $this->{field.name}, true)) {{",
            f"        $this->{field.name}[] = ${singular};",
            "    }",
            *tail,
            "}",
        ),
    )
    remover = MemberFragment(
        kind=MemberKind.METHOD,
        name=f"remove{singular_camel}",
        modifiers=("public",),
        type=return_type,
        lines=(
            f"public function remove{singular_camel}({element_param}): {return_type}",
            "{",
            f"    $key = \\array_search(${singular}, $this->{field.name}, true);",
            "    if (false !== $key) {",
            f"        unset($this->{field.name}[$key]);",
            "    }",
            *tail,
            "}",
        ),
    )
    return getter, setter, adder, remover
