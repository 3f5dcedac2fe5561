"""Source text of a new, empty DTO class."""

from __future__ import annotations

from dtomaker.maker.naming import ClassNameDetails

SKELETON = """\
<?php

namespace {namespace};

/**
 * Data transfer object for the {entity} entity.
 */
class {class_name}
{{
}}
"""

GLOBAL_SKELETON = """\
<?php

/**
 * Data transfer object for the {entity} entity.
 */
class {class_name}
{{
}}
"""


def render_skeleton(dto: ClassNameDetails, entity: ClassNameDetails) -> str:
    """Empty class for ``dto``; members are added afterwards by the source editor."""
    template = SKELETON if dto.namespace else GLOBAL_SKELETON
    return template.format(namespace=dto.namespace, class_name=dto.short_name, entity=entity.short_name)
