from __future__ import annotations

from typing import Optional
from uuid import UUID

from modeler.constants.modeling import ATTRIBUTE_LEVEL, OBJECT_LEVEL, RELATIONSHIP_LEVELS
from modeler.errors import ValidationError

_NULL_PART = "null"


def determine_relationship_level(
    source_attribute_id: Optional[UUID], target_attribute_id: Optional[UUID]
) -> str:
    if source_attribute_id is not None and target_attribute_id is not None:
        return ATTRIBUTE_LEVEL
    return OBJECT_LEVEL


def build_relationship_key(
    source_object_id: UUID,
    target_object_id: UUID,
    level: str,
    source_attribute_id: Optional[UUID] = None,
    target_attribute_id: Optional[UUID] = None,
) -> str:
    """Return the deduplication key for a relationship between canonical entities.

    Direction is part of the key: ``A -> B`` and ``B -> A`` never collide.
    """
    if level not in RELATIONSHIP_LEVELS:
        raise ValidationError(f"Unsupported relationship level '{level}'", {"level": level})
    if source_object_id is None or target_object_id is None:
        raise ValidationError("Relationship keys require both source and target objects")
    if level == ATTRIBUTE_LEVEL and (source_attribute_id is None or target_attribute_id is None):
        raise ValidationError("Attribute-level relationship keys require both attribute ids")
    if level == OBJECT_LEVEL:
        source_attribute_id = target_attribute_id = None

    parts = [
        str(source_object_id),
        str(target_object_id),
        level,
        str(source_attribute_id) if source_attribute_id is not None else _NULL_PART,
        str(target_attribute_id) if target_attribute_id is not None else _NULL_PART,
    ]
    return "|".join(parts)
