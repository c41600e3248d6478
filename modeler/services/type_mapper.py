"""Translate attribute types between the conceptual, logical and physical layers.

All functions are pure lookups. Unknown or empty input falls back to ``VARCHAR`` (logical)
or ``VARCHAR(255)`` (physical). Every physical output maps to itself, so pushing an already
physical type through ``map_logical_to_physical`` is a no-op.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

DEFAULT_LOGICAL_TYPE = "VARCHAR"
DEFAULT_PHYSICAL_TYPE = "VARCHAR(255)"

CONCEPTUAL_TO_LOGICAL: dict[str, str] = {
    "Text": "VARCHAR",
    "Number": "INTEGER",
    "Identifier": "INTEGER",
    "Reference": "INTEGER",
    "Date": "DATE",
    "DateTime": "TIMESTAMP",
    "Time": "TIME",
    "Boolean": "BOOLEAN",
    "Currency": "DECIMAL",
    "Percentage": "DECIMAL",
    "Email": "VARCHAR",
    "Phone": "VARCHAR",
    "URL": "VARCHAR",
    "Image": "VARCHAR",
    "Document": "VARCHAR",
    "Location": "VARCHAR",
    "Binary": "BLOB",
}

LOGICAL_TO_PHYSICAL: dict[str, str] = {
    "VARCHAR": "VARCHAR(255)",
    "INTEGER": "INT",
    "DECIMAL": "DECIMAL(10,2)",
    "DATE": "DATE",
    "DATETIME": "DATETIME",
    "TIMESTAMP": "TIMESTAMP",
    "TIME": "TIME",
    "BOOLEAN": "TINYINT(1)",
    "TEXT": "TEXT",
    "BLOB": "BLOB",
    "JSON": "JSON",
    "UUID": "CHAR(36)",
    "ENUM": "ENUM",
    # Conceptual names that reach the physical mapper directly.
    "Text": "VARCHAR(255)",
    "Number": "INT",
    "Integer": "INT",
    "BigInteger": "BIGINT",
    "Float": "FLOAT",
    "Double": "DOUBLE",
    "Date": "DATE",
    "DateTime": "TIMESTAMP",
    "Time": "TIME",
    "Boolean": "TINYINT(1)",
    "Binary": "BLOB",
    "Email": "VARCHAR(255)",
    "Phone": "VARCHAR(20)",
    "URL": "VARCHAR(500)",
    "Currency": "DECIMAL(12,2)",
    "Percentage": "DECIMAL(5,2)",
    "String": "VARCHAR(255)",
    "LongText": "TEXT",
    "MediumText": "MEDIUMTEXT",
}

PHYSICAL_TYPES: frozenset[str] = frozenset(
    set(LOGICAL_TO_PHYSICAL.values())
    | {"INT", "BIGINT", "SMALLINT", "TINYINT", "FLOAT", "DOUBLE", "REAL", "MEDIUMTEXT", "LONGTEXT", "CHAR"}
)

_DEFAULT_LENGTHS: dict[str, int] = {
    "Text": 255,
    "String": 255,
    "Email": 255,
    "Phone": 20,
    "URL": 500,
    "Currency": 12,
    "Percentage": 5,
    "Decimal": 10,
}
_SQL_DEFAULT_LENGTHS: dict[str, int] = {
    "VARCHAR": 255,
    "NVARCHAR": 255,
    "UUID": 36,
    "DECIMAL": 10,
    "NUMERIC": 10,
}
_DEFAULT_PRECISION_SCALE: dict[str, Tuple[int, int]] = {
    "Currency": (12, 2),
    "Percentage": (5, 2),
    "DECIMAL": (10, 2),
    "NUMERIC": (10, 2),
}

_SIZED_TYPE_RE = re.compile(r"^\s*[A-Za-z][A-Za-z ]*\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)\s*$")
_UPPER_LOGICAL_TO_PHYSICAL = {key: value for key, value in LOGICAL_TO_PHYSICAL.items() if key.isupper()}


def _clean(type_name: Optional[str]) -> Optional[str]:
    if type_name is None:
        return None
    cleaned = type_name.strip()
    return cleaned or None


def map_conceptual_to_logical(conceptual_type: Optional[str]) -> str:
    cleaned = _clean(conceptual_type)
    if cleaned is None:
        return DEFAULT_LOGICAL_TYPE
    if cleaned in CONCEPTUAL_TO_LOGICAL:
        return CONCEPTUAL_TO_LOGICAL[cleaned]
    for name, logical in CONCEPTUAL_TO_LOGICAL.items():
        if name.lower() == cleaned.lower():
            return logical
    if cleaned.upper() in _UPPER_LOGICAL_TO_PHYSICAL:
        # Already a logical type name.
        return cleaned.upper()
    return DEFAULT_LOGICAL_TYPE


def map_logical_to_physical(logical_type: Optional[str]) -> str:
    cleaned = _clean(logical_type)
    if cleaned is None:
        return DEFAULT_PHYSICAL_TYPE
    if cleaned in LOGICAL_TO_PHYSICAL:
        return LOGICAL_TO_PHYSICAL[cleaned]
    if cleaned in PHYSICAL_TYPES or _SIZED_TYPE_RE.match(cleaned):
        return cleaned
    upper = cleaned.upper()
    if upper in _UPPER_LOGICAL_TO_PHYSICAL:
        return _UPPER_LOGICAL_TO_PHYSICAL[upper]
    if upper in PHYSICAL_TYPES:
        return upper
    return DEFAULT_PHYSICAL_TYPE


def default_length(type_name: Optional[str]) -> Optional[int]:
    cleaned = _clean(type_name)
    if cleaned is None:
        return None
    if cleaned in _DEFAULT_LENGTHS:
        return _DEFAULT_LENGTHS[cleaned]
    sized = _SIZED_TYPE_RE.match(cleaned)
    if sized:
        return int(sized.group(1))
    return _SQL_DEFAULT_LENGTHS.get(cleaned.upper())


def default_precision_scale(type_name: Optional[str]) -> Optional[Tuple[int, int]]:
    cleaned = _clean(type_name)
    if cleaned is None:
        return None
    if cleaned in _DEFAULT_PRECISION_SCALE:
        return _DEFAULT_PRECISION_SCALE[cleaned]
    sized = _SIZED_TYPE_RE.match(cleaned)
    if sized and sized.group(2) is not None:
        return int(sized.group(1)), int(sized.group(2))
    return _DEFAULT_PRECISION_SCALE.get(cleaned.upper())


def next_layer_type(attribute_types: dict[str, Optional[str]], target_layer: str) -> dict[str, Optional[str]]:
    """Fill the type slot for ``target_layer`` from the previous layer's type.

    ``attribute_types`` holds ``conceptual_type``/``logical_type``/``physical_type``. Existing
    values for the target layer are kept.
    """
    result = dict(attribute_types)
    if target_layer == "logical" and not result.get("logical_type"):
        result["logical_type"] = map_conceptual_to_logical(result.get("conceptual_type"))
    elif target_layer == "physical" and not result.get("physical_type"):
        logical = result.get("logical_type") or map_conceptual_to_logical(result.get("conceptual_type"))
        result["logical_type"] = result.get("logical_type") or logical
        result["physical_type"] = map_logical_to_physical(logical)
    return result
