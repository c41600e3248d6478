from __future__ import annotations

CONCEPTUAL = "conceptual"
LOGICAL = "logical"
PHYSICAL = "physical"

MODEL_LAYERS: tuple[str, ...] = (CONCEPTUAL, LOGICAL, PHYSICAL)
NEXT_LAYER: dict[str, str] = {CONCEPTUAL: LOGICAL, LOGICAL: PHYSICAL}

OBJECT_LEVEL = "object"
ATTRIBUTE_LEVEL = "attribute"
RELATIONSHIP_LEVELS: tuple[str, ...] = (OBJECT_LEVEL, ATTRIBUTE_LEVEL)
RELATIONSHIP_TYPES: tuple[str, ...] = ("1:1", "1:N", "N:1", "N:M", "M:N")

DEFAULT_NODE_POSITION: dict[str, float] = {"x": 100.0, "y": 100.0}

LIFECYCLE_PHASES: tuple[tuple[str, str], ...] = (
    ("ideate", "Capture the business need and candidate entities."),
    ("design", "Shape conceptual and logical structures."),
    ("build", "Produce the physical model and deployable artifacts."),
    ("validate", "Review the model against governance and quality rules."),
    ("deploy", "Promote the model to its target system."),
    ("monitor", "Track usage, drift and change requests."),
)
