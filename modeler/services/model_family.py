"""Resolve the conceptual root and sibling layers of a model.

All models are loaded once per resolution and walked in memory, so a parent chain is never
re-queried and cycles are detected with a single visited set.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from modeler.constants.modeling import CONCEPTUAL, LOGICAL, MODEL_LAYERS, PHYSICAL
from modeler.errors import CycleOrMissingRoot, FamilyIntegrityError
from modeler.models import DataModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelFamily:
    conceptual: DataModel
    logical: Optional[DataModel] = None
    physical: Optional[DataModel] = None

    @property
    def root_id(self) -> UUID:
        return self.conceptual.id

    def for_layer(self, layer: str) -> Optional[DataModel]:
        if layer == CONCEPTUAL:
            return self.conceptual
        if layer == LOGICAL:
            return self.logical
        if layer == PHYSICAL:
            return self.physical
        return None

    def members(self) -> List[DataModel]:
        return [model for model in (self.conceptual, self.logical, self.physical) if model is not None]

    def siblings_of(self, model: DataModel) -> List[DataModel]:
        return [member for member in self.members() if member.id != model.id]

    def contains(self, model_id: UUID) -> bool:
        return any(member.id == model_id for member in self.members())


def find_root(model: DataModel, models_by_id: Dict[UUID, DataModel]) -> DataModel:
    """Follow ``parent_model_id`` links until a parentless conceptual model is reached."""

    visited: set[UUID] = set()
    current = model
    while current.parent_model_id is not None:
        if current.id in visited:
            raise CycleOrMissingRoot(
                f"Model '{model.name}' has a cyclic parent chain",
                {"model_id": str(model.id), "chain": [str(item) for item in visited]},
            )
        visited.add(current.id)
        parent = models_by_id.get(current.parent_model_id)
        if parent is None:
            raise CycleOrMissingRoot(
                f"Model '{model.name}' references a missing parent model",
                {"model_id": str(model.id), "missing_parent_id": str(current.parent_model_id)},
            )
        current = parent

    if current.layer != CONCEPTUAL:
        raise CycleOrMissingRoot(
            f"Model '{model.name}' does not resolve to a conceptual root",
            {"model_id": str(model.id), "root_id": str(current.id), "root_layer": current.layer},
        )
    return current


def build_family(root: DataModel, models: Iterable[DataModel]) -> ModelFamily:
    children: Dict[UUID, List[DataModel]] = defaultdict(list)
    for candidate in models:
        if candidate.parent_model_id is not None:
            children[candidate.parent_model_id].append(candidate)

    by_layer: Dict[str, List[DataModel]] = defaultdict(list)
    visited: set[UUID] = {root.id}
    pending = [root.id]
    while pending:
        for child in children.get(pending.pop(), []):
            if child.id in visited:
                continue
            visited.add(child.id)
            pending.append(child.id)
            by_layer[child.layer].append(child)

    duplicates = {layer: members for layer, members in by_layer.items() if len(members) > 1}
    if by_layer.get(CONCEPTUAL):
        duplicates[CONCEPTUAL] = [root, *by_layer[CONCEPTUAL]]
    if duplicates:
        raise FamilyIntegrityError(
            f"Model family '{root.name}' has more than one model per layer",
            {layer: [str(member.id) for member in members] for layer, members in duplicates.items()},
        )

    return ModelFamily(
        conceptual=root,
        logical=by_layer[LOGICAL][0] if by_layer.get(LOGICAL) else None,
        physical=by_layer[PHYSICAL][0] if by_layer.get(PHYSICAL) else None,
    )


def resolve_model_family(db: Session, model: DataModel) -> ModelFamily:
    models = db.query(DataModel).all()
    models_by_id = {candidate.id: candidate for candidate in models}
    models_by_id.setdefault(model.id, model)
    root = find_root(model, models_by_id)
    family = build_family(root, models_by_id.values())
    logger.debug(
        "Resolved family %s: %s",
        root.id,
        {layer: str(member.id) for layer in MODEL_LAYERS if (member := family.for_layer(layer))},
    )
    return family
