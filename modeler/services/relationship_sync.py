"""Keep layer-local relationship edges consistent with their global counterparts.

A declaration resolves both projections to their canonical lineage roots, derives the
relationship key, reuses or creates the global relationship and then materializes the edge in
the declaring model and, where matching projections exist, in every sibling layer.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from modeler.config import Settings, get_settings
from modeler.constants.modeling import ATTRIBUTE_LEVEL, RELATIONSHIP_TYPES
from modeler.errors import CanonicalResolutionError, ConflictError, NotFoundError, ValidationError
from modeler.models import (
    Attribute,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObjectRelationship,
)
from modeler.services.layer_synchronizer import LayerSynchronizer
from modeler.services.relationship_keys import build_relationship_key, determine_relationship_level

logger = logging.getLogger(__name__)

EDGE_FIELDS = ("relationship_type", "source_handle", "target_handle", "name", "description")


@dataclass
class RelationshipEndpoints:
    model: DataModel
    source: DataModelObject
    target: DataModelObject
    source_attribute: Optional[DataModelAttribute] = None
    target_attribute: Optional[DataModelAttribute] = None

    @property
    def level(self) -> str:
        return determine_relationship_level(
            self.source_attribute.id if self.source_attribute is not None else None,
            self.target_attribute.id if self.target_attribute is not None else None,
        )


@dataclass
class RelationshipDeclaration:
    model_relationship: DataModelObjectRelationship
    global_relationship: Optional[DataObjectRelationship]
    synced: List[DataModelObjectRelationship] = field(default_factory=list)


@dataclass
class RelationshipRemoval:
    deleted_ids: List[UUID] = field(default_factory=list)
    pruned_global_ids: List[UUID] = field(default_factory=list)
    orphaned_global_ids: List[UUID] = field(default_factory=list)


class RelationshipSynchronizer:
    def __init__(
        self,
        db: Session,
        settings: Optional[Settings] = None,
        layer_synchronizer: Optional[LayerSynchronizer] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.layers = layer_synchronizer or LayerSynchronizer(db, self.settings)

    # ------------------------------------------------------------------
    # Resolution

    def resolve_endpoints(
        self,
        model_id: UUID,
        source_model_object_id: UUID,
        target_model_object_id: UUID,
        source_model_attribute_id: Optional[UUID] = None,
        target_model_attribute_id: Optional[UUID] = None,
    ) -> RelationshipEndpoints:
        model = self.db.get(DataModel, model_id)
        if model is None:
            raise NotFoundError("Model not found", {"model_id": str(model_id)}, from_body=True)
        if (source_model_attribute_id is None) != (target_model_attribute_id is None):
            raise ValidationError(
                "Attribute-level relationships require both source and target attributes",
                [{"field": "source_model_attribute_id"}, {"field": "target_model_attribute_id"}],
            )

        source = self._projection(model, source_model_object_id, "source")
        target = self._projection(model, target_model_object_id, "target")
        if source.id == target.id and source_model_attribute_id == target_model_attribute_id:
            raise ValidationError("A relationship cannot link an endpoint to itself")

        endpoints = RelationshipEndpoints(model=model, source=source, target=target)
        if source_model_attribute_id is not None:
            endpoints.source_attribute = self._projection_attribute(source, source_model_attribute_id, "source")
            endpoints.target_attribute = self._projection_attribute(target, target_model_attribute_id, "target")
        return endpoints

    def _projection(self, model: DataModel, model_object_id: UUID, side: str) -> DataModelObject:
        model_object = self.db.get(DataModelObject, model_object_id)
        if model_object is None or model_object.model_id != model.id:
            raise CanonicalResolutionError(
                f"The {side} object is not part of model '{model.name}'",
                {"model_id": str(model.id), f"{side}_model_object_id": str(model_object_id)},
            )
        return model_object

    def _projection_attribute(
        self, model_object: DataModelObject, model_attribute_id: UUID, side: str
    ) -> DataModelAttribute:
        model_attribute = self.db.get(DataModelAttribute, model_attribute_id)
        if model_attribute is None or model_attribute.model_object_id != model_object.id:
            raise CanonicalResolutionError(
                f"The {side} attribute does not belong to the {side} object",
                {f"{side}_model_attribute_id": str(model_attribute_id), "model_object_id": str(model_object.id)},
            )
        return model_attribute

    def canonical_key(self, endpoints: RelationshipEndpoints) -> Optional[Tuple[str, Dict[str, Any]]]:
        """Return the relationship key and canonical endpoint ids, or ``None`` for draft endpoints."""
        source_object = endpoints.source.object
        target_object = endpoints.target.object
        if source_object is None or target_object is None:
            return None

        level = endpoints.level
        source_attribute_id = target_attribute_id = None
        if level == ATTRIBUTE_LEVEL:
            source_attribute = endpoints.source_attribute.attribute
            target_attribute = endpoints.target_attribute.attribute
            if source_attribute is None or target_attribute is None:
                return None
            source_attribute_id = source_attribute.lineage_root_id
            target_attribute_id = target_attribute.lineage_root_id

        canonical = {
            "source_object_id": source_object.lineage_root_id,
            "target_object_id": target_object.lineage_root_id,
            "source_attribute_id": source_attribute_id,
            "target_attribute_id": target_attribute_id,
            "relationship_level": level,
        }
        key = build_relationship_key(
            canonical["source_object_id"],
            canonical["target_object_id"],
            level,
            source_attribute_id,
            target_attribute_id,
        )
        return key, canonical

    def _resolve_global(
        self, endpoints: RelationshipEndpoints, values: Mapping[str, Any]
    ) -> Optional[DataObjectRelationship]:
        resolved = self.canonical_key(endpoints)
        if resolved is None:
            return None
        key, canonical = resolved
        global_relationship = (
            self.db.query(DataObjectRelationship)
            .filter(DataObjectRelationship.relationship_key == key)
            .one_or_none()
        )
        if global_relationship is None:
            global_relationship = DataObjectRelationship(
                relationship_key=key,
                relationship_type=values["relationship_type"],
                name=values.get("name"),
                description=values.get("description"),
                **canonical,
            )
            self.db.add(global_relationship)
            self.db.flush()
            logger.info("Created global relationship %s", key)
        elif global_relationship.relationship_type != values["relationship_type"]:
            global_relationship.relationship_type = values["relationship_type"]
        return global_relationship

    # ------------------------------------------------------------------
    # Public operations

    def declare(
        self,
        model_id: UUID,
        source_model_object_id: UUID,
        target_model_object_id: UUID,
        relationship_type: str,
        *,
        source_model_attribute_id: Optional[UUID] = None,
        target_model_attribute_id: Optional[UUID] = None,
        propagate: Optional[bool] = None,
        **extra: Any,
    ) -> RelationshipDeclaration:
        values = self._edge_values(relationship_type, extra)
        endpoints = self.resolve_endpoints(
            model_id,
            source_model_object_id,
            target_model_object_id,
            source_model_attribute_id,
            target_model_attribute_id,
        )
        global_relationship = self._resolve_global(endpoints, values)
        edge = self._upsert_edge(endpoints, values, global_relationship)

        declaration = RelationshipDeclaration(model_relationship=edge, global_relationship=global_relationship)
        if self._should_propagate(propagate):
            declaration.synced = self._propagate(edge, endpoints, values, global_relationship)
        self.db.flush()
        return declaration

    def update(
        self,
        relationship: DataModelObjectRelationship,
        changes: Mapping[str, Any],
        *,
        propagate: Optional[bool] = None,
    ) -> RelationshipDeclaration:
        current = {
            "source_model_object_id": relationship.source_model_object_id,
            "target_model_object_id": relationship.target_model_object_id,
            "source_model_attribute_id": relationship.source_model_attribute_id,
            "target_model_attribute_id": relationship.target_model_attribute_id,
        }
        for key in current:
            if key in changes:
                current[key] = changes[key]
        values = self._edge_values(
            changes.get("relationship_type") or relationship.relationship_type,
            {key: changes.get(key, getattr(relationship, key)) for key in EDGE_FIELDS if key != "relationship_type"},
        )

        endpoints = self.resolve_endpoints(relationship.model_id, **current)
        duplicate = self._find_edge(endpoints)
        if duplicate is not None and duplicate.id != relationship.id:
            raise ConflictError(
                "An identical relationship already exists in this model",
                {"relationship_id": str(duplicate.id)},
            )
        global_relationship = self._resolve_global(endpoints, values)

        relationship.source_model_object_id = endpoints.source.id
        relationship.target_model_object_id = endpoints.target.id
        relationship.source_model_attribute_id = endpoints.source_attribute.id if endpoints.source_attribute else None
        relationship.target_model_attribute_id = endpoints.target_attribute.id if endpoints.target_attribute else None
        relationship.relationship_level = endpoints.level
        relationship.global_relationship_id = global_relationship.id if global_relationship else None
        for key, value in values.items():
            setattr(relationship, key, value)
        self.db.flush()

        declaration = RelationshipDeclaration(model_relationship=relationship, global_relationship=global_relationship)
        if relationship.propagated_from_id is None:
            self._delete_mirrors([relationship.id])
            if self._should_propagate(propagate):
                declaration.synced = self._propagate(relationship, endpoints, values, global_relationship)
        self.db.flush()
        return declaration

    def delete(self, relationship: DataModelObjectRelationship, *, prune_orphans: bool = False) -> RelationshipRemoval:
        mirror_ids = [
            row[0]
            for row in self.db.query(DataModelObjectRelationship.id)
            .filter(DataModelObjectRelationship.propagated_from_id == relationship.id)
            .all()
        ]
        edge_ids = [relationship.id, *mirror_ids]
        global_ids = {
            row[0]
            for row in self.db.query(DataModelObjectRelationship.global_relationship_id)
            .filter(DataModelObjectRelationship.id.in_(edge_ids))
            .all()
            if row[0] is not None
        }

        self._delete_mirrors([relationship.id])
        self.db.query(DataModelObjectRelationship).filter(
            DataModelObjectRelationship.id == relationship.id
        ).delete(synchronize_session=False)

        removal = RelationshipRemoval(deleted_ids=edge_ids)
        for global_id in global_ids:
            remaining = (
                self.db.query(func.count(DataModelObjectRelationship.id))
                .filter(DataModelObjectRelationship.global_relationship_id == global_id)
                .scalar()
            )
            if remaining:
                continue
            if prune_orphans:
                self.db.query(DataObjectRelationship).filter(DataObjectRelationship.id == global_id).delete(
                    synchronize_session=False
                )
                removal.pruned_global_ids.append(global_id)
                logger.info("Pruned orphaned global relationship %s", global_id)
            else:
                removal.orphaned_global_ids.append(global_id)
        self.db.expire_all()
        return removal

    # ------------------------------------------------------------------
    # Internals

    def _should_propagate(self, propagate: Optional[bool]) -> bool:
        return self.settings.propagate_relationships if propagate is None else propagate

    def _edge_values(self, relationship_type: str, extra: Mapping[str, Any]) -> Dict[str, Any]:
        if relationship_type not in RELATIONSHIP_TYPES:
            raise ValidationError(
                f"Unsupported relationship type '{relationship_type}'",
                [{"field": "relationship_type", "allowed": list(RELATIONSHIP_TYPES)}],
            )
        values = {key: extra.get(key) for key in EDGE_FIELDS if key != "relationship_type"}
        values["relationship_type"] = relationship_type
        return values

    def _find_edge(self, endpoints: RelationshipEndpoints) -> Optional[DataModelObjectRelationship]:
        return (
            self.db.query(DataModelObjectRelationship)
            .filter(
                DataModelObjectRelationship.model_id == endpoints.model.id,
                DataModelObjectRelationship.source_model_object_id == endpoints.source.id,
                DataModelObjectRelationship.target_model_object_id == endpoints.target.id,
                DataModelObjectRelationship.source_model_attribute_id
                == (endpoints.source_attribute.id if endpoints.source_attribute else None),
                DataModelObjectRelationship.target_model_attribute_id
                == (endpoints.target_attribute.id if endpoints.target_attribute else None),
            )
            .first()
        )

    def _upsert_edge(
        self,
        endpoints: RelationshipEndpoints,
        values: Mapping[str, Any],
        global_relationship: Optional[DataObjectRelationship],
        *,
        propagated_from: Optional[DataModelObjectRelationship] = None,
    ) -> DataModelObjectRelationship:
        edge = self._find_edge(endpoints)
        if edge is None:
            edge = DataModelObjectRelationship(
                model_id=endpoints.model.id,
                source_model_object_id=endpoints.source.id,
                target_model_object_id=endpoints.target.id,
                source_model_attribute_id=endpoints.source_attribute.id if endpoints.source_attribute else None,
                target_model_attribute_id=endpoints.target_attribute.id if endpoints.target_attribute else None,
                relationship_level=endpoints.level,
                propagated_from_id=propagated_from.id if propagated_from is not None else None,
                **values,
            )
            self.db.add(edge)
        else:
            for key, value in values.items():
                if value is not None:
                    setattr(edge, key, value)
        edge.global_relationship_id = global_relationship.id if global_relationship else None
        self.db.flush()
        return edge

    def _delete_mirrors(self, relationship_ids: List[UUID]) -> None:
        self.db.query(DataModelObjectRelationship).filter(
            DataModelObjectRelationship.propagated_from_id.in_(relationship_ids)
        ).delete(synchronize_session=False)

    def _corresponding_attribute(
        self, model_object: DataModelObject, model_attribute: DataModelAttribute
    ) -> Optional[DataModelAttribute]:
        attribute = model_attribute.attribute
        if attribute is None:
            return None
        root_id = attribute.lineage_root_id
        return (
            self.db.query(DataModelAttribute)
            .join(Attribute, Attribute.id == DataModelAttribute.attribute_id)
            .filter(
                DataModelAttribute.model_object_id == model_object.id,
                or_(Attribute.id == root_id, Attribute.origin_attribute_id == root_id),
            )
            .first()
        )

    def _propagate(
        self,
        edge: DataModelObjectRelationship,
        endpoints: RelationshipEndpoints,
        values: Mapping[str, Any],
        global_relationship: Optional[DataObjectRelationship],
    ) -> List[DataModelObjectRelationship]:
        if endpoints.source.object is None or endpoints.target.object is None:
            return []
        family = self.layers.family_for(endpoints.model)
        synced: List[DataModelObjectRelationship] = []
        for sibling in family.siblings_of(endpoints.model):
            source = self.layers.find_counterpart(sibling, endpoints.source.object)
            target = self.layers.find_counterpart(sibling, endpoints.target.object)
            if source is None or target is None:
                logger.info("Relationship %s not mirrored into %s: endpoint objects missing", edge.id, sibling.layer)
                continue
            mirrored = RelationshipEndpoints(model=sibling, source=source, target=target)
            if endpoints.level == ATTRIBUTE_LEVEL:
                mirrored.source_attribute = self._corresponding_attribute(source, endpoints.source_attribute)
                mirrored.target_attribute = self._corresponding_attribute(target, endpoints.target_attribute)
                if mirrored.source_attribute is None or mirrored.target_attribute is None:
                    logger.info(
                        "Relationship %s not mirrored into %s: endpoint attributes missing", edge.id, sibling.layer
                    )
                    continue
            existing = self._find_edge(mirrored)
            if existing is not None and existing.propagated_from_id is None:
                # The sibling declared this link itself; only share the global reference.
                existing.global_relationship_id = global_relationship.id if global_relationship else None
                continue
            synced.append(self._upsert_edge(mirrored, values, global_relationship, propagated_from=edge))
        return synced
