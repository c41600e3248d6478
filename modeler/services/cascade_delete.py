"""Ordered cascade deletes for modeling entities.

Rows are removed strictly in dependency order: relationships, then model attributes,
attributes, model objects and finally canonical objects and models. Surviving rows that
point at deleted rows through lineage links are detached instead of deleted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from modeler.constants.modeling import MODEL_LAYERS
from modeler.models import (
    Attribute,
    CapabilityModelMapping,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObject,
    DataObjectRelationship,
    ModelLifecycleAssignment,
)

logger = logging.getLogger(__name__)


@dataclass
class DeletionSummary:
    relationships: int = 0
    global_relationships: int = 0
    model_attributes: int = 0
    attributes: int = 0
    model_objects: int = 0
    objects: int = 0
    models: int = 0


def _layer_rank(layer: Optional[str]) -> int:
    return MODEL_LAYERS.index(layer) if layer in MODEL_LAYERS else -1


class CascadeDeleter:
    """Delete objects, attributes, projections and models with their dependents."""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Entry points

    def delete_object(self, data_object: DataObject, *, cascade_layers: bool = True) -> DeletionSummary:
        object_ids = {data_object.id}
        if cascade_layers:
            object_ids.update(self._downstream_object_ids(data_object))
        return self._purge(object_ids=object_ids)

    def delete_attribute(self, attribute: Attribute, *, cascade_layers: bool = True) -> DeletionSummary:
        attribute_ids = {attribute.id}
        if cascade_layers:
            attribute_ids.update(self._downstream_attribute_ids(attribute))
        return self._purge(attribute_ids=attribute_ids)

    def delete_model_objects(self, model_object_ids: Iterable[UUID]) -> DeletionSummary:
        return self._purge(model_object_ids=set(model_object_ids))

    def delete_model_attributes(self, model_attribute_ids: Iterable[UUID]) -> DeletionSummary:
        return self._purge(model_attribute_ids=set(model_attribute_ids))

    def delete_models(self, model_ids: Iterable[UUID]) -> DeletionSummary:
        return self._purge(model_ids=set(model_ids))

    # ------------------------------------------------------------------
    # Lineage helpers

    def _downstream_object_ids(self, data_object: DataObject) -> Set[UUID]:
        root_id = data_object.lineage_root_id
        own_rank = _layer_rank(data_object.model.layer if data_object.model else None)
        rows = (
            self.db.query(DataObject.id, DataModel.layer)
            .outerjoin(DataModel, DataModel.id == DataObject.model_id)
            .filter(or_(DataObject.origin_object_id == root_id, DataObject.id == root_id))
            .all()
        )
        return {
            object_id
            for object_id, layer in rows
            if object_id != data_object.id and _layer_rank(layer) > own_rank
        }

    def _downstream_attribute_ids(self, attribute: Attribute) -> Set[UUID]:
        root_id = attribute.lineage_root_id
        owner = attribute.object
        own_rank = _layer_rank(owner.model.layer if owner is not None and owner.model else None)
        rows = (
            self.db.query(Attribute.id, DataModel.layer)
            .join(DataObject, DataObject.id == Attribute.object_id)
            .outerjoin(DataModel, DataModel.id == DataObject.model_id)
            .filter(or_(Attribute.origin_attribute_id == root_id, Attribute.id == root_id))
            .all()
        )
        return {
            attribute_id
            for attribute_id, layer in rows
            if attribute_id != attribute.id and _layer_rank(layer) > own_rank
        }

    # ------------------------------------------------------------------
    # Core

    def _ids(self, query) -> Set[UUID]:
        return {row[0] for row in query.all()}

    def _delete(self, model_cls, ids: Set[UUID]) -> int:
        if not ids:
            return 0
        return (
            self.db.query(model_cls)
            .filter(model_cls.id.in_(ids))
            .delete(synchronize_session=False)
        )

    def _purge(
        self,
        *,
        object_ids: Optional[Set[UUID]] = None,
        attribute_ids: Optional[Set[UUID]] = None,
        model_object_ids: Optional[Set[UUID]] = None,
        model_attribute_ids: Optional[Set[UUID]] = None,
        model_ids: Optional[Set[UUID]] = None,
    ) -> DeletionSummary:
        db = self.db
        db.flush()

        model_ids = set(model_ids or ())
        object_ids = set(object_ids or ())
        attribute_ids = set(attribute_ids or ())
        model_object_ids = set(model_object_ids or ())
        model_attribute_ids = set(model_attribute_ids or ())

        if model_ids:
            object_ids |= self._ids(db.query(DataObject.id).filter(DataObject.model_id.in_(model_ids)))
            model_object_ids |= self._ids(
                db.query(DataModelObject.id).filter(DataModelObject.model_id.in_(model_ids))
            )
        if object_ids:
            attribute_ids |= self._ids(db.query(Attribute.id).filter(Attribute.object_id.in_(object_ids)))
            model_object_ids |= self._ids(
                db.query(DataModelObject.id).filter(DataModelObject.object_id.in_(object_ids))
            )
        if model_object_ids or attribute_ids:
            model_attribute_ids |= self._ids(
                db.query(DataModelAttribute.id).filter(
                    or_(
                        DataModelAttribute.model_object_id.in_(model_object_ids),
                        DataModelAttribute.attribute_id.in_(attribute_ids),
                    )
                )
            )

        global_ids = self._ids(
            db.query(DataObjectRelationship.id).filter(
                or_(
                    DataObjectRelationship.source_object_id.in_(object_ids),
                    DataObjectRelationship.target_object_id.in_(object_ids),
                    DataObjectRelationship.source_attribute_id.in_(attribute_ids),
                    DataObjectRelationship.target_attribute_id.in_(attribute_ids),
                )
            )
        )
        relationship_ids = self._ids(
            db.query(DataModelObjectRelationship.id).filter(
                or_(
                    DataModelObjectRelationship.model_id.in_(model_ids),
                    DataModelObjectRelationship.source_model_object_id.in_(model_object_ids),
                    DataModelObjectRelationship.target_model_object_id.in_(model_object_ids),
                    DataModelObjectRelationship.source_model_attribute_id.in_(model_attribute_ids),
                    DataModelObjectRelationship.target_model_attribute_id.in_(model_attribute_ids),
                )
            )
        )

        summary = DeletionSummary()
        self._detach(DataModelObjectRelationship, "propagated_from_id", relationship_ids)
        self._detach(DataModelObjectRelationship, "global_relationship_id", global_ids, exclude=relationship_ids)
        summary.relationships = self._delete(DataModelObjectRelationship, relationship_ids)
        summary.global_relationships = self._delete(DataObjectRelationship, global_ids)

        summary.model_attributes = self._delete(DataModelAttribute, model_attribute_ids)
        self._detach(Attribute, "origin_attribute_id", attribute_ids, exclude=attribute_ids)
        summary.attributes = self._delete(Attribute, attribute_ids)

        summary.model_objects = self._delete(DataModelObject, model_object_ids)
        self._detach(DataObject, "origin_object_id", object_ids, exclude=object_ids)
        summary.objects = self._delete(DataObject, object_ids)

        if model_ids:
            for model_cls in (ModelLifecycleAssignment, CapabilityModelMapping):
                db.query(model_cls).filter(model_cls.model_id.in_(model_ids)).delete(
                    synchronize_session=False
                )
            self._detach(DataModel, "parent_model_id", model_ids, exclude=model_ids)
            summary.models = self._delete(DataModel, model_ids)

        db.expire_all()
        logger.info("Cascade delete removed %s", summary)
        return summary

    def _detach(
        self,
        model_cls,
        column_name: str,
        target_ids: Set[UUID],
        *,
        exclude: Sequence[UUID] | Set[UUID] = (),
    ) -> None:
        if not target_ids:
            return
        column = getattr(model_cls, column_name)
        query = self.db.query(model_cls).filter(column.in_(target_ids))
        if exclude:
            query = query.filter(model_cls.id.notin_(exclude))
        query.update({column: None}, synchronize_session=False)
