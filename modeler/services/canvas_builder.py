from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from modeler.constants.modeling import CONCEPTUAL
from modeler.models import (
    DataArea,
    DataDomain,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObjectRelationship,
)
from modeler.schemas.canvas import (
    CanvasAttribute,
    CanvasEdge,
    CanvasNode,
    CanvasPositionsRequest,
    CanvasPositionsResult,
    CanvasResponse,
)
from modeler.services.projection_builder import (
    layer_position,
    resolve_attribute_view,
    resolve_object_view,
    set_layer_position,
)
from modeler.services.relationship_keys import build_relationship_key

logger = logging.getLogger(__name__)


def edge_visible_in_layer(relationship: DataModelObjectRelationship, layer: str) -> bool:
    has_source = relationship.source_model_attribute_id is not None
    has_target = relationship.target_model_attribute_id is not None
    if layer == CONCEPTUAL:
        return not has_source and not has_target
    return has_source and has_target


class CanvasBuilder:
    """Assemble the node/edge graph of one model layer."""

    def __init__(self, db: Session):
        self.db = db

    def build(self, model: DataModel, layer: Optional[str] = None, *, include_hidden: bool = False) -> CanvasResponse:
        layer = layer or model.layer
        model_objects = (
            self.db.query(DataModelObject)
            .options(
                selectinload(DataModelObject.object),
                selectinload(DataModelObject.attributes).selectinload(DataModelAttribute.attribute),
            )
            .filter(DataModelObject.model_id == model.id)
            .all()
        )
        if not include_hidden:
            model_objects = [model_object for model_object in model_objects if model_object.is_visible]

        names = self._classification_names(model_objects)
        nodes = [self._node(model_object, layer, names) for model_object in model_objects]
        node_ids = {node.id for node in nodes}

        relationships = (
            self.db.query(DataModelObjectRelationship)
            .filter(DataModelObjectRelationship.model_id == model.id)
            .order_by(DataModelObjectRelationship.created_at)
            .all()
        )
        visible = [
            relationship
            for relationship in relationships
            if edge_visible_in_layer(relationship, layer)
            and relationship.source_model_object_id in node_ids
            and relationship.target_model_object_id in node_ids
        ]
        fallback_ids = self._fallback_global_ids(
            [relationship for relationship in visible if relationship.global_relationship_id is None],
            {model_object.id: model_object for model_object in model_objects},
        )
        edges = [
            CanvasEdge(
                id=relationship.id,
                source=relationship.source_model_object_id,
                target=relationship.target_model_object_id,
                source_attribute_id=relationship.source_model_attribute_id,
                target_attribute_id=relationship.target_model_attribute_id,
                relationship_type=relationship.relationship_type,
                relationship_level=relationship.relationship_level,
                source_handle=relationship.source_handle,
                target_handle=relationship.target_handle,
                name=relationship.name,
                data_object_relationship_id=relationship.global_relationship_id or fallback_ids.get(relationship.id),
                propagated_from_id=relationship.propagated_from_id,
            )
            for relationship in visible
        ]
        return CanvasResponse(model_id=model.id, layer=layer, nodes=nodes, edges=edges)

    def _classification_names(
        self, model_objects: Iterable[DataModelObject]
    ) -> Tuple[Dict[UUID, str], Dict[UUID, str]]:
        views = [resolve_object_view(model_object) for model_object in model_objects]
        domain_ids = {view["domain_id"] for view in views if view["domain_id"]}
        area_ids = {view["data_area_id"] for view in views if view["data_area_id"]}
        domains = {
            domain.id: domain.name
            for domain in self.db.query(DataDomain).filter(DataDomain.id.in_(domain_ids)).all()
        } if domain_ids else {}
        areas = {
            area.id: area.name for area in self.db.query(DataArea).filter(DataArea.id.in_(area_ids)).all()
        } if area_ids else {}
        return domains, areas

    def _node(
        self,
        model_object: DataModelObject,
        layer: str,
        names: Tuple[Dict[UUID, str], Dict[UUID, str]],
    ) -> CanvasNode:
        view = resolve_object_view(model_object)
        domains, areas = names
        attributes: List[CanvasAttribute] = []
        for model_attribute in model_object.attributes:
            attribute_view = resolve_attribute_view(model_attribute)
            attributes.append(
                CanvasAttribute(id=model_attribute.id, attribute_id=model_attribute.attribute_id, **attribute_view)
            )
        attributes.sort(key=lambda item: (item.order_index, item.name))
        return CanvasNode(
            id=model_object.id,
            model_object_id=model_object.id,
            object_id=model_object.object_id,
            domain_name=domains.get(view["domain_id"]),
            data_area_name=areas.get(view["data_area_id"]),
            position=layer_position(model_object, layer),
            is_visible=model_object.is_visible,
            layer_specific_config=model_object.layer_specific_config,
            attributes=attributes,
            **view,
        )

    def _fallback_global_ids(
        self,
        relationships: List[DataModelObjectRelationship],
        model_objects: Dict[UUID, DataModelObject],
    ) -> Dict[UUID, UUID]:
        """Resolve edges without a stored global reference through the relationship key."""
        if not relationships:
            return {}
        keys: Dict[UUID, str] = {}
        model_attributes = {
            model_attribute.id: model_attribute
            for model_object in model_objects.values()
            for model_attribute in model_object.attributes
        }
        for relationship in relationships:
            source = model_objects[relationship.source_model_object_id].object
            target = model_objects[relationship.target_model_object_id].object
            if source is None or target is None:
                continue
            source_attribute_id = target_attribute_id = None
            if relationship.source_model_attribute_id and relationship.target_model_attribute_id:
                source_attribute = model_attributes.get(relationship.source_model_attribute_id)
                target_attribute = model_attributes.get(relationship.target_model_attribute_id)
                if source_attribute is None or target_attribute is None:
                    continue
                if source_attribute.attribute is None or target_attribute.attribute is None:
                    continue
                source_attribute_id = source_attribute.attribute.lineage_root_id
                target_attribute_id = target_attribute.attribute.lineage_root_id
            keys[relationship.id] = build_relationship_key(
                source.lineage_root_id,
                target.lineage_root_id,
                relationship.relationship_level,
                source_attribute_id,
                target_attribute_id,
            )
        if not keys:
            return {}
        globals_by_key = {
            global_relationship.relationship_key: global_relationship.id
            for global_relationship in self.db.query(DataObjectRelationship)
            .filter(DataObjectRelationship.relationship_key.in_(set(keys.values())))
            .all()
        }
        return {
            relationship_id: globals_by_key[key]
            for relationship_id, key in keys.items()
            if key in globals_by_key
        }

    def save_positions(self, model: DataModel, request: CanvasPositionsRequest) -> CanvasPositionsResult:
        layer = request.layer or model.layer
        updated = skipped = 0
        for entry in request.positions:
            model_object = self._target_for(model, entry.model_object_id, entry.object_id)
            if model_object is None:
                skipped += 1
                continue
            position = entry.position.model_dump()
            set_layer_position(model_object, layer, position)
            if layer == CONCEPTUAL and model_object.object is not None:
                model_object.object.position = dict(position)
            updated += 1
        self.db.flush()
        if skipped:
            logger.info("Skipped %s unknown canvas positions for model %s", skipped, model.id)
        return CanvasPositionsResult(layer=layer, updated=updated, skipped=skipped)

    def _target_for(
        self, model: DataModel, model_object_id: Optional[UUID], object_id: Optional[UUID]
    ) -> Optional[DataModelObject]:
        query = self.db.query(DataModelObject).filter(DataModelObject.model_id == model.id)
        if model_object_id is not None:
            return query.filter(DataModelObject.id == model_object_id).first()
        if object_id is not None:
            return query.filter(DataModelObject.object_id == object_id).first()
        return None
