"""Cross-layer listing of canonical objects.

Each item is a lineage root together with every replica, projection, attribute and
relationship that hangs off it in any layer of any model.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from modeler.config import Settings, get_settings
from modeler.constants.modeling import MODEL_LAYERS
from modeler.models import (
    Attribute,
    DataArea,
    DataDomain,
    DataModel,
    DataModelAttribute,
    DataModelObject,
    DataModelObjectRelationship,
    DataObject,
    DataObjectRelationship,
    System,
)
from modeler.schemas.object_lake import (
    LakeAttribute,
    LakeAttributeOverride,
    LakeGlobalRelationship,
    LakeModelInstance,
    LakeModelRef,
    LakeModelRelationship,
    LakeReference,
    LakeRelationships,
    LakeStats,
    ObjectLakeItem,
    ObjectLakePage,
)
from modeler.services.projection_builder import ATTRIBUTE_OVERRIDE_FIELDS

logger = logging.getLogger(__name__)

SORT_KEYS = {
    "name": "name",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "attributeCount": "attribute_count",
    "instanceCount": "instance_count",
    "modelInstanceCount": "instance_count",
    "relationshipCount": "relationship_count",
}
_TYPE_FIELDS = ("conceptual_type", "logical_type", "physical_type", "length")


@dataclass
class ObjectLakeQuery:
    search: Optional[str] = None
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    system_id: Optional[UUID] = None
    model_id: Optional[UUID] = None
    layer: Optional[str] = None
    object_type: Optional[str] = None
    has_attributes: Optional[bool] = None
    relationship_type: Optional[str] = None
    include_hidden: bool = False
    page: int = 1
    page_size: Optional[int] = None
    sort_by: str = "name"
    sort_order: str = "asc"


def _layer_rank(layer: Optional[str]) -> int:
    return MODEL_LAYERS.index(layer) if layer in MODEL_LAYERS else len(MODEL_LAYERS)


class ObjectLakeService:
    def __init__(self, db: Session, settings: Optional[Settings] = None):
        self.db = db
        self.settings = settings or get_settings()

    def clamp_page_size(self, page_size: Optional[int]) -> int:
        if page_size is None:
            page_size = self.settings.object_lake_default_page_size
        return max(self.settings.object_lake_min_page_size, min(page_size, self.settings.object_lake_max_page_size))

    def list(self, query: ObjectLakeQuery) -> ObjectLakePage:
        page = max(query.page or 1, 1)
        page_size = self.clamp_page_size(query.page_size)
        sort_field = SORT_KEYS.get(query.sort_by, "name")
        descending = (query.sort_order or "asc").lower() == "desc"

        roots = self._roots(query)
        items = self._build_items(roots, query)
        items = [item for item in items if self._matches(item, query)]

        def sort_value(item: ObjectLakeItem):
            if sort_field == "name":
                return item.name.lower()
            if sort_field == "updated_at":
                return item.stats.last_updated or item.updated_at
            return getattr(item.stats, sort_field)

        items.sort(key=lambda item: item.name.lower())
        items.sort(key=sort_value, reverse=descending)

        total = len(items)
        start = (page - 1) * page_size
        return ObjectLakePage(
            items=items[start:start + page_size],
            total=total,
            page=page,
            page_size=page_size,
            total_pages=math.ceil(total / page_size) if total else 0,
            sort_by=query.sort_by if query.sort_by in SORT_KEYS else "name",
            sort_order="desc" if descending else "asc",
        )

    # ------------------------------------------------------------------
    # Loading

    def _roots(self, query: ObjectLakeQuery) -> List[DataObject]:
        statement = self.db.query(DataObject).filter(DataObject.origin_object_id.is_(None))
        if query.search:
            pattern = f"%{query.search.strip().lower()}%"
            statement = statement.filter(
                or_(func.lower(DataObject.name).like(pattern), func.lower(DataObject.description).like(pattern))
            )
        if query.domain_id:
            statement = statement.filter(DataObject.domain_id == query.domain_id)
        if query.data_area_id:
            statement = statement.filter(DataObject.data_area_id == query.data_area_id)
        if query.object_type:
            statement = statement.filter(func.lower(DataObject.object_type) == query.object_type.lower())
        return statement.all()

    def _build_items(self, roots: List[DataObject], query: ObjectLakeQuery) -> List[ObjectLakeItem]:
        if not roots:
            return []
        db = self.db
        root_ids = [root.id for root in roots]

        members: Dict[UUID, List[DataObject]] = {root.id: [root] for root in roots}
        for replica in db.query(DataObject).filter(DataObject.origin_object_id.in_(root_ids)).all():
            members[replica.origin_object_id].append(replica)
        object_root = {member.id: root_id for root_id, group in members.items() for member in group}

        models = {model.id: model for model in db.query(DataModel).all()}
        projection_query = db.query(DataModelObject).filter(DataModelObject.object_id.in_(list(object_root)))
        if not query.include_hidden:
            projection_query = projection_query.filter(DataModelObject.is_visible.is_(True))
        projections = projection_query.all()
        projection_ids = [projection.id for projection in projections]

        attributes = db.query(Attribute).filter(Attribute.object_id.in_(list(object_root))).all()
        model_attributes = (
            db.query(DataModelAttribute).filter(DataModelAttribute.model_object_id.in_(projection_ids)).all()
            if projection_ids
            else []
        )
        edges = (
            db.query(DataModelObjectRelationship)
            .filter(
                or_(
                    DataModelObjectRelationship.source_model_object_id.in_(projection_ids),
                    DataModelObjectRelationship.target_model_object_id.in_(projection_ids),
                )
            )
            .all()
            if projection_ids
            else []
        )
        global_relationships = (
            db.query(DataObjectRelationship)
            .filter(
                or_(
                    DataObjectRelationship.source_object_id.in_(root_ids),
                    DataObjectRelationship.target_object_id.in_(root_ids),
                )
            )
            .all()
        )
        references = self._references(roots)

        projections_by_root: Dict[UUID, List[DataModelObject]] = defaultdict(list)
        for projection in projections:
            projections_by_root[object_root[projection.object_id]].append(projection)
        model_attributes_by_projection: Dict[UUID, List[DataModelAttribute]] = defaultdict(list)
        model_attributes_by_attribute: Dict[UUID, List[DataModelAttribute]] = defaultdict(list)
        for model_attribute in model_attributes:
            model_attributes_by_projection[model_attribute.model_object_id].append(model_attribute)
            if model_attribute.attribute_id is not None:
                model_attributes_by_attribute[model_attribute.attribute_id].append(model_attribute)
        attributes_by_root: Dict[UUID, List[Attribute]] = defaultdict(list)
        for attribute in attributes:
            attributes_by_root[object_root[attribute.object_id]].append(attribute)
        edges_by_projection: Dict[UUID, List[DataModelObjectRelationship]] = defaultdict(list)
        for edge in edges:
            edges_by_projection[edge.source_model_object_id].append(edge)
            if edge.target_model_object_id != edge.source_model_object_id:
                edges_by_projection[edge.target_model_object_id].append(edge)
        globals_by_root: Dict[UUID, List[DataObjectRelationship]] = defaultdict(list)
        for relationship in global_relationships:
            globals_by_root[relationship.source_object_id].append(relationship)
            if relationship.target_object_id != relationship.source_object_id:
                globals_by_root[relationship.target_object_id].append(relationship)

        object_layers = {
            member.id: models[member.model_id].layer if member.model_id in models else None
            for group in members.values()
            for member in group
        }

        items: List[ObjectLakeItem] = []
        for root in roots:
            instances: List[LakeModelInstance] = []
            model_specific: Dict[UUID, LakeModelRelationship] = {}
            for projection in projections_by_root.get(root.id, []):
                model = models.get(projection.model_id)
                if model is None:
                    continue
                relationships = [self._edge(edge) for edge in edges_by_projection.get(projection.id, [])]
                for relationship in relationships:
                    model_specific[relationship.id] = relationship
                instances.append(
                    LakeModelInstance(
                        id=projection.id,
                        object_id=projection.object_id,
                        model=LakeModelRef(id=model.id, name=model.name, layer=model.layer),
                        position=projection.position,
                        is_visible=projection.is_visible,
                        target_system_id=projection.target_system_id,
                        layer_specific_config=projection.layer_specific_config,
                        attributes=[item.id for item in model_attributes_by_projection.get(projection.id, [])],
                        relationships=relationships,
                    )
                )
            instances.sort(key=lambda instance: (_layer_rank(instance.model.layer), instance.model.name))

            lake_attributes = self._attributes(
                attributes_by_root.get(root.id, []), object_layers, model_attributes_by_attribute, models
            )
            global_items = [
                LakeGlobalRelationship(
                    id=relationship.id,
                    source_object_id=relationship.source_object_id,
                    target_object_id=relationship.target_object_id,
                    source_attribute_id=relationship.source_attribute_id,
                    target_attribute_id=relationship.target_attribute_id,
                    relationship_type=relationship.relationship_type,
                    relationship_level=relationship.relationship_level,
                    direction="outgoing" if relationship.source_object_id == root.id else "incoming",
                )
                for relationship in globals_by_root.get(root.id, [])
            ]

            timestamps = [member.updated_at for member in members[root.id]]
            timestamps += [projection.updated_at for projection in projections_by_root.get(root.id, [])]
            timestamps += [attribute.updated_at for attribute in attributes_by_root.get(root.id, [])]
            domain, area, source_system, target_system = references(root)
            items.append(
                ObjectLakeItem(
                    id=root.id,
                    name=root.name,
                    description=root.description,
                    object_type=root.object_type,
                    is_new=root.is_new,
                    domain=domain,
                    data_area=area,
                    source_system=source_system,
                    target_system=target_system,
                    created_at=root.created_at,
                    updated_at=root.updated_at,
                    stats=LakeStats(
                        attribute_count=len(lake_attributes),
                        relationship_count=len(global_items),
                        instance_count=len(instances),
                        last_updated=max((value for value in timestamps if value is not None), default=None),
                    ),
                    model_instances=instances,
                    attributes=lake_attributes,
                    relationships=LakeRelationships(global_=global_items, model_specific=list(model_specific.values())),
                )
            )
        return items

    def _references(self, roots: List[DataObject]):
        domain_ids = {root.domain_id for root in roots if root.domain_id}
        area_ids = {root.data_area_id for root in roots if root.data_area_id}
        system_ids = {root.source_system_id for root in roots if root.source_system_id}
        system_ids |= {root.target_system_id for root in roots if root.target_system_id}
        domains = {item.id: item.name for item in self.db.query(DataDomain).filter(DataDomain.id.in_(domain_ids))}
        areas = {item.id: item.name for item in self.db.query(DataArea).filter(DataArea.id.in_(area_ids))}
        systems = {item.id: item.name for item in self.db.query(System).filter(System.id.in_(system_ids))}

        def reference(mapping: Dict[UUID, str], entity_id: Optional[UUID]) -> Optional[LakeReference]:
            if entity_id is None or entity_id not in mapping:
                return None
            return LakeReference(id=entity_id, name=mapping[entity_id])

        def resolve(root: DataObject):
            return (
                reference(domains, root.domain_id),
                reference(areas, root.data_area_id),
                reference(systems, root.source_system_id),
                reference(systems, root.target_system_id),
            )

        return resolve

    def _attributes(
        self,
        attributes: List[Attribute],
        object_layers: Dict[UUID, Optional[str]],
        model_attributes_by_attribute: Dict[UUID, List[DataModelAttribute]],
        models: Dict[UUID, DataModel],
    ) -> List[LakeAttribute]:
        groups: Dict[UUID, List[Attribute]] = defaultdict(list)
        for attribute in attributes:
            groups[attribute.lineage_root_id].append(attribute)

        result: List[LakeAttribute] = []
        for group in groups.values():
            group.sort(key=lambda attribute: _layer_rank(object_layers.get(attribute.object_id)))
            lead = group[0]
            merged = {field: next((getattr(item, field) for item in group if getattr(item, field) is not None), None)
                      for field in _TYPE_FIELDS}
            overrides: List[LakeAttributeOverride] = []
            for attribute in group:
                for model_attribute in model_attributes_by_attribute.get(attribute.id, []):
                    model = models.get(model_attribute.model_id)
                    values = {
                        field: getattr(model_attribute, field)
                        for field in ATTRIBUTE_OVERRIDE_FIELDS
                        if getattr(model_attribute, field) is not None
                    }
                    if model_attribute.layer_specific_config:
                        values["layer_specific_config"] = model_attribute.layer_specific_config
                    overrides.append(
                        LakeAttributeOverride(
                            model_id=model_attribute.model_id,
                            model_attribute_id=model_attribute.id,
                            layer=model.layer if model is not None else "unknown",
                            overrides=values,
                        )
                    )
            result.append(
                LakeAttribute(
                    id=lead.lineage_root_id,
                    name=lead.name,
                    nullable=lead.nullable,
                    is_primary_key=lead.is_primary_key,
                    is_foreign_key=lead.is_foreign_key,
                    order_index=lead.order_index,
                    metadata_by_model=overrides,
                    **merged,
                )
            )
        result.sort(key=lambda item: (item.order_index, item.name))
        return result

    @staticmethod
    def _edge(edge: DataModelObjectRelationship) -> LakeModelRelationship:
        return LakeModelRelationship(
            id=edge.id,
            model_id=edge.model_id,
            source_model_object_id=edge.source_model_object_id,
            target_model_object_id=edge.target_model_object_id,
            source_model_attribute_id=edge.source_model_attribute_id,
            target_model_attribute_id=edge.target_model_attribute_id,
            relationship_type=edge.relationship_type,
            relationship_level=edge.relationship_level,
            global_relationship_id=edge.global_relationship_id,
        )

    # ------------------------------------------------------------------
    # Filtering

    def _matches(self, item: ObjectLakeItem, query: ObjectLakeQuery) -> bool:
        if query.model_id and not any(instance.model.id == query.model_id for instance in item.model_instances):
            return False
        if query.layer and not any(instance.model.layer == query.layer for instance in item.model_instances):
            return False
        if query.has_attributes is not None and (item.stats.attribute_count > 0) != query.has_attributes:
            return False
        if query.system_id:
            system_ids = {reference.id for reference in (item.source_system, item.target_system) if reference}
            system_ids |= {instance.target_system_id for instance in item.model_instances if instance.target_system_id}
            if query.system_id not in system_ids:
                return False
        if query.relationship_type:
            types = {relationship.relationship_type for relationship in item.relationships.global_}
            types |= {relationship.relationship_type for relationship in item.relationships.model_specific}
            if query.relationship_type not in types:
                return False
        return True
