from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from modeler.schemas.canvas import CanvasSchema


class LakeReference(CanvasSchema):
    id: UUID
    name: str


class LakeModelRef(CanvasSchema):
    id: UUID
    name: str
    layer: str


class LakeStats(CanvasSchema):
    attribute_count: int = 0
    relationship_count: int = 0
    instance_count: int = 0
    last_updated: Optional[datetime] = None


class LakeAttributeOverride(CanvasSchema):
    model_id: UUID
    model_attribute_id: UUID
    layer: str
    overrides: Dict[str, Any] = Field(default_factory=dict)


class LakeAttribute(CanvasSchema):
    id: UUID
    name: str
    conceptual_type: Optional[str] = None
    logical_type: Optional[str] = None
    physical_type: Optional[str] = None
    length: Optional[int] = None
    nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False
    order_index: int = 0
    metadata_by_model: List[LakeAttributeOverride] = Field(default_factory=list)


class LakeModelRelationship(CanvasSchema):
    id: UUID
    model_id: UUID
    source_model_object_id: UUID
    target_model_object_id: UUID
    source_model_attribute_id: Optional[UUID] = None
    target_model_attribute_id: Optional[UUID] = None
    relationship_type: str
    relationship_level: str
    global_relationship_id: Optional[UUID] = None


class LakeGlobalRelationship(CanvasSchema):
    id: UUID
    source_object_id: UUID
    target_object_id: UUID
    source_attribute_id: Optional[UUID] = None
    target_attribute_id: Optional[UUID] = None
    relationship_type: str
    relationship_level: str
    direction: str


class LakeModelInstance(CanvasSchema):
    id: UUID
    object_id: UUID
    model: LakeModelRef
    position: Optional[Dict[str, Any]] = None
    is_visible: bool = True
    target_system_id: Optional[UUID] = None
    layer_specific_config: Optional[Dict[str, Any]] = None
    attributes: List[UUID] = Field(default_factory=list)
    relationships: List[LakeModelRelationship] = Field(default_factory=list)


class LakeRelationships(CanvasSchema):
    global_: List[LakeGlobalRelationship] = Field(default_factory=list, alias="global")
    model_specific: List[LakeModelRelationship] = Field(default_factory=list)


class ObjectLakeItem(CanvasSchema):
    id: UUID
    name: str
    description: Optional[str] = None
    object_type: Optional[str] = None
    is_new: bool = True
    domain: Optional[LakeReference] = None
    data_area: Optional[LakeReference] = None
    source_system: Optional[LakeReference] = None
    target_system: Optional[LakeReference] = None
    created_at: datetime
    updated_at: datetime
    stats: LakeStats
    model_instances: List[LakeModelInstance] = Field(default_factory=list)
    attributes: List[LakeAttribute] = Field(default_factory=list)
    relationships: LakeRelationships


class ObjectLakePage(CanvasSchema):
    items: List[ObjectLakeItem] = Field(default_factory=list)
    total: int
    page: int
    page_size: int
    total_pages: int
    sort_by: str
    sort_order: str
