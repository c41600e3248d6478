from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from modeler.schemas.entities import ModelLayer, Position


class CanvasSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class CanvasAttribute(CanvasSchema):
    id: UUID
    attribute_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    conceptual_type: Optional[str] = None
    logical_type: Optional[str] = None
    physical_type: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False
    order_index: int = 0


class CanvasNode(CanvasSchema):
    id: UUID
    model_object_id: UUID
    object_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    object_type: Optional[str] = None
    domain_id: Optional[UUID] = None
    domain_name: Optional[str] = None
    data_area_id: Optional[UUID] = None
    data_area_name: Optional[str] = None
    source_system_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    position: Position
    is_visible: bool = True
    layer_specific_config: Optional[Dict[str, Any]] = None
    attributes: List[CanvasAttribute] = Field(default_factory=list)


class CanvasEdge(CanvasSchema):
    id: UUID
    source: UUID
    target: UUID
    source_attribute_id: Optional[UUID] = None
    target_attribute_id: Optional[UUID] = None
    relationship_type: str
    relationship_level: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    name: Optional[str] = None
    data_object_relationship_id: Optional[UUID] = None
    propagated_from_id: Optional[UUID] = None


class CanvasResponse(CanvasSchema):
    model_id: UUID
    layer: ModelLayer
    nodes: List[CanvasNode] = Field(default_factory=list)
    edges: List[CanvasEdge] = Field(default_factory=list)


class CanvasPositionUpdate(CanvasSchema):
    model_object_id: Optional[UUID] = None
    object_id: Optional[UUID] = None
    position: Position


class CanvasPositionsRequest(CanvasSchema):
    layer: Optional[ModelLayer] = None
    positions: List[CanvasPositionUpdate] = Field(default_factory=list)


class CanvasPositionsResult(CanvasSchema):
    layer: ModelLayer
    updated: int
    skipped: int
