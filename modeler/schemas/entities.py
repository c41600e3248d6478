from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ModelLayer = Literal["conceptual", "logical", "physical"]
RelationshipType = Literal["1:1", "1:N", "N:1", "N:M", "M:N"]


class TimestampSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    created_at: datetime
    updated_at: datetime


class CamelRequest(BaseModel):
    """Request body that accepts snake_case or camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, protected_namespaces=())


class Position(BaseModel):
    x: float
    y: float


# ----------------------------------------------------------------------
# Reference data


class SystemBase(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    system_type: Optional[str] = Field(None, max_length=100)
    can_be_source: bool = True
    can_be_target: bool = True
    connection_config: Optional[Dict[str, Any]] = None
    status: str = Field("active", max_length=50)
    color_code: Optional[str] = Field(None, max_length=20)


class SystemCreate(SystemBase):
    pass


class SystemUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    system_type: Optional[str] = Field(None, max_length=100)
    can_be_source: Optional[bool] = None
    can_be_target: Optional[bool] = None
    connection_config: Optional[Dict[str, Any]] = None
    status: Optional[str] = Field(None, max_length=50)
    color_code: Optional[str] = Field(None, max_length=20)


class SystemRead(SystemBase, TimestampSchema):
    id: UUID


class DataAreaBase(BaseModel):
    domain_id: UUID
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    color_code: Optional[str] = Field(None, max_length=20)


class DataAreaCreate(DataAreaBase):
    pass


class DataAreaUpdate(BaseModel):
    domain_id: Optional[UUID] = None
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    color_code: Optional[str] = Field(None, max_length=20)


class DataAreaRead(DataAreaBase, TimestampSchema):
    id: UUID


class DataDomainBase(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    color_code: Optional[str] = Field(None, max_length=20)


class DataDomainCreate(DataDomainBase):
    pass


class DataDomainUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    color_code: Optional[str] = Field(None, max_length=20)


class DataDomainRead(DataDomainBase, TimestampSchema):
    id: UUID
    areas: List[DataAreaRead] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Models


class DataModelBase(BaseModel):
    name: str = Field(..., max_length=200)
    description: Optional[str] = None
    layer: ModelLayer = "conceptual"
    parent_model_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None


class DataModelCreate(DataModelBase):
    pass


class DataModelUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    target_system_id: Optional[UUID] = None
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None


class DataModelRead(DataModelBase, TimestampSchema):
    id: UUID


class ModelFamilyRead(BaseModel):
    conceptual: DataModelRead
    logical: Optional[DataModelRead] = None
    physical: Optional[DataModelRead] = None


class CreateWithLayersRequest(CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    target_system_id: Optional[UUID] = None
    target_system: Optional[str] = Field(None, max_length=200)
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    include_template: bool = True


class CreateWithLayersResponse(BaseModel):
    conceptual: DataModelRead
    logical: DataModelRead
    physical: DataModelRead
    templates_added: int = 0
    message: str


# ----------------------------------------------------------------------
# Objects and projections


class ModelObjectConfig(CamelRequest):
    position: Optional[Position] = None
    target_system_id: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = None
    is_visible: Optional[bool] = None
    layer_specific_config: Optional[Dict[str, Any]] = None


class DataObjectFields(CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    object_type: Optional[str] = Field(None, max_length=100)
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    source_system_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    position: Optional[Position] = None
    properties: Optional[Dict[str, Any]] = None
    is_new: bool = True


class DataObjectCreate(DataObjectFields):
    model_id: UUID
    config: Optional[ModelObjectConfig] = None
    layer_configs: Optional[Dict[ModelLayer, ModelObjectConfig]] = None
    cascade: bool = True


class DataObjectUpdate(CamelRequest):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    object_type: Optional[str] = Field(None, max_length=100)
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    source_system_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    position: Optional[Position] = None
    properties: Optional[Dict[str, Any]] = None


class DataObjectRead(TimestampSchema):
    id: UUID
    name: str
    description: Optional[str] = None
    object_type: Optional[str] = None
    model_id: Optional[UUID] = None
    origin_object_id: Optional[UUID] = None
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    source_system_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    is_new: bool
    position: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Any]] = None


class ModelObjectRead(TimestampSchema):
    id: UUID
    model_id: UUID
    object_id: Optional[UUID] = None
    target_system_id: Optional[UUID] = None
    name: Optional[str] = None
    description: Optional[str] = None
    object_type: Optional[str] = None
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    position: Optional[Dict[str, Any]] = None
    is_visible: bool
    layer_specific_config: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Any]] = None


class AttachObjectRequest(CamelRequest):
    object_id: UUID
    config: Optional[ModelObjectConfig] = None


class DraftObjectCreate(CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    object_type: Optional[str] = Field(None, max_length=100)
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None
    config: Optional[ModelObjectConfig] = None


class ModelObjectUpdate(CamelRequest):
    position: Optional[Position] = None
    is_visible: Optional[bool] = None
    target_system_id: Optional[UUID] = None
    layer_specific_config: Optional[Dict[str, Any]] = None
    properties: Optional[Dict[str, Any]] = None
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    object_type: Optional[str] = Field(None, max_length=100)
    domain_id: Optional[UUID] = None
    data_area_id: Optional[UUID] = None


class GenerateNextLayerRequest(CamelRequest):
    target_model_id: Optional[UUID] = None
    config: Optional[ModelObjectConfig] = None
    name_override: Optional[str] = Field(None, max_length=200)


# ----------------------------------------------------------------------
# Attributes


class AttributeFields(CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    conceptual_type: Optional[str] = Field(None, max_length=100)
    logical_type: Optional[str] = Field(None, max_length=100)
    physical_type: Optional[str] = Field(None, max_length=100)
    data_type: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    precision: Optional[int] = Field(None, ge=0)
    scale: Optional[int] = Field(None, ge=0)
    nullable: bool = True
    is_primary_key: bool = False
    is_foreign_key: bool = False
    order_index: Optional[int] = None


class AttributeCreate(AttributeFields):
    model_id: Optional[UUID] = None


class AttributeUpdate(CamelRequest):
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    conceptual_type: Optional[str] = Field(None, max_length=100)
    logical_type: Optional[str] = Field(None, max_length=100)
    physical_type: Optional[str] = Field(None, max_length=100)
    data_type: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    precision: Optional[int] = Field(None, ge=0)
    scale: Optional[int] = Field(None, ge=0)
    nullable: Optional[bool] = None
    is_primary_key: Optional[bool] = None
    is_foreign_key: Optional[bool] = None
    order_index: Optional[int] = None


class AttributeRead(TimestampSchema):
    id: UUID
    object_id: UUID
    origin_attribute_id: Optional[UUID] = None
    name: str
    description: Optional[str] = None
    conceptual_type: Optional[str] = None
    logical_type: Optional[str] = None
    physical_type: Optional[str] = None
    data_type: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nullable: bool
    is_primary_key: bool
    is_foreign_key: bool
    order_index: int


class ModelAttributeCreate(CamelRequest):
    name: str = Field(..., min_length=1, max_length=200)
    conceptual_type: Optional[str] = Field(None, max_length=100)
    logical_type: Optional[str] = Field(None, max_length=100)
    physical_type: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    precision: Optional[int] = Field(None, ge=0)
    scale: Optional[int] = Field(None, ge=0)
    nullable: Optional[bool] = None
    is_primary_key: Optional[bool] = None
    is_foreign_key: Optional[bool] = None
    order_index: Optional[int] = None
    layer_specific_config: Optional[Dict[str, Any]] = None


class ModelAttributeUpdate(CamelRequest):
    name: Optional[str] = Field(None, max_length=200)
    conceptual_type: Optional[str] = Field(None, max_length=100)
    logical_type: Optional[str] = Field(None, max_length=100)
    physical_type: Optional[str] = Field(None, max_length=100)
    length: Optional[int] = Field(None, ge=0)
    precision: Optional[int] = Field(None, ge=0)
    scale: Optional[int] = Field(None, ge=0)
    nullable: Optional[bool] = None
    is_primary_key: Optional[bool] = None
    is_foreign_key: Optional[bool] = None
    order_index: Optional[int] = None
    layer_specific_config: Optional[Dict[str, Any]] = None


class ModelAttributeRead(TimestampSchema):
    id: UUID
    model_id: UUID
    model_object_id: UUID
    attribute_id: Optional[UUID] = None
    name: Optional[str] = None
    conceptual_type: Optional[str] = None
    logical_type: Optional[str] = None
    physical_type: Optional[str] = None
    length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    nullable: Optional[bool] = None
    is_primary_key: Optional[bool] = None
    is_foreign_key: Optional[bool] = None
    order_index: Optional[int] = None
    layer_specific_config: Optional[Dict[str, Any]] = None


class AttributeCascadeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    attribute: AttributeRead
    model_attribute: Optional[ModelAttributeRead] = None
    mirrored_attribute: Optional[AttributeRead] = None
    mirrored_model_attribute: Optional[ModelAttributeRead] = None
    warnings: List[str] = Field(default_factory=list)


class LayerReplicaRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    layer: ModelLayer
    data_object: DataObjectRead
    model_object: ModelObjectRead
    attributes: List[AttributeRead] = Field(default_factory=list)


class ObjectCreateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, protected_namespaces=())

    data_object: DataObjectRead
    model_object: ModelObjectRead
    replicas: List[LayerReplicaRead] = Field(default_factory=list)
    skipped_layers: List[str] = Field(default_factory=list)


# ----------------------------------------------------------------------
# Relationships


class RelationshipCreate(CamelRequest):
    model_id: UUID
    source_model_object_id: UUID
    target_model_object_id: UUID
    relationship_type: RelationshipType = Field(
        ..., validation_alias=AliasChoices("relationship_type", "relationshipType", "type")
    )
    source_model_attribute_id: Optional[UUID] = None
    target_model_attribute_id: Optional[UUID] = None
    source_handle: Optional[str] = Field(None, max_length=100)
    target_handle: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    propagate: Optional[bool] = None


class RelationshipUpdate(CamelRequest):
    source_model_object_id: Optional[UUID] = None
    target_model_object_id: Optional[UUID] = None
    relationship_type: Optional[RelationshipType] = Field(
        None, validation_alias=AliasChoices("relationship_type", "relationshipType", "type")
    )
    source_model_attribute_id: Optional[UUID] = None
    target_model_attribute_id: Optional[UUID] = None
    source_handle: Optional[str] = Field(None, max_length=100)
    target_handle: Optional[str] = Field(None, max_length=100)
    name: Optional[str] = Field(None, max_length=200)
    description: Optional[str] = None
    propagate: Optional[bool] = None


class ModelRelationshipRead(TimestampSchema):
    id: UUID
    model_id: UUID
    source_model_object_id: UUID
    target_model_object_id: UUID
    source_model_attribute_id: Optional[UUID] = None
    target_model_attribute_id: Optional[UUID] = None
    relationship_level: str
    relationship_type: str
    source_handle: Optional[str] = None
    target_handle: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    global_relationship_id: Optional[UUID] = None
    propagated_from_id: Optional[UUID] = None


class GlobalRelationshipRead(TimestampSchema):
    id: UUID
    relationship_key: str
    source_object_id: UUID
    target_object_id: UUID
    source_attribute_id: Optional[UUID] = None
    target_attribute_id: Optional[UUID] = None
    relationship_level: str
    relationship_type: str
    name: Optional[str] = None
    description: Optional[str] = None


class RelationshipDeclarationRead(BaseModel):
    relationship: ModelRelationshipRead
    global_relationship_id: Optional[UUID] = None
    synced: List[ModelRelationshipRead] = Field(default_factory=list)
    synced_model_ids: List[UUID] = Field(default_factory=list)


class RelationshipRemovalRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    deleted_ids: List[UUID] = Field(default_factory=list)
    pruned_global_ids: List[UUID] = Field(default_factory=list)
    orphaned_global_ids: List[UUID] = Field(default_factory=list)
