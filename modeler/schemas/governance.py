from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from modeler.schemas.entities import TimestampSchema

LifecycleStatus = Literal["not_started", "in_progress", "blocked", "completed"]


class BusinessCapabilityBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    level: int = Field(1, ge=1)
    parent_id: Optional[UUID] = None
    sort_order: int = 0
    color_code: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=50)
    is_standard: bool = True
    maturity_level: Optional[str] = Field(None, max_length=50)
    criticality: Optional[str] = Field(None, max_length=50)
    owner: Optional[str] = Field(None, max_length=200)


class BusinessCapabilityCreate(BusinessCapabilityBase):
    pass


class BusinessCapabilityUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=200)
    code: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    level: Optional[int] = Field(None, ge=1)
    parent_id: Optional[UUID] = None
    sort_order: Optional[int] = None
    color_code: Optional[str] = Field(None, max_length=20)
    icon: Optional[str] = Field(None, max_length=50)
    is_standard: Optional[bool] = None
    maturity_level: Optional[str] = Field(None, max_length=50)
    criticality: Optional[str] = Field(None, max_length=50)
    owner: Optional[str] = Field(None, max_length=200)


class BusinessCapabilityRead(BusinessCapabilityBase, TimestampSchema):
    id: UUID


class BusinessCapabilityNode(BusinessCapabilityRead):
    children: List["BusinessCapabilityNode"] = Field(default_factory=list)


class CapabilityMappingCreate(BaseModel):
    mapping_type: str = Field("supports", max_length=50)
    importance: Optional[str] = Field(None, max_length=50)
    owner: Optional[str] = Field(None, max_length=200)
    risk_level: Optional[str] = Field(None, max_length=50)
    lifecycle_phase: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    system_role: Optional[str] = Field(None, max_length=50)


class CapabilityMappingRead(TimestampSchema):
    id: UUID
    capability_id: UUID
    mapping_type: str
    importance: Optional[str] = None
    owner: Optional[str] = None
    risk_level: Optional[str] = None
    lifecycle_phase: Optional[str] = None
    description: Optional[str] = None


class CapabilityDomainMappingRead(CapabilityMappingRead):
    domain_id: UUID


class CapabilityDataAreaMappingRead(CapabilityMappingRead):
    data_area_id: UUID


class CapabilitySystemMappingRead(CapabilityMappingRead):
    system_id: UUID
    system_role: Optional[str] = None


class CapabilityModelMappingRead(CapabilityMappingRead):
    model_id: UUID


class CapabilityMappingsRead(BaseModel):
    capability: BusinessCapabilityRead
    domains: List[CapabilityDomainMappingRead] = Field(default_factory=list)
    data_areas: List[CapabilityDataAreaMappingRead] = Field(default_factory=list)
    systems: List[CapabilitySystemMappingRead] = Field(default_factory=list)
    models: List[CapabilityModelMappingRead] = Field(default_factory=list)


class LifecyclePhaseRead(TimestampSchema):
    id: UUID
    name: str
    sequence: int
    description: Optional[str] = None


class LifecycleAssignmentCreate(BaseModel):
    phase: str = Field(..., min_length=1, max_length=50)
    status: LifecycleStatus = "not_started"
    owner: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class LifecycleAssignmentUpdate(BaseModel):
    status: Optional[LifecycleStatus] = None
    owner: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None


class LifecycleApprovalRequest(BaseModel):
    approved_by: str = Field(..., min_length=1, max_length=200)


class LifecycleAssignmentRead(TimestampSchema):
    id: UUID
    model_id: UUID
    phase_id: UUID
    phase: LifecyclePhaseRead
    status: str
    owner: Optional[str] = None
    notes: Optional[str] = None
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None


BusinessCapabilityNode.model_rebuild()
