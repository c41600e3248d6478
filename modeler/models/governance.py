from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modeler.database import Base
from modeler.models.entities import DataArea, DataDomain, DataModel, System, TimestampMixin


class BusinessCapability(Base, TimestampMixin):
    __tablename__ = "business_capabilities"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_capabilities.id", ondelete="SET NULL"), nullable=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_standard: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    maturity_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    criticality: Mapped[str | None] = mapped_column(String(50), nullable=True)
    owner: Mapped[str | None] = mapped_column(String(200), nullable=True)

    parent: Mapped[Optional["BusinessCapability"]] = relationship(
        "BusinessCapability", remote_side=[id]
    )


class _CapabilityMappingMixin(TimestampMixin):
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    mapping_type: Mapped[str] = mapped_column(String(50), nullable=False, default="supports")
    importance: Mapped[str | None] = mapped_column(String(50), nullable=True)
    owner: Mapped[str | None] = mapped_column(String(200), nullable=True)
    risk_level: Mapped[str | None] = mapped_column(String(50), nullable=True)
    lifecycle_phase: Mapped[str | None] = mapped_column(String(50), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class CapabilityDomainMapping(Base, _CapabilityMappingMixin):
    __tablename__ = "capability_domain_mappings"
    __table_args__ = (
        sa.UniqueConstraint("capability_id", "domain_id", name="uq_capability_domain"),
    )

    capability_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_capabilities.id", ondelete="CASCADE"), nullable=False
    )
    domain_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_domains.id", ondelete="CASCADE"), nullable=False
    )

    domain: Mapped[DataDomain] = relationship("DataDomain")


class CapabilityDataAreaMapping(Base, _CapabilityMappingMixin):
    __tablename__ = "capability_data_area_mappings"
    __table_args__ = (
        sa.UniqueConstraint("capability_id", "data_area_id", name="uq_capability_data_area"),
    )

    capability_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_capabilities.id", ondelete="CASCADE"), nullable=False
    )
    data_area_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_areas.id", ondelete="CASCADE"), nullable=False
    )

    data_area: Mapped[DataArea] = relationship("DataArea")


class CapabilitySystemMapping(Base, _CapabilityMappingMixin):
    __tablename__ = "capability_system_mappings"
    __table_args__ = (
        sa.UniqueConstraint("capability_id", "system_id", name="uq_capability_system"),
    )

    capability_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_capabilities.id", ondelete="CASCADE"), nullable=False
    )
    system_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="CASCADE"), nullable=False
    )
    system_role: Mapped[str | None] = mapped_column(String(50), nullable=True)

    system: Mapped[System] = relationship("System")


class CapabilityModelMapping(Base, _CapabilityMappingMixin):
    __tablename__ = "capability_model_mappings"
    __table_args__ = (
        sa.UniqueConstraint("capability_id", "model_id", name="uq_capability_model"),
    )

    capability_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("business_capabilities.id", ondelete="CASCADE"), nullable=False
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=False
    )

    model: Mapped[DataModel] = relationship("DataModel")


class LifecyclePhase(Base, TimestampMixin):
    __tablename__ = "lifecycle_phases"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class ModelLifecycleAssignment(Base, TimestampMixin):
    __tablename__ = "model_lifecycle_assignments"
    __table_args__ = (
        sa.UniqueConstraint("model_id", "phase_id", name="uq_model_lifecycle_phase"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=False
    )
    phase_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("lifecycle_phases.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="not_started")
    owner: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    phase: Mapped[LifecyclePhase] = relationship("LifecyclePhase")
