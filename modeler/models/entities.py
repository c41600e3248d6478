import uuid
from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from modeler.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class System(Base, TimestampMixin):
    __tablename__ = "systems"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    system_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    can_be_source: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_be_target: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    connection_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default="active")
    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)


class DataDomain(Base, TimestampMixin):
    __tablename__ = "data_domains"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    areas: Mapped[list["DataArea"]] = relationship(
        "DataArea", back_populates="domain", order_by="DataArea.name"
    )


class DataArea(Base, TimestampMixin):
    __tablename__ = "data_areas"
    __table_args__ = (
        sa.UniqueConstraint("domain_id", "name", name="uq_data_area_domain_name"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    domain_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_domains.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color_code: Mapped[str | None] = mapped_column(String(20), nullable=True)

    domain: Mapped[DataDomain] = relationship("DataDomain", back_populates="areas")


class DataModel(Base, TimestampMixin):
    __tablename__ = "data_models"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    layer: Mapped[str] = mapped_column(String(20), nullable=False, default="conceptual")
    parent_model_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=True
    )
    target_system_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="SET NULL"), nullable=True
    )
    domain_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_domains.id", ondelete="SET NULL"), nullable=True
    )
    data_area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_areas.id", ondelete="SET NULL"), nullable=True
    )

    parent: Mapped[Optional["DataModel"]] = relationship("DataModel", remote_side=[id])
    target_system: Mapped[Optional[System]] = relationship("System")
    domain: Mapped[Optional[DataDomain]] = relationship("DataDomain")
    data_area: Mapped[Optional[DataArea]] = relationship("DataArea")


class DataObject(Base, TimestampMixin):
    """Canonical, layer-independent object definition.

    ``model_id`` records the layer model the object was authored for. Objects replicated into
    sibling layers point back at the conceptual original through ``origin_object_id``.
    """

    __tablename__ = "data_objects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    object_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="SET NULL"), nullable=True
    )
    origin_object_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_objects.id", ondelete="SET NULL"), nullable=True
    )
    domain_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_domains.id", ondelete="SET NULL"), nullable=True
    )
    data_area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_areas.id", ondelete="SET NULL"), nullable=True
    )
    source_system_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="SET NULL"), nullable=True
    )
    target_system_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="SET NULL"), nullable=True
    )
    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    position: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    properties: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    model: Mapped[Optional[DataModel]] = relationship("DataModel")
    domain: Mapped[Optional[DataDomain]] = relationship("DataDomain")
    data_area: Mapped[Optional[DataArea]] = relationship("DataArea")
    source_system: Mapped[Optional[System]] = relationship("System", foreign_keys=[source_system_id])
    target_system: Mapped[Optional[System]] = relationship("System", foreign_keys=[target_system_id])
    attributes: Mapped[list["Attribute"]] = relationship(
        "Attribute",
        back_populates="object",
        order_by="Attribute.order_index",
    )

    @property
    def lineage_root_id(self) -> uuid.UUID:
        return self.origin_object_id or self.id


class DataModelObject(Base, TimestampMixin):
    """Per-layer projection of an object.

    ``object_id`` is optional: a projection without a canonical object is authoritative for its
    own name, type and classification.
    """

    __tablename__ = "data_model_objects"
    __table_args__ = (
        sa.UniqueConstraint("model_id", "object_id", name="uq_data_model_object"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=False
    )
    object_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_objects.id", ondelete="CASCADE"), nullable=True
    )
    target_system_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("systems.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    object_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    domain_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_domains.id", ondelete="SET NULL"), nullable=True
    )
    data_area_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_areas.id", ondelete="SET NULL"), nullable=True
    )
    position: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    layer_specific_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    properties: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    model: Mapped[DataModel] = relationship("DataModel")
    object: Mapped[Optional[DataObject]] = relationship("DataObject")
    attributes: Mapped[list["DataModelAttribute"]] = relationship(
        "DataModelAttribute",
        back_populates="model_object",
        order_by="DataModelAttribute.order_index",
    )


class Attribute(Base, TimestampMixin):
    __tablename__ = "attributes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_objects.id", ondelete="CASCADE"), nullable=False
    )
    origin_attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("attributes.id", ondelete="SET NULL"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    conceptual_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logical_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    physical_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    data_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    precision: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scale: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nullable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_primary_key: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_foreign_key: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    object: Mapped[DataObject] = relationship("DataObject", back_populates="attributes")

    @property
    def lineage_root_id(self) -> uuid.UUID:
        return self.origin_attribute_id or self.id


class DataModelAttribute(Base, TimestampMixin):
    """Per-layer projection of an attribute; ``None`` fields inherit the canonical value."""

    __tablename__ = "data_model_attributes"
    __table_args__ = (
        sa.UniqueConstraint("model_object_id", "attribute_id", name="uq_data_model_attribute"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=False
    )
    model_object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_model_objects.id", ondelete="CASCADE"), nullable=False
    )
    attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("attributes.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    conceptual_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    logical_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    physical_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    length: Mapped[int | None] = mapped_column(Integer, nullable=True)
    precision: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scale: Mapped[int | None] = mapped_column(Integer, nullable=True)
    nullable: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_primary_key: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    is_foreign_key: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    order_index: Mapped[int | None] = mapped_column(Integer, nullable=True)
    layer_specific_config: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    model_object: Mapped[DataModelObject] = relationship(
        "DataModelObject", back_populates="attributes"
    )
    attribute: Mapped[Optional[Attribute]] = relationship("Attribute")


class DataObjectRelationship(Base, TimestampMixin):
    """Global relationship between canonical objects or attributes.

    Endpoints are stored as lineage roots so that every layer declaring the same link resolves
    to one row through ``relationship_key``.
    """

    __tablename__ = "data_object_relationships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    relationship_key: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    source_object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_objects.id", ondelete="CASCADE"), nullable=False
    )
    target_object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_objects.id", ondelete="CASCADE"), nullable=False
    )
    source_attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("attributes.id", ondelete="CASCADE"), nullable=True
    )
    target_attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("attributes.id", ondelete="CASCADE"), nullable=True
    )
    relationship_level: Mapped[str] = mapped_column(String(20), nullable=False, default="object")
    relationship_type: Mapped[str] = mapped_column(String(10), nullable=False)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class DataModelObjectRelationship(Base, TimestampMixin):
    """Layer-local relationship edge between two projections of one model."""

    __tablename__ = "data_model_object_relationships"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    model_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_models.id", ondelete="CASCADE"), nullable=False
    )
    source_model_object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_model_objects.id", ondelete="CASCADE"), nullable=False
    )
    target_model_object_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_model_objects.id", ondelete="CASCADE"), nullable=False
    )
    source_model_attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_model_attributes.id", ondelete="CASCADE"), nullable=True
    )
    target_model_attribute_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("data_model_attributes.id", ondelete="CASCADE"), nullable=True
    )
    relationship_level: Mapped[str] = mapped_column(String(20), nullable=False, default="object")
    relationship_type: Mapped[str] = mapped_column(String(10), nullable=False)
    source_handle: Mapped[str | None] = mapped_column(String(100), nullable=True)
    target_handle: Mapped[str | None] = mapped_column(String(100), nullable=True)
    name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    global_relationship_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("data_object_relationships.id", ondelete="SET NULL"),
        nullable=True,
    )
    propagated_from_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("data_model_object_relationships.id", ondelete="CASCADE"),
        nullable=True,
    )

    model: Mapped[DataModel] = relationship("DataModel")
    global_relationship: Mapped[Optional[DataObjectRelationship]] = relationship(
        "DataObjectRelationship"
    )
