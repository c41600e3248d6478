"""create modeling tables

Revision ID: 20250101_000001
Revises: 
Create Date: 2025-01-01 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20250101_000001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "systems",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("system_type", sa.String(length=100), nullable=True),
        sa.Column("can_be_source", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("can_be_target", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("connection_config", sa.JSON(), nullable=True),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="active"),
        sa.Column("color_code", sa.String(length=20), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "data_domains",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color_code", sa.String(length=20), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "data_areas",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("domain_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color_code", sa.String(length=20), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["domain_id"], ["data_domains.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("domain_id", "name", name="uq_data_area_domain_name"),
    )

    op.create_table(
        "data_models",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("layer", sa.String(length=20), nullable=False, server_default="conceptual"),
        sa.Column("parent_model_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_system_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("domain_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("data_area_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["parent_model_id"], ["data_models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_system_id"], ["systems.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["domain_id"], ["data_domains.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["data_area_id"], ["data_areas.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_data_models_parent_model_id", "data_models", ["parent_model_id"])

    op.create_table(
        "data_objects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("object_type", sa.String(length=100), nullable=True),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("origin_object_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("domain_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("data_area_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("source_system_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_system_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("is_new", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("position", sa.JSON(), nullable=True),
        sa.Column("properties", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["data_models.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["origin_object_id"], ["data_objects.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["domain_id"], ["data_domains.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["data_area_id"], ["data_areas.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["source_system_id"], ["systems.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["target_system_id"], ["systems.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_data_objects_origin_object_id", "data_objects", ["origin_object_id"])

    op.create_table(
        "data_model_objects",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("object_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_system_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("object_type", sa.String(length=100), nullable=True),
        sa.Column("domain_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("data_area_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("position", sa.JSON(), nullable=True),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("layer_specific_config", sa.JSON(), nullable=True),
        sa.Column("properties", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["data_models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["object_id"], ["data_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_system_id"], ["systems.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["domain_id"], ["data_domains.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["data_area_id"], ["data_areas.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("model_id", "object_id", name="uq_data_model_object"),
    )

    op.create_table(
        "attributes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("origin_attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("conceptual_type", sa.String(length=100), nullable=True),
        sa.Column("logical_type", sa.String(length=100), nullable=True),
        sa.Column("physical_type", sa.String(length=100), nullable=True),
        sa.Column("data_type", sa.String(length=100), nullable=True),
        sa.Column("length", sa.Integer(), nullable=True),
        sa.Column("precision", sa.Integer(), nullable=True),
        sa.Column("scale", sa.Integer(), nullable=True),
        sa.Column("nullable", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_primary_key", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_foreign_key", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["object_id"], ["data_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["origin_attribute_id"], ["attributes.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_attributes_object_id", "attributes", ["object_id"])

    op.create_table(
        "data_model_attributes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("model_object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("conceptual_type", sa.String(length=100), nullable=True),
        sa.Column("logical_type", sa.String(length=100), nullable=True),
        sa.Column("physical_type", sa.String(length=100), nullable=True),
        sa.Column("length", sa.Integer(), nullable=True),
        sa.Column("precision", sa.Integer(), nullable=True),
        sa.Column("scale", sa.Integer(), nullable=True),
        sa.Column("nullable", sa.Boolean(), nullable=True),
        sa.Column("is_primary_key", sa.Boolean(), nullable=True),
        sa.Column("is_foreign_key", sa.Boolean(), nullable=True),
        sa.Column("order_index", sa.Integer(), nullable=True),
        sa.Column("layer_specific_config", sa.JSON(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["data_models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["model_object_id"], ["data_model_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["attribute_id"], ["attributes.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("model_object_id", "attribute_id", name="uq_data_model_attribute"),
    )

    op.create_table(
        "data_object_relationships",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("relationship_key", sa.String(length=255), nullable=False, unique=True),
        sa.Column("source_object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target_object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("relationship_level", sa.String(length=20), nullable=False, server_default="object"),
        sa.Column("relationship_type", sa.String(length=10), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["source_object_id"], ["data_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_object_id"], ["data_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_attribute_id"], ["attributes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_attribute_id"], ["attributes.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "data_model_object_relationships",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_model_object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target_model_object_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_model_attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("target_model_attribute_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("relationship_level", sa.String(length=20), nullable=False, server_default="object"),
        sa.Column("relationship_type", sa.String(length=10), nullable=False),
        sa.Column("source_handle", sa.String(length=100), nullable=True),
        sa.Column("target_handle", sa.String(length=100), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("global_relationship_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("propagated_from_id", postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["data_models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_model_object_id"], ["data_model_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_model_object_id"], ["data_model_objects.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["source_model_attribute_id"], ["data_model_attributes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["target_model_attribute_id"], ["data_model_attributes.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["global_relationship_id"], ["data_object_relationships.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(
            ["propagated_from_id"], ["data_model_object_relationships.id"], ondelete="CASCADE"
        ),
    )
    op.create_index(
        "ix_data_model_object_relationships_model_id", "data_model_object_relationships", ["model_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_data_model_object_relationships_model_id", table_name="data_model_object_relationships")
    op.drop_table("data_model_object_relationships")
    op.drop_table("data_object_relationships")
    op.drop_table("data_model_attributes")
    op.drop_index("ix_attributes_object_id", table_name="attributes")
    op.drop_table("attributes")
    op.drop_table("data_model_objects")
    op.drop_index("ix_data_objects_origin_object_id", table_name="data_objects")
    op.drop_table("data_objects")
    op.drop_index("ix_data_models_parent_model_id", table_name="data_models")
    op.drop_table("data_models")
    op.drop_table("data_areas")
    op.drop_table("data_domains")
    op.drop_table("systems")
