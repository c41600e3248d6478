"""add business capabilities and lifecycle

Revision ID: 20250101_000002
Revises: 20250101_000001
Create Date: 2025-01-01 00:00:01.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "20250101_000002"
down_revision = "20250101_000001"
branch_labels = None
depends_on = None

MAPPING_TABLES = (
    ("capability_domain_mappings", "domain_id", "data_domains", "uq_capability_domain"),
    ("capability_data_area_mappings", "data_area_id", "data_areas", "uq_capability_data_area"),
    ("capability_system_mappings", "system_id", "systems", "uq_capability_system"),
    ("capability_model_mappings", "model_id", "data_models", "uq_capability_model"),
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    op.create_table(
        "business_capabilities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=50), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("color_code", sa.String(length=20), nullable=True),
        sa.Column("icon", sa.String(length=50), nullable=True),
        sa.Column("is_standard", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("maturity_level", sa.String(length=50), nullable=True),
        sa.Column("criticality", sa.String(length=50), nullable=True),
        sa.Column("owner", sa.String(length=200), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["parent_id"], ["business_capabilities.id"], ondelete="SET NULL"),
    )

    for table_name, target_column, target_table, constraint_name in MAPPING_TABLES:
        extra_columns = []
        if target_column == "system_id":
            extra_columns.append(sa.Column("system_role", sa.String(length=50), nullable=True))
        op.create_table(
            table_name,
            sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
            sa.Column("capability_id", postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column(target_column, postgresql.UUID(as_uuid=True), nullable=False),
            sa.Column("mapping_type", sa.String(length=50), nullable=False, server_default="supports"),
            sa.Column("importance", sa.String(length=50), nullable=True),
            sa.Column("owner", sa.String(length=200), nullable=True),
            sa.Column("risk_level", sa.String(length=50), nullable=True),
            sa.Column("lifecycle_phase", sa.String(length=50), nullable=True),
            sa.Column("description", sa.Text(), nullable=True),
            *extra_columns,
            *_timestamps(),
            sa.ForeignKeyConstraint(["capability_id"], ["business_capabilities.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint([target_column], [f"{target_table}.id"], ondelete="CASCADE"),
            sa.UniqueConstraint("capability_id", target_column, name=constraint_name),
        )

    op.create_table(
        "lifecycle_phases",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("sequence", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "model_lifecycle_assignments",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("model_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("phase_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="not_started"),
        sa.Column("owner", sa.String(length=200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("approved_by", sa.String(length=200), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["model_id"], ["data_models.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["phase_id"], ["lifecycle_phases.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("model_id", "phase_id", name="uq_model_lifecycle_phase"),
    )


def downgrade() -> None:
    op.drop_table("model_lifecycle_assignments")
    op.drop_table("lifecycle_phases")
    for table_name, *_ in reversed(MAPPING_TABLES):
        op.drop_table(table_name)
    op.drop_table("business_capabilities")
