"""create job costing tables

Revision ID: 0001
Revises: None
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "workers",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("effective_rate", sa.Float(), nullable=True),
        sa.Column("fully_burdened_rate", sa.Float(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_workers_company_id"), "workers", ["company_id"], unique=False)

    op.create_table(
        "equipment",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("hourly_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_equipment_company_id"), "equipment", ["company_id"], unique=False)

    op.create_table(
        "loadouts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_loadouts_company_id"), "loadouts", ["company_id"], unique=False)

    op.create_table(
        "loadout_equipment",
        sa.Column("loadout_id", sa.String(length=36), nullable=False),
        sa.Column("equipment_id", sa.String(length=36), nullable=False),
        sa.ForeignKeyConstraint(["loadout_id"], ["loadouts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("loadout_id", "equipment_id"),
    )

    op.create_table(
        "work_orders",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("number", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("loadout_id", sa.String(length=36), nullable=True),
        sa.Column("estimated_total_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_investment", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_productive_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_support_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_total_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["loadout_id"], ["loadouts.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_work_orders_company_id"), "work_orders", ["company_id"], unique=False)

    op.create_table(
        "line_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("work_order_id", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.String(length=200), nullable=False),
        sa.Column("service_type", sa.String(length=50), nullable=False),
        sa.Column("estimated_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("estimated_score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("line_item_total", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="not_started"),
        sa.Column("sort_order", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_productive_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("actual_production_rate", sa.Float(), nullable=True),
        sa.Column("variance", sa.Float(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["work_order_id"], ["work_orders.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_line_items_company_id"), "line_items", ["company_id"], unique=False)
    op.create_index(op.f("ix_line_items_work_order_id"), "line_items", ["work_order_id"], unique=False)

    op.create_table(
        "time_entries",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("worker_id", sa.String(length=36), nullable=False),
        sa.Column("work_order_id", sa.String(length=36), nullable=False),
        sa.Column("line_item_id", sa.String(length=36), nullable=True),
        sa.Column("task_type", sa.String(length=20), nullable=False),
        sa.Column("task_label", sa.String(length=200), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("labor_rate", sa.Float(), nullable=False),
        sa.Column("equipment_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("duration_hours", sa.Float(), nullable=True),
        sa.Column("total_cost", sa.Float(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["worker_id"], ["workers.id"]),
        sa.ForeignKeyConstraint(["work_order_id"], ["work_orders.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_time_entries_company_id"), "time_entries", ["company_id"], unique=False)
    op.create_index(op.f("ix_time_entries_worker_id"), "time_entries", ["worker_id"], unique=False)
    op.create_index(op.f("ix_time_entries_work_order_id"), "time_entries", ["work_order_id"], unique=False)
    op.create_index(op.f("ix_time_entries_line_item_id"), "time_entries", ["line_item_id"], unique=False)
    op.create_index(
        "uq_time_entries_open_worker",
        "time_entries",
        ["worker_id"],
        unique=True,
        sqlite_where=sa.text("ended_at IS NULL"),
        postgresql_where=sa.text("ended_at IS NULL"),
    )


def downgrade() -> None:
    op.drop_index("uq_time_entries_open_worker", table_name="time_entries")
    op.drop_table("time_entries")
    op.drop_table("line_items")
    op.drop_table("work_orders")
    op.drop_table("loadout_equipment")
    op.drop_table("loadouts")
    op.drop_table("equipment")
    op.drop_table("workers")
