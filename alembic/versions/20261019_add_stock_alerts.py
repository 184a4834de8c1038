"""add component, component_lot and stock_alert tables

Revision ID: 20261019_add_stock_alerts
Revises:
Create Date: 2026-10-19

stock_alert carries two partial unique indexes (one per subject column)
filtered to status = 'OPEN', so at most one open alert exists per
subject and alert type.
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261019_add_stock_alerts"
down_revision = None
branch_labels = None
depends_on = None

ALERT_TYPES = ("STOCK_MINIMUM", "STOCK_CRITICAL", "EXPIRATION_UPCOMING", "EXPIRATION_CRITICAL")
OPEN_ONLY = sa.text("status = 'OPEN'")


def upgrade() -> None:
    if not _table_exists("component"):
        op.create_table(
            "component",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("internal_code", sa.String(50), nullable=True, index=True),
            sa.Column("name", sa.String(200), nullable=False),
            sa.Column("quantity_on_hand", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("minimum_quantity", sa.Integer(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists("component_lot"):
        op.create_table(
            "component_lot",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("component_id", sa.Integer(), sa.ForeignKey("component.id"), nullable=False, index=True),
            sa.Column("lot_code", sa.String(50), nullable=False),
            sa.Column("quantity_remaining", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("expiration_date", sa.DateTime(timezone=True), nullable=True),
            sa.Column("state", sa.String(20), nullable=False, server_default="AVAILABLE"),
            sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.CheckConstraint("quantity_remaining >= 0", name="ck_component_lot_quantity_non_negative"),
        )
        op.create_index("ix_component_lot_expiration_scan", "component_lot", ["state", "expiration_date"])

    if not _table_exists("stock_alert"):
        op.create_table(
            "stock_alert",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("alert_type", sa.String(30), nullable=False, index=True),
            sa.Column("severity", sa.String(20), nullable=False),
            sa.Column("component_id", sa.Integer(), sa.ForeignKey("component.id"), nullable=True, index=True),
            sa.Column("lot_id", sa.Integer(), sa.ForeignKey("component_lot.id"), nullable=True, index=True),
            sa.Column("message", sa.String(500), nullable=False),
            sa.Column("trigger_value", sa.Integer(), nullable=True),
            sa.Column("threshold_value", sa.Integer(), nullable=True),
            sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
            sa.Column("generated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
            sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("resolved_by", sa.Integer(), nullable=True),
            sa.Column("resolution_notes", sa.Text(), nullable=True),
            sa.CheckConstraint(
                "alert_type IN (" + ", ".join(f"'{t}'" for t in ALERT_TYPES) + ")",
                name="stock_alert_type",
            ),
            sa.CheckConstraint("severity IN ('WARNING', 'CRITICAL')", name="stock_alert_severity"),
            sa.CheckConstraint("status IN ('OPEN', 'RESOLVED')", name="stock_alert_status"),
            sa.CheckConstraint(
                "(component_id IS NOT NULL AND lot_id IS NULL) OR (component_id IS NULL AND lot_id IS NOT NULL)",
                name="ck_stock_alert_single_subject",
            ),
        )
        op.create_index(
            "uq_stock_alert_open_component",
            "stock_alert",
            ["component_id", "alert_type"],
            unique=True,
            postgresql_where=OPEN_ONLY,
            sqlite_where=OPEN_ONLY,
        )
        op.create_index(
            "uq_stock_alert_open_lot",
            "stock_alert",
            ["lot_id", "alert_type"],
            unique=True,
            postgresql_where=OPEN_ONLY,
            sqlite_where=OPEN_ONLY,
        )
        op.create_index(
            "ix_stock_alert_status_severity_generated",
            "stock_alert",
            ["status", "severity", "generated_at"],
        )


def downgrade() -> None:
    if _table_exists("stock_alert"):
        op.drop_index("ix_stock_alert_status_severity_generated", table_name="stock_alert")
        op.drop_index("uq_stock_alert_open_lot", table_name="stock_alert")
        op.drop_index("uq_stock_alert_open_component", table_name="stock_alert")
        op.drop_table("stock_alert")
    if _table_exists("component_lot"):
        op.drop_index("ix_component_lot_expiration_scan", table_name="component_lot")
        op.drop_table("component_lot")
    if _table_exists("component"):
        op.drop_table("component")


def _table_exists(table_name: str) -> bool:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return table_name in inspector.get_table_names()
