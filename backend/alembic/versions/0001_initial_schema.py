"""initial_schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Creates all tables for the Engineering Change Manager:
organizations, ecrs, ecos, ecns, approvals, comments, notifications,
sequence_counters, activity_log.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- organizations ---
    op.create_table(
        "organizations",
        sa.Column("org_id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("subdomain", sa.String(100), nullable=False, unique=True),
        sa.Column("settings", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )

    # --- ecrs ---
    op.create_table(
        "ecrs",
        sa.Column("ecr_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("ecr_number", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("business_justification", sa.Text, nullable=True),
        sa.Column("category", sa.String(100), nullable=True),
        sa.Column("requestor_id", sa.String(36), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
        sa.Column("approval_type", sa.String(30), nullable=False, server_default="manager_only"),
        sa.Column("estimated_cost", sa.Integer, nullable=True),
        sa.Column("estimated_hours", sa.Integer, nullable=True),
        sa.Column("affected_products", sa.JSON, nullable=False),
        sa.Column("affected_departments", sa.JSON, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("org_id", "ecr_number", name="uq_ecrs_org_number"),
    )
    op.create_index("ix_ecrs_org_id", "ecrs", ["org_id"])

    # --- ecos ---
    op.create_table(
        "ecos",
        sa.Column("eco_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("eco_number", sa.String(20), nullable=False),
        sa.Column("parent_eco_id", sa.String(36), sa.ForeignKey("ecos.eco_id"), nullable=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("technical_details", sa.Text, nullable=True),
        sa.Column("lead_engineer_id", sa.String(36), nullable=False),
        sa.Column("assigned_engineers", sa.JSON, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="backlog"),
        sa.Column("linked_ecr_ids", sa.JSON, nullable=False),
        sa.Column("estimated_hours", sa.Integer, nullable=True),
        sa.Column("actual_hours", sa.Integer, nullable=True),
        sa.Column("implementation_notes", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("org_id", "eco_number", name="uq_ecos_org_number"),
    )
    op.create_index("ix_ecos_org_id", "ecos", ["org_id"])

    # --- ecns ---
    op.create_table(
        "ecns",
        sa.Column("ecn_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("ecn_number", sa.String(20), nullable=False),
        sa.Column("eco_id", sa.String(36), sa.ForeignKey("ecos.eco_id"), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("implementation_instructions", sa.Text, nullable=True),
        sa.Column("notification_type", sa.String(30), nullable=False, server_default="notification_only"),
        sa.Column("affected_departments", sa.JSON, nullable=False),
        sa.Column("approval_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("implementation_status", sa.String(20), nullable=False, server_default="waiting"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("approval_resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("implemented_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("org_id", "ecn_number", name="uq_ecns_org_number"),
    )
    op.create_index("ix_ecns_org_id", "ecns", ["org_id"])

    # --- approvals ---
    op.create_table(
        "approvals",
        sa.Column("approval_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("entity_type", sa.String(3), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("approver_id", sa.String(36), nullable=False),
        sa.Column("approval_level", sa.Integer, nullable=False, server_default="1"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("comments", sa.Text, nullable=True),
        sa.Column("conditions", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_approvals_org_id", "approvals", ["org_id"])
    op.create_index("ix_approvals_subject", "approvals", ["entity_type", "entity_id"])
    op.create_index("ix_approvals_approver_status", "approvals", ["approver_id", "status"])
    op.create_index(
        "uq_approvals_pending_per_level",
        "approvals",
        ["entity_type", "entity_id", "approver_id", "approval_level"],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )

    # --- comments ---
    op.create_table(
        "comments",
        sa.Column("comment_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("entity_type", sa.String(3), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("comment_text", sa.Text, nullable=False),
        sa.Column("is_internal", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_comments_subject", "comments", ["entity_type", "entity_id"])

    # --- notifications ---
    op.create_table(
        "notifications",
        sa.Column("notification_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("entity_type", sa.String(3), nullable=True),
        sa.Column("entity_id", sa.String(36), nullable=True),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_recipient", "notifications", ["user_id", "org_id"])

    # --- sequence_counters ---
    op.create_table(
        "sequence_counters",
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), primary_key=True),
        sa.Column("entity_type", sa.String(3), primary_key=True),
        sa.Column("year", sa.Integer, primary_key=True),
        sa.Column("last_value", sa.Integer, nullable=False, server_default="0"),
    )

    # --- activity_log ---
    op.create_table(
        "activity_log",
        sa.Column("activity_id", sa.String(36), primary_key=True),
        sa.Column("org_id", sa.String(36), sa.ForeignKey("organizations.org_id"), nullable=False),
        sa.Column("actor_id", sa.String(36), nullable=False),
        sa.Column("entity_type", sa.String(3), nullable=False),
        sa.Column("entity_id", sa.String(36), nullable=False),
        sa.Column("entity_number", sa.String(20), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("from_status", sa.String(30), nullable=True),
        sa.Column("to_status", sa.String(30), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_activity_log_org_created", "activity_log", ["org_id", "created_at"])


def downgrade() -> None:
    op.drop_table("activity_log")
    op.drop_table("sequence_counters")
    op.drop_table("notifications")
    op.drop_table("comments")
    op.drop_table("approvals")
    op.drop_table("ecns")
    op.drop_table("ecos")
    op.drop_table("ecrs")
    op.drop_table("organizations")
