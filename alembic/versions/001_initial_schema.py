"""Initial schema — reference data, configuration, requests, ledger and status log.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""

from typing import Sequence, Union

import sqlalchemy as sa

from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    # Reference data
    op.create_table(
        "partners",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("locale", sa.String(5), nullable=False, server_default="en"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )
    op.create_table(
        "branches",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("address", sa.Text, nullable=True),
    )
    op.create_index("idx_branches_partner", "branches", ["partner_id"])

    op.create_table(
        "customers",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("locale", sa.String(5), nullable=False, server_default="en"),
        sa.Column("is_placeholder", sa.Boolean, nullable=False, server_default=sa.false()),
    )
    op.create_table(
        "categories",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(200), unique=True, nullable=False),
    )
    op.create_table(
        "services",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("category_id", sa.Integer, sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
    )
    op.create_index("idx_services_category", "services", ["category_id"])

    # Configuration
    op.create_table(
        "configurations",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("scope", sa.String(20), nullable=False, server_default="global"),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=True),
        sa.Column("key", sa.String(100), nullable=False),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("updated_at", TS, nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("scope", "partner_id", "key", name="uq_configurations_scope_key"),
    )
    op.create_index("idx_configurations_key", "configurations", ["key"])

    # Requests
    op.create_table(
        "requests",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("request_number", sa.String(30), unique=True, nullable=False),
        sa.Column("customer_id", sa.Integer, sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("category_id", sa.Integer, sa.ForeignKey("categories.id"), nullable=False),
        sa.Column("service_id", sa.Integer, sa.ForeignKey("services.id"), nullable=True),
        sa.Column("pickup_option_id", sa.Integer, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=True),
        sa.Column("branch_id", sa.Integer, sa.ForeignKey("branches.id"), nullable=True),
        sa.Column("assigned_by_user_id", sa.Integer, nullable=True),
        sa.Column("assigned_at", TS, nullable=True),
        sa.Column("sla_deadline", TS, nullable=True),
        sa.Column("submitted_at", TS, nullable=True),
        sa.Column("confirmed_at", TS, nullable=True),
        sa.Column("rejected_at", TS, nullable=True),
        sa.Column("in_progress_at", TS, nullable=True),
        sa.Column("completed_at", TS, nullable=True),
        sa.Column("closed_at", TS, nullable=True),
        sa.Column("closed_by_user_id", sa.Integer, nullable=True),
        sa.Column("rating", sa.Integer, nullable=True),
        sa.Column("feedback", sa.Text, nullable=True),
        sa.Column("rated_at", TS, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("is_deleted", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True),
        sa.Column("updated_by_id", sa.Integer, nullable=True),
        sa.CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 5", name="ck_requests_rating"),
        sa.CheckConstraint(
            "(status = 'assigned') = (sla_deadline IS NOT NULL)",
            name="ck_requests_sla_deadline_iff_assigned",
        ),
    )
    op.create_index("idx_requests_status", "requests", ["status"])
    op.create_index("idx_requests_partner", "requests", ["partner_id"])
    op.create_index(
        "idx_requests_sla_deadline_assigned",
        "requests",
        ["sla_deadline"],
        postgresql_where=sa.text("status = 'assigned'"),
    )

    # Assignment ledger
    op.create_table(
        "request_assignments",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id", sa.Integer,
            sa.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("partner_id", sa.Integer, sa.ForeignKey("partners.id"), nullable=False),
        sa.Column("branch_id", sa.Integer, sa.ForeignKey("branches.id"), nullable=False),
        sa.Column("assigned_by_user_id", sa.Integer, nullable=False),
        sa.Column("assigned_at", TS, nullable=False),
        sa.Column("responded_at", TS, nullable=True),
        sa.Column("response", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("rejection_reason", sa.Text, nullable=True),
    )
    op.create_index("idx_request_assignments_request", "request_assignments", ["request_id"])
    op.create_index(
        "uq_request_assignments_one_pending",
        "request_assignments",
        ["request_id"],
        unique=True,
        postgresql_where=sa.text("response = 'pending'"),
    )

    # Status log
    op.create_table(
        "request_status_log",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "request_id", sa.Integer,
            sa.ForeignKey("requests.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("changed_by_id", sa.Integer, nullable=False),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("timestamp", TS, nullable=False),
    )
    op.create_index("idx_request_status_log_request", "request_status_log", ["request_id"])


def downgrade() -> None:
    op.drop_table("request_status_log")
    op.drop_table("request_assignments")
    op.drop_table("requests")
    op.drop_table("configurations")
    op.drop_table("services")
    op.drop_table("categories")
    op.drop_table("customers")
    op.drop_table("branches")
    op.drop_table("partners")
