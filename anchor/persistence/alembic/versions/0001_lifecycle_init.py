"""create lifecycle tables

Revision ID: 0001_lifecycle_init
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_lifecycle_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            onupdate=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "clients",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("first_name", sa.String(), nullable=False),
        sa.Column("last_name", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="lead"),
        *_timestamps(),
    )
    op.create_index("ix_clients_tenant_id", "clients", ["tenant_id"], unique=False)

    op.create_table(
        "policies",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("client_id", sa.String(), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("created_by_id", sa.String(), nullable=False),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("custom_type", sa.String(), nullable=True),
        sa.Column("carrier", sa.String(), nullable=True),
        sa.Column("policy_number", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("premium", sa.Numeric(12, 2), nullable=True),
        sa.Column("coverage_amount", sa.Numeric(12, 2), nullable=True),
        sa.Column("deductible", sa.Numeric(12, 2), nullable=True),
        sa.Column("payment_frequency", sa.String(), nullable=True),
        sa.Column("broker_commission", sa.Numeric(5, 2), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_policies_tenant_id", "policies", ["tenant_id"], unique=False)
    op.create_index("ix_policies_tenant_client", "policies", ["tenant_id", "client_id"], unique=False)
    # Serves the daily renewal sweep scan.
    op.create_index("ix_policies_status_end_date", "policies", ["status", "end_date"], unique=False)

    op.create_table(
        "tasks",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="todo"),
        sa.Column("priority", sa.String(), nullable=False, server_default="medium"),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column(
            "policy_id",
            sa.String(),
            sa.ForeignKey("policies.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("client_id", sa.String(), nullable=True),
        sa.Column("created_by_id", sa.String(), nullable=False),
        sa.Column("renewal_days_before", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_tasks_tenant_id", "tasks", ["tenant_id"], unique=False)
    op.create_index("ix_tasks_policy_type", "tasks", ["policy_id", "type"], unique=False)
    op.create_index("ix_tasks_tenant_due_date", "tasks", ["tenant_id", "due_date"], unique=False)

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("category", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False, server_default="draft"),
        sa.Column("submitted_by_id", sa.String(), nullable=False),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("recurrence", sa.String(), nullable=True),
        sa.Column("next_occurrence", sa.Date(), nullable=True),
        sa.Column(
            "parent_expense_id",
            sa.String(),
            sa.ForeignKey("expenses.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("rejection_note", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_expenses_tenant_id", "expenses", ["tenant_id"], unique=False)
    op.create_index("ix_expenses_parent_expense_id", "expenses", ["parent_expense_id"], unique=False)
    # Serves the daily recurring expense scan.
    op.create_index(
        "ix_expenses_recurring_due",
        "expenses",
        ["is_recurring", "next_occurrence"],
        unique=False,
    )
    op.create_index("ix_expenses_tenant_date", "expenses", ["tenant_id", "date"], unique=False)

    op.create_table(
        "activity_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("tenant_id", sa.String(), nullable=False),
        sa.Column("client_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("policy_id", sa.String(), nullable=True),
        sa.Column("type", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_activity_events_tenant_id", "activity_events", ["tenant_id"], unique=False)
    op.create_index(
        "ix_activity_events_tenant_client_created",
        "activity_events",
        ["tenant_id", "client_id", "created_at"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_activity_events_tenant_client_created", table_name="activity_events")
    op.drop_index("ix_activity_events_tenant_id", table_name="activity_events")
    op.drop_table("activity_events")
    op.drop_index("ix_expenses_tenant_date", table_name="expenses")
    op.drop_index("ix_expenses_recurring_due", table_name="expenses")
    op.drop_index("ix_expenses_parent_expense_id", table_name="expenses")
    op.drop_index("ix_expenses_tenant_id", table_name="expenses")
    op.drop_table("expenses")
    op.drop_index("ix_tasks_tenant_due_date", table_name="tasks")
    op.drop_index("ix_tasks_policy_type", table_name="tasks")
    op.drop_index("ix_tasks_tenant_id", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_policies_status_end_date", table_name="policies")
    op.drop_index("ix_policies_tenant_client", table_name="policies")
    op.drop_index("ix_policies_tenant_id", table_name="policies")
    op.drop_table("policies")
    op.drop_index("ix_clients_tenant_id", table_name="clients")
    op.drop_table("clients")
