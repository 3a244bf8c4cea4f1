from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return uuid4().hex


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JsonType = JSON().with_variant(JSONB(), "postgresql")
# SQLite only autoincrements INTEGER primary keys.
EventIdType = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    pass


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    first_name: Mapped[str] = mapped_column(String)
    last_name: Mapped[str] = mapped_column(String)
    # "lead" until the first policy is written, then "client".
    status: Mapped[str] = mapped_column(String, default="lead", nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class Policy(Base):
    __tablename__ = "policies"
    __table_args__ = (
        Index("ix_policies_tenant_client", "tenant_id", "client_id"),
        Index("ix_policies_status_end_date", "status", "end_date"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    client_id: Mapped[str] = mapped_column(String, ForeignKey("clients.id"))
    created_by_id: Mapped[str] = mapped_column(String)
    type: Mapped[str] = mapped_column(String)
    custom_type: Mapped[str | None] = mapped_column(String, nullable=True)
    carrier: Mapped[str | None] = mapped_column(String, nullable=True)
    policy_number: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, default="draft", nullable=False)
    start_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    premium: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    coverage_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    deductible: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    payment_frequency: Mapped[str | None] = mapped_column(String, nullable=True)
    # Percentage, e.g. 15.00.
    broker_commission: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_policy_type", "policy_id", "type"),
        Index("ix_tasks_tenant_due_date", "tenant_id", "due_date"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String)
    status: Mapped[str] = mapped_column(String, default="todo", nullable=False)
    priority: Mapped[str] = mapped_column(String, default="medium", nullable=False)
    due_date: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    # Back-reference only; completed renewal tasks outlive their policy.
    policy_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("policies.id", ondelete="SET NULL"), nullable=True
    )
    client_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_by_id: Mapped[str] = mapped_column(String)
    # Milestone that produced a renewal task; the reconciler's match key.
    renewal_days_before: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class Expense(Base):
    __tablename__ = "expenses"
    __table_args__ = (
        Index("ix_expenses_recurring_due", "is_recurring", "next_occurrence"),
        Index("ix_expenses_tenant_date", "tenant_id", "date"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=new_id)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String, default="draft", nullable=False)
    submitted_by_id: Mapped[str] = mapped_column(String)
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    # recurrence and next_occurrence are set iff is_recurring.
    recurrence: Mapped[str | None] = mapped_column(String, nullable=True)
    next_occurrence: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    parent_expense_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("expenses.id", ondelete="SET NULL"), nullable=True, index=True
    )
    rejection_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now
    )


class ActivityEvent(Base):
    __tablename__ = "activity_events"
    __table_args__ = (
        Index("ix_activity_events_tenant_client_created", "tenant_id", "client_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(EventIdType, primary_key=True, autoincrement=True)
    tenant_id: Mapped[str] = mapped_column(String, index=True)
    client_id: Mapped[str] = mapped_column(String)
    user_id: Mapped[str] = mapped_column(String)
    policy_id: Mapped[str | None] = mapped_column(String, nullable=True)
    type: Mapped[str] = mapped_column(String)
    description: Mapped[str] = mapped_column(Text)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(JsonType, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=_utc_now)
