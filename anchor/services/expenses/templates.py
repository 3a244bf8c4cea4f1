from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from anchor.core.errors import (
    ExpenseNotEditableError,
    ExpenseNotFoundError,
    LifecycleValidationError,
)
from anchor.domain.constants import EDITABLE_EXPENSE_STATUSES
from anchor.domain.context import RequestContext
from anchor.domain.models import Expense
from anchor.domain.schemas import ExpenseCreate, ExpenseUpdate
from anchor.persistence.repos import expenses as expenses_repo
from anchor.services.expenses.recurrence import advance_occurrence


logger = logging.getLogger(__name__)

_SCHEDULE_FIELDS = frozenset({"date", "recurrence", "is_recurring"})


def apply_recurrence_schedule(expense: Expense) -> None:
    """Recompute ``next_occurrence`` from the expense date and recurrence.

    Keeps the template invariant: recurrence and next occurrence are set
    exactly when the expense is recurring.
    """
    if not expense.is_recurring:
        expense.recurrence = None
        expense.next_occurrence = None
        return
    if expense.recurrence is None:
        raise LifecycleValidationError("recurrence is required when is_recurring is true")
    expense.next_occurrence = advance_occurrence(expense.date, expense.recurrence)


async def create_expense(session: AsyncSession, ctx: RequestContext, payload: ExpenseCreate) -> Expense:
    expense = Expense(
        tenant_id=ctx.tenant_id,
        amount=payload.amount,
        category=payload.category,
        description=payload.description,
        date=payload.date,
        status="draft",
        submitted_by_id=ctx.user_id,
        is_recurring=payload.is_recurring,
        recurrence=payload.recurrence,
    )
    apply_recurrence_schedule(expense)
    session.add(expense)
    await session.flush()
    logger.info(
        "expense_created expense_id=%s tenant_id=%s recurring=%s next_occurrence=%s",
        expense.id,
        ctx.tenant_id,
        expense.is_recurring,
        expense.next_occurrence.isoformat() if expense.next_occurrence else None,
    )
    return expense


async def update_expense(
    session: AsyncSession,
    ctx: RequestContext,
    expense_id: str,
    changes: ExpenseUpdate,
) -> Expense:
    expense = await expenses_repo.get_expense(session, ctx.tenant_id, expense_id)
    if expense is None:
        raise ExpenseNotFoundError(f"Expense {expense_id} not found")
    if expense.status not in EDITABLE_EXPENSE_STATUSES:
        raise ExpenseNotEditableError(
            "Cannot edit an expense that is pending approval or already approved"
        )

    provided = changes.provided()
    for field_name in ("amount", "category", "date"):
        if field_name in provided:
            if provided[field_name] is None:
                raise LifecycleValidationError(f"{field_name} cannot be cleared")
            setattr(expense, field_name, provided[field_name])
    if "description" in provided:
        expense.description = provided["description"] or None
    if "is_recurring" in provided and provided["is_recurring"] is not None:
        expense.is_recurring = provided["is_recurring"]
    if "recurrence" in provided:
        expense.recurrence = provided["recurrence"]

    if expense.status == "rejected":
        expense.status = "draft"
        expense.rejection_note = None

    # Materialized templates keep their cursor unless the schedule itself changed.
    if _SCHEDULE_FIELDS & provided.keys():
        apply_recurrence_schedule(expense)
    await session.flush()
    logger.info(
        "expense_updated expense_id=%s tenant_id=%s fields=%s",
        expense.id,
        ctx.tenant_id,
        ",".join(sorted(provided)),
    )
    return expense
