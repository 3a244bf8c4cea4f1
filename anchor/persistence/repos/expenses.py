from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.domain.models import Expense
from anchor.persistence.guards import tenant_predicate


def _due_predicate(today: date) -> tuple[object, ...]:
    return (
        Expense.is_recurring.is_(True),
        Expense.next_occurrence.is_not(None),
        Expense.next_occurrence <= today,
        Expense.recurrence.is_not(None),
    )


async def list_due_templates(session: AsyncSession, *, today: date) -> list[Expense]:
    # Cross-tenant due scan for the recurring expense batch.
    result = await session.execute(
        select(Expense).where(*_due_predicate(today)).order_by(Expense.tenant_id, Expense.id)
    )
    return list(result.scalars().all())


async def lock_due_templates(
    session: AsyncSession,
    tenant_id: str,
    template_ids: Sequence[str],
    *,
    today: date,
) -> list[Expense]:
    # Re-read inside the tenant transaction; rows advanced since the scan drop out here.
    if not template_ids:
        return []
    stmt = (
        select(Expense)
        .where(
            tenant_predicate(Expense, tenant_id),
            Expense.id.in_(tuple(template_ids)),
            *_due_predicate(today),
        )
        .order_by(Expense.id)
        .with_for_update()
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_expense(session: AsyncSession, tenant_id: str, expense_id: str) -> Expense | None:
    stmt = select(Expense).where(tenant_predicate(Expense, tenant_id), Expense.id == expense_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()

