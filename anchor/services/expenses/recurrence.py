from __future__ import annotations

from datetime import date
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from anchor.core.dates import add_months, add_weeks, add_years
from anchor.core.errors import LifecycleValidationError
from anchor.domain.models import Expense


logger = logging.getLogger(__name__)


def advance_occurrence(occurrence_date: date, recurrence: str) -> date:
    """Next occurrence after ``occurrence_date``.

    Monthly and yearly steps are calendar-aware and clamp to month end, so
    Jan 31 becomes Feb 28/29 and Feb 29 becomes Feb 28 in a common year.
    """
    if recurrence == "weekly":
        return add_weeks(occurrence_date, 1)
    if recurrence == "monthly":
        return add_months(occurrence_date, 1)
    if recurrence == "yearly":
        return add_years(occurrence_date, 1)
    raise LifecycleValidationError(f"Unsupported recurrence '{recurrence}'")


def is_due(template: Expense, today: date) -> bool:
    return bool(
        template.is_recurring
        and template.recurrence is not None
        and template.next_occurrence is not None
        and template.next_occurrence <= today
    )


def build_child_expense(template: Expense) -> Expense:
    # One draft, non-recurring copy dated at the template's pending occurrence.
    if template.next_occurrence is None:
        raise LifecycleValidationError(f"Expense {template.id} has no pending occurrence")
    return Expense(
        tenant_id=template.tenant_id,
        amount=template.amount,
        category=template.category,
        description=template.description,
        date=template.next_occurrence,
        status="draft",
        submitted_by_id=template.submitted_by_id,
        is_recurring=False,
        recurrence=None,
        next_occurrence=None,
        parent_expense_id=template.id,
    )


async def materialize_occurrence(session: AsyncSession, template: Expense) -> Expense:
    """Create the child for the pending occurrence and advance the template.

    Both writes are staged on ``session`` so they commit or roll back
    together in the caller's transaction.
    """
    if template.recurrence is None:
        raise LifecycleValidationError(f"Expense {template.id} has no recurrence")
    child = build_child_expense(template)
    session.add(child)
    template.next_occurrence = advance_occurrence(child.date, template.recurrence)
    await session.flush()
    logger.debug(
        "recurring_expense_materialized template_id=%s child_id=%s next_occurrence=%s",
        template.id,
        child.id,
        template.next_occurrence.isoformat(),
    )
    return child
