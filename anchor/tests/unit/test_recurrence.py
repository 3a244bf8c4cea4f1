from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from anchor.core.errors import LifecycleValidationError
from anchor.domain.models import Expense
from anchor.services.expenses import (
    advance_occurrence,
    build_child_expense,
    is_due,
    materialize_occurrence,
)
from anchor.persistence.repos import expenses as expenses_repo
from anchor.tests.utils.factories import TENANT_ID, fetch_children, seed_expense


def _template(**overrides) -> Expense:
    values = dict(
        id="exp-template",
        tenant_id=TENANT_ID,
        amount=Decimal("49.99"),
        category="software",
        description="CRM subscription",
        date=date(2026, 1, 31),
        status="approved",
        submitted_by_id="u-broker",
        is_recurring=True,
        recurrence="monthly",
        next_occurrence=date(2026, 2, 28),
    )
    values.update(overrides)
    return Expense(**values)


def test_advance_weekly_monthly_yearly() -> None:
    assert advance_occurrence(date(2026, 12, 28), "weekly") == date(2027, 1, 4)
    assert advance_occurrence(date(2024, 1, 31), "monthly") == date(2024, 2, 29)
    assert advance_occurrence(date(2026, 1, 31), "monthly") == date(2026, 2, 28)
    assert advance_occurrence(date(2024, 2, 29), "yearly") == date(2025, 2, 28)


def test_advance_rejects_unknown_recurrence() -> None:
    with pytest.raises(LifecycleValidationError):
        advance_occurrence(date(2026, 1, 1), "daily")


def test_is_due_compares_against_today() -> None:
    template = _template()
    assert is_due(template, date(2026, 2, 28))
    assert is_due(template, date(2026, 3, 5))
    assert not is_due(template, date(2026, 2, 27))
    assert not is_due(_template(is_recurring=False), date(2026, 3, 5))
    assert not is_due(_template(next_occurrence=None), date(2026, 3, 5))


def test_child_is_a_draft_copy_dated_at_the_occurrence() -> None:
    child = build_child_expense(_template())
    assert child.date == date(2026, 2, 28)
    assert child.status == "draft"
    assert child.is_recurring is False
    assert child.recurrence is None and child.next_occurrence is None
    assert child.parent_expense_id == "exp-template"
    assert child.amount == Decimal("49.99")
    assert child.submitted_by_id == "u-broker"


def test_child_requires_pending_occurrence() -> None:
    with pytest.raises(LifecycleValidationError):
        build_child_expense(_template(next_occurrence=None))


@pytest.mark.asyncio
async def test_materialize_writes_child_and_advances_template(db) -> None:
    seeded = await seed_expense(
        expense_date=date(2026, 1, 31),
        status="approved",
        recurrence="monthly",
        next_occurrence=date(2026, 2, 28),
    )

    async with db() as session:
        async with session.begin():
            template = await expenses_repo.get_expense(session, TENANT_ID, seeded.id)
            child = await materialize_occurrence(session, template)

    assert template.next_occurrence == date(2026, 3, 28)
    children = await fetch_children(seeded.id)
    assert [item.id for item in children] == [child.id]
    assert children[0].date == date(2026, 2, 28)
