from __future__ import annotations

from datetime import date

import pytest

from anchor.core.clock import fixed_clock
from anchor.services.expenses import RecurrenceBatchRunner, recurrence
from anchor.tests.utils.factories import fetch_children, fetch_expense, seed_expense


TODAY = date(2026, 2, 28)


def _runner(db, today: date = TODAY, **kwargs) -> RecurrenceBatchRunner:
    return RecurrenceBatchRunner(session_factory=db, clock=fixed_clock(today), **kwargs)


@pytest.mark.asyncio
async def test_due_template_creates_one_child_and_advances(db) -> None:
    template = await seed_expense(
        expense_date=date(2026, 1, 31),
        status="approved",
        recurrence="monthly",
        next_occurrence=date(2026, 2, 28),
    )

    summary = await _runner(db).run()

    assert summary.children_created == 1
    assert summary.tenants_processed == 1
    assert summary.failures == []
    children = await fetch_children(template.id)
    assert [child.date for child in children] == [date(2026, 2, 28)]
    assert children[0].status == "draft"
    assert (await fetch_expense(template.id)).next_occurrence == date(2026, 3, 28)


@pytest.mark.asyncio
async def test_rerun_on_same_day_creates_nothing(db) -> None:
    template = await seed_expense(
        expense_date=date(2026, 1, 31), recurrence="monthly", next_occurrence=date(2026, 2, 28)
    )

    await _runner(db).run()
    second = await _runner(db).run()

    assert second.children_created == 0
    assert second.tenants_processed == 0
    assert len(await fetch_children(template.id)) == 1


@pytest.mark.asyncio
async def test_overdue_template_catches_up_one_occurrence_per_run(db) -> None:
    template = await seed_expense(
        expense_date=date(2025, 12, 1), recurrence="weekly", next_occurrence=date(2026, 2, 1)
    )

    summary = await _runner(db).run()

    assert summary.children_created == 1
    assert (await fetch_expense(template.id)).next_occurrence == date(2026, 2, 8)


@pytest.mark.asyncio
async def test_templates_not_yet_due_are_ignored(db) -> None:
    future = await seed_expense(
        expense_date=date(2026, 2, 1), recurrence="monthly", next_occurrence=date(2026, 3, 1)
    )
    one_off = await seed_expense(expense_date=date(2026, 1, 1))

    summary = await _runner(db).run()

    assert summary.children_created == 0
    assert await fetch_children(future.id) == []
    assert await fetch_children(one_off.id) == []


@pytest.mark.asyncio
async def test_failing_tenant_is_isolated(db, monkeypatch) -> None:
    templates = {
        tenant_id: await seed_expense(
            tenant_id=tenant_id,
            expense_date=date(2026, 1, 28),
            recurrence="monthly",
            next_occurrence=date(2026, 2, 28),
        )
        for tenant_id in ("t-a", "t-b", "t-c")
    }
    original = recurrence.materialize_occurrence

    async def flaky_materialize(session, template):
        child = await original(session, template)
        if template.tenant_id == "t-b":
            raise RuntimeError("ledger unavailable")
        return child

    monkeypatch.setattr(recurrence, "materialize_occurrence", flaky_materialize)

    summary = await _runner(db).run()

    assert summary.tenants_processed == 2
    assert summary.children_created == 2
    assert [failure.tenant_id for failure in summary.failures] == ["t-b"]
    assert "ledger unavailable" in summary.failures[0].error
    # Tenant B rolled back both the child and the template advance.
    assert await fetch_children(templates["t-b"].id) == []
    assert (await fetch_expense(templates["t-b"].id)).next_occurrence == date(2026, 2, 28)
    for tenant_id in ("t-a", "t-c"):
        assert len(await fetch_children(templates[tenant_id].id)) == 1
        assert (await fetch_expense(templates[tenant_id].id)).next_occurrence == date(2026, 3, 28)


@pytest.mark.asyncio
async def test_summary_serializes_for_job_results(db) -> None:
    summary = await _runner(db).run()
    assert summary.as_dict() == {
        "tenants_processed": 0,
        "templates_processed": 0,
        "children_created": 0,
        "failures": [],
    }
