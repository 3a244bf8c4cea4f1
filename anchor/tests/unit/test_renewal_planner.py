from __future__ import annotations

from datetime import date

from anchor.domain.constants import Milestone
from anchor.services.renewals import plan_renewal_tasks


def test_plans_three_milestones_before_expiry() -> None:
    planned = plan_renewal_tasks(date(2026, 3, 16), "active", policy_id="p-1")
    by_days = {item.days_before: item for item in planned}
    assert sorted(by_days) == [7, 30, 60]
    assert by_days[60].due_date == date(2026, 1, 15)
    assert by_days[30].due_date == date(2026, 2, 14)
    assert by_days[7].due_date == date(2026, 3, 9)
    assert (by_days[60].priority, by_days[30].priority, by_days[7].priority) == (
        "medium",
        "high",
        "urgent",
    )
    assert {item.key for item in planned} == {("p-1", 60), ("p-1", 30), ("p-1", 7)}


def test_no_end_date_plans_nothing() -> None:
    assert plan_renewal_tasks(None, "active", policy_id="p-1") == frozenset()


def test_non_renewing_statuses_plan_nothing() -> None:
    assert plan_renewal_tasks(date(2026, 3, 16), "cancelled", policy_id="p-1") == frozenset()
    assert plan_renewal_tasks(date(2026, 3, 16), "expired", policy_id="p-1") == frozenset()


def test_past_milestones_are_still_planned() -> None:
    # Expiry already behind us; overdue reminders are still expected to exist.
    planned = plan_renewal_tasks(date(2020, 1, 1), "pending_renewal", policy_id="p-1")
    assert len(planned) == 3


def test_plan_is_deterministic() -> None:
    first = plan_renewal_tasks(date(2026, 7, 1), "active", policy_id="p-9")
    second = plan_renewal_tasks(date(2026, 7, 1), "active", policy_id="p-9")
    assert first == second


def test_custom_milestones() -> None:
    planned = plan_renewal_tasks(
        date(2026, 7, 1),
        "active",
        policy_id="p-1",
        milestones=(Milestone(days_before=90, priority="low", label="90-day reminder"),),
    )
    (item,) = planned
    assert item.due_date == date(2026, 4, 2)
    assert item.label == "90-day reminder"
