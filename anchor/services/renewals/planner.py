from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from anchor.core.dates import days_before
from anchor.domain.constants import NON_RENEWING_STATUSES, RENEWAL_MILESTONES, Milestone


@dataclass(frozen=True)
class PlannedTask:
    policy_id: str
    days_before: int
    due_date: date
    priority: str
    label: str

    @property
    def key(self) -> tuple[str, int]:
        # Stable identity used to match persisted tasks regardless of creation order.
        return (self.policy_id, self.days_before)


def plan_renewal_tasks(
    end_date: date | None,
    policy_status: str,
    *,
    policy_id: str,
    milestones: Iterable[Milestone] = RENEWAL_MILESTONES,
) -> frozenset[PlannedTask]:
    """Return the renewal reminders that should exist for a policy.

    No expiry, or a cancelled/expired policy, plans nothing. Milestones whose
    due date has already passed are still planned; flagging overdue work is
    the task list's job.
    """
    if end_date is None or policy_status in NON_RENEWING_STATUSES:
        return frozenset()
    return frozenset(
        PlannedTask(
            policy_id=policy_id,
            days_before=milestone.days_before,
            due_date=days_before(end_date, milestone.days_before),
            priority=milestone.priority,
            label=milestone.label,
        )
        for milestone in milestones
    )
