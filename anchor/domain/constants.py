from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


PolicyStatus = Literal["draft", "active", "pending_renewal", "renewed", "expired", "cancelled"]
Recurrence = Literal["weekly", "monthly", "yearly"]
ExpenseStatus = Literal["draft", "pending_approval", "approved", "rejected"]
UserRole = Literal["agent", "admin"]

# Higher rank includes every permission of the lower ones.
ROLE_ORDER: dict[str, int] = {"agent": 1, "admin": 2}

POLICY_STATUSES: tuple[str, ...] = (
    "draft",
    "active",
    "pending_renewal",
    "renewed",
    "expired",
    "cancelled",
)
# Statuses that stop renewal reminders entirely.
NON_RENEWING_STATUSES = frozenset({"cancelled", "expired"})
# Statuses the daily renewal sweep reconciles.
SWEEP_STATUSES: tuple[str, ...] = ("active", "pending_renewal")

TASK_TYPE_RENEWAL = "renewal"
TASK_STATUS_DONE = "done"

EDITABLE_EXPENSE_STATUSES: frozenset[ExpenseStatus] = frozenset({"draft", "rejected"})

ACTIVITY_POLICY_CREATED = "policy_created"
ACTIVITY_POLICY_UPDATED = "policy_updated"
ACTIVITY_POLICY_STATUS_CHANGED = "policy_status_changed"
ACTIVITY_POLICY_DELETED = "policy_deleted"
ACTIVITY_CLIENT_STATUS_CHANGED = "client_status_changed"


@dataclass(frozen=True)
class Milestone:
    days_before: int
    priority: str
    label: str


# TODO: move milestones to per-tenant settings once stakeholders confirm they should be configurable.
RENEWAL_MILESTONES: tuple[Milestone, ...] = (
    Milestone(days_before=60, priority="medium", label="60-day reminder"),
    Milestone(days_before=30, priority="high", label="30-day reminder"),
    Milestone(days_before=7, priority="urgent", label="7-day reminder"),
)
