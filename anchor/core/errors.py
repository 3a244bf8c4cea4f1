from __future__ import annotations

from collections.abc import Sequence


class AnchorError(Exception):
    """Base error for the Anchor lifecycle engine."""


class LifecycleValidationError(AnchorError):
    """Malformed input (dates, amounts, statuses) rejected before any write."""


class InvalidTransitionError(AnchorError):
    """Requested policy status change is not an edge of the transition table."""

    def __init__(self, from_status: str, to_status: str, allowed: Sequence[str]) -> None:
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = tuple(allowed)
        allowed_text = ", ".join(self.allowed) if self.allowed else "none (terminal state)"
        super().__init__(
            f"Invalid status transition from '{from_status}' to '{to_status}'. "
            f"Allowed transitions: {allowed_text}"
        )


class NotFoundError(AnchorError):
    """Tenant-scoped lookup found nothing."""


class PolicyNotFoundError(NotFoundError):
    """Policy missing for the tenant/client."""


class ClientNotFoundError(NotFoundError):
    """Client missing for the tenant."""


class ExpenseNotFoundError(NotFoundError):
    """Expense missing for the tenant."""


class ExpenseNotEditableError(AnchorError):
    """Expense is pending approval or already approved."""


class ReconciliationError(AnchorError):
    """Renewal task reconciliation failed; never aborts the triggering policy write."""

    def __init__(self, policy_id: str, cause: BaseException) -> None:
        self.policy_id = policy_id
        self.cause = cause
        super().__init__(f"Renewal reconciliation failed for policy {policy_id}: {cause}")


class TenantBatchError(AnchorError):
    """One tenant's recurring expense transaction failed during a batch run."""

    def __init__(self, tenant_id: str, cause: BaseException) -> None:
        self.tenant_id = tenant_id
        self.cause = cause
        super().__init__(f"Recurring expense batch failed for tenant {tenant_id}: {cause}")
