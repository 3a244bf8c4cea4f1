from __future__ import annotations

from anchor.core.errors import InvalidTransitionError, LifecycleValidationError
from anchor.domain.constants import POLICY_STATUSES


# Business rules: every legal status edge. Terminal states map to an empty tuple.
VALID_TRANSITIONS: dict[str, tuple[str, ...]] = {
    "draft": ("active",),
    "active": ("pending_renewal", "cancelled", "expired"),
    "pending_renewal": ("renewed", "expired", "cancelled"),
    "renewed": ("active",),
    "expired": (),
    "cancelled": (),
}


def _require_known(status: str) -> str:
    if status not in VALID_TRANSITIONS:
        raise LifecycleValidationError(
            f"Unknown policy status '{status}'. Expected one of: {', '.join(POLICY_STATUSES)}"
        )
    return status


def allowed_transitions(status: str) -> tuple[str, ...]:
    return VALID_TRANSITIONS[_require_known(status)]


def is_terminal(status: str) -> bool:
    return not allowed_transitions(status)


def can_transition(current: str, requested: str) -> bool:
    _require_known(requested)
    return requested == current or requested in allowed_transitions(current)


def transition(current: str, requested: str) -> str:
    """Validate a status change and return the resulting status.

    Requesting the current status is a no-op success. Any other pair that is
    not an edge of ``VALID_TRANSITIONS`` raises ``InvalidTransitionError``
    carrying the allowed targets.
    """
    allowed = allowed_transitions(current)
    _require_known(requested)
    if requested == current:
        return current
    if requested not in allowed:
        raise InvalidTransitionError(current, requested, allowed)
    return requested
