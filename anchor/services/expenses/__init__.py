from anchor.services.expenses.batch import BatchRunSummary, RecurrenceBatchRunner, TenantFailure
from anchor.services.expenses.recurrence import (
    advance_occurrence,
    build_child_expense,
    is_due,
    materialize_occurrence,
)
from anchor.services.expenses.templates import (
    apply_recurrence_schedule,
    create_expense,
    update_expense,
)

__all__ = [
    "BatchRunSummary",
    "RecurrenceBatchRunner",
    "TenantFailure",
    "advance_occurrence",
    "apply_recurrence_schedule",
    "build_child_expense",
    "create_expense",
    "is_due",
    "materialize_occurrence",
    "update_expense",
]
