from anchor.services.renewals.planner import PlannedTask, plan_renewal_tasks
from anchor.services.renewals.reconciler import (
    ReconcileResult,
    delete_renewal_tasks_for_policy,
    generate_tasks_for_policy,
    reconcile_renewal_tasks,
    regenerate_renewal_tasks,
)
from anchor.services.renewals.sweep import RenewalSweepRunner, SweepSummary

__all__ = [
    "PlannedTask",
    "ReconcileResult",
    "RenewalSweepRunner",
    "SweepSummary",
    "delete_renewal_tasks_for_policy",
    "generate_tasks_for_policy",
    "plan_renewal_tasks",
    "reconcile_renewal_tasks",
    "regenerate_renewal_tasks",
]
