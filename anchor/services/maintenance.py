from __future__ import annotations

import logging
from typing import Literal

from anchor.core.clock import Clock
from anchor.services.expenses.batch import BatchRunSummary, RecurrenceBatchRunner
from anchor.services.renewals.sweep import RenewalSweepRunner, SweepSummary


logger = logging.getLogger(__name__)

MaintenanceTask = Literal[
    "recurring_expenses",
    "renewal_sweep",
]


async def run_recurring_expenses(*, clock: Clock | None = None) -> BatchRunSummary:
    # Daily materialization of due recurring expense templates.
    return await RecurrenceBatchRunner(clock=clock).run()


async def run_renewal_sweep(*, clock: Clock | None = None) -> SweepSummary:
    # Daily reconciliation of renewal tasks for every renewable policy.
    return await RenewalSweepRunner(clock=clock).run()


async def run_maintenance_task(task: MaintenanceTask, *, clock: Clock | None = None) -> dict[str, object]:
    if task == "recurring_expenses":
        return (await run_recurring_expenses(clock=clock)).as_dict()
    if task == "renewal_sweep":
        return (await run_renewal_sweep(clock=clock)).as_dict()
    raise ValueError(f"Unknown maintenance task '{task}'")
