from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

from arq import cron
from arq.connections import RedisSettings

from anchor.core.config import get_settings
from anchor.core.logging import configure_logging
from anchor.services.maintenance import run_maintenance_task


logger = logging.getLogger(__name__)


async def run_recurring_expenses(ctx) -> dict[str, object]:
    # Scheduled at recurring_expense_hour; also enqueueable on demand.
    summary = await run_maintenance_task("recurring_expenses")
    logger.info("worker_recurring_expenses job_id=%s summary=%s", ctx.get("job_id"), summary)
    return summary


async def run_renewal_sweep(ctx) -> dict[str, object]:
    # Scheduled at renewal_sweep_hour; also enqueueable on demand.
    summary = await run_maintenance_task("renewal_sweep")
    logger.info("worker_renewal_sweep job_id=%s summary=%s", ctx.get("job_id"), summary)
    return summary


async def _startup(ctx) -> None:
    configure_logging()


class WorkerSettings:
    # Keep worker configuration as class attributes for arq CLI compatibility.
    settings = get_settings()
    redis_settings = RedisSettings.from_dsn(settings.redis_url)
    queue_name = settings.lifecycle_queue_name
    max_tries = max(1, int(settings.worker_max_tries))
    timezone = ZoneInfo(settings.timezone)
    functions = [run_recurring_expenses, run_renewal_sweep]
    cron_jobs = [
        cron(run_renewal_sweep, hour={settings.renewal_sweep_hour}, minute={0}, unique=True),
        cron(run_recurring_expenses, hour={settings.recurring_expense_hour}, minute={0}, unique=True),
    ]
    on_startup = _startup
