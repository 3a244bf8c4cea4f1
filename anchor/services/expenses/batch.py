from __future__ import annotations

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anchor.core.clock import Clock
from anchor.core.config import get_settings
from anchor.core.errors import TenantBatchError
from anchor.persistence.db import SessionLocal
from anchor.persistence.repos import expenses as expenses_repo
from anchor.services.expenses import recurrence


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TenantFailure:
    tenant_id: str
    error: str


@dataclass
class BatchRunSummary:
    tenants_processed: int = 0
    templates_processed: int = 0
    children_created: int = 0
    failures: list[TenantFailure] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "tenants_processed": self.tenants_processed,
            "templates_processed": self.templates_processed,
            "children_created": self.children_created,
            "failures": [{"tenant_id": item.tenant_id, "error": item.error} for item in self.failures],
        }


class RecurrenceBatchRunner:
    """Materialize due recurring expenses for every tenant.

    Due templates are scanned once across tenants, then each tenant's group
    runs in its own transaction that re-reads the templates and re-checks
    ``next_occurrence <= today`` before writing. A template advanced by an
    earlier run (or a concurrent edit) no longer matches, which is what makes
    re-running the job on the same day safe. A failing tenant is rolled back
    and reported without affecting the others.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._clock = clock or Clock()
        limit = max_concurrency if max_concurrency is not None else get_settings().recurring_batch_max_concurrency
        self._max_concurrency = max(1, int(limit))

    async def _scan_due(self, today: date) -> dict[str, list[str]]:
        async with self._session_factory() as session:
            templates = await expenses_repo.list_due_templates(session, today=today)
        grouped: dict[str, list[str]] = defaultdict(list)
        for template in templates:
            grouped[template.tenant_id].append(template.id)
        return dict(grouped)

    async def _process_tenant(self, tenant_id: str, template_ids: list[str], today: date) -> int:
        async with self._session_factory() as session:
            async with session.begin():
                templates = await expenses_repo.lock_due_templates(
                    session, tenant_id, template_ids, today=today
                )
                created = 0
                for template in templates:
                    if not recurrence.is_due(template, today):
                        continue
                    await recurrence.materialize_occurrence(session, template)
                    created += 1
        return created

    async def run(self) -> BatchRunSummary:
        today = self._clock.today()
        groups = await self._scan_due(today)
        summary = BatchRunSummary()
        logger.info(
            "recurring_expense_run_started today=%s tenants=%d templates=%d",
            today.isoformat(),
            len(groups),
            sum(len(ids) for ids in groups.values()),
        )
        if not groups:
            return summary

        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _guarded(tenant_id: str, template_ids: list[str]) -> None:
            async with semaphore:
                try:
                    created = await self._process_tenant(tenant_id, template_ids, today)
                except Exception as exc:  # noqa: BLE001 - tenant failures are isolated and reported.
                    failure = TenantBatchError(tenant_id, exc)
                    logger.exception("recurring_expense_tenant_failed tenant_id=%s", tenant_id)
                    summary.failures.append(TenantFailure(tenant_id=tenant_id, error=str(failure)))
                    return
                summary.tenants_processed += 1
                summary.templates_processed += created
                summary.children_created += created

        await asyncio.gather(
            *(_guarded(tenant_id, template_ids) for tenant_id, template_ids in sorted(groups.items()))
        )
        summary.failures.sort(key=lambda item: item.tenant_id)
        logger.info(
            "recurring_expense_run_complete tenants=%d templates=%d children=%d failures=%d",
            summary.tenants_processed,
            summary.templates_processed,
            summary.children_created,
            len(summary.failures),
        )
        return summary
