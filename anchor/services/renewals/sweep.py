from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anchor.core.clock import Clock
from anchor.domain.constants import SWEEP_STATUSES
from anchor.persistence.db import SessionLocal
from anchor.persistence.repos import policies as policies_repo
from anchor.services.renewals.reconciler import generate_tasks_for_policy


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PolicyFailure:
    tenant_id: str
    policy_id: str
    error: str


@dataclass
class SweepSummary:
    policies_scanned: int = 0
    tasks_created: int = 0
    tasks_updated: int = 0
    tasks_deleted: int = 0
    failures: list[PolicyFailure] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "policies_scanned": self.policies_scanned,
            "tasks_created": self.tasks_created,
            "tasks_updated": self.tasks_updated,
            "tasks_deleted": self.tasks_deleted,
            "failures": [
                {"tenant_id": item.tenant_id, "policy_id": item.policy_id, "error": item.error}
                for item in self.failures
            ],
        }


class RenewalSweepRunner:
    """Daily safety net that reconciles renewal tasks for every renewable policy.

    Interactive edits already reconcile their own policy; the sweep repairs
    anything a failed best-effort reconciliation left behind. Each policy is
    reconciled in its own transaction.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._clock = clock or Clock()

    async def run(self) -> SweepSummary:
        summary = SweepSummary()
        async with self._session_factory() as session:
            targets = [
                (policy.tenant_id, policy.id)
                for policy in await policies_repo.list_policies_with_end_date(
                    session, statuses=SWEEP_STATUSES
                )
            ]
        logger.info(
            "renewal_sweep_started policies=%d today=%s",
            len(targets),
            self._clock.today().isoformat(),
        )

        for tenant_id, policy_id in targets:
            summary.policies_scanned += 1
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        policy = await policies_repo.get_policy(session, tenant_id, policy_id)
                        if policy is None:
                            continue
                        result = await generate_tasks_for_policy(session, policy)
            except Exception as exc:  # noqa: BLE001 - one policy must not stop the sweep.
                logger.exception(
                    "renewal_sweep_policy_failed tenant_id=%s policy_id=%s", tenant_id, policy_id
                )
                summary.failures.append(
                    PolicyFailure(tenant_id=tenant_id, policy_id=policy_id, error=str(exc))
                )
                continue
            summary.tasks_created += len(result.created)
            summary.tasks_updated += len(result.updated)
            summary.tasks_deleted += len(result.deleted)

        logger.info(
            "renewal_sweep_complete policies=%d created=%d updated=%d deleted=%d failures=%d",
            summary.policies_scanned,
            summary.tasks_created,
            summary.tasks_updated,
            summary.tasks_deleted,
            len(summary.failures),
        )
        return summary
