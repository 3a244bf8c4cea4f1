from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from anchor.domain.constants import TASK_STATUS_DONE, TASK_TYPE_RENEWAL
from anchor.domain.models import Client, Policy, Task
from anchor.persistence.repos import policies as policies_repo
from anchor.persistence.repos import tasks as tasks_repo
from anchor.services.renewals.planner import PlannedTask, plan_renewal_tasks


logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def writes(self) -> int:
        return len(self.created) + len(self.updated) + len(self.deleted)


def _client_name(client: Client | None) -> str:
    if client is None:
        return "client"
    return f"{client.first_name} {client.last_name}".strip()


def renewal_task_title(policy: Policy, planned: PlannedTask) -> str:
    return f"Renewal: {planned.days_before}-day reminder for {policy.type} policy"


def renewal_task_description(policy: Policy, client: Client | None) -> str:
    end_date = policy.end_date.isoformat() if policy.end_date else "an unknown date"
    return (
        f"Policy for {_client_name(client)} expires on {end_date}. "
        "Review and process renewal."
    )


def _group_by_milestone(tasks: Iterable[Task]) -> dict[int, list[Task]]:
    grouped: dict[int, list[Task]] = defaultdict(list)
    for task in tasks:
        # Renewal tasks without a milestone were not produced here and are left alone.
        if task.renewal_days_before is None:
            continue
        grouped[task.renewal_days_before].append(task)
    return grouped


async def reconcile_renewal_tasks(
    session: AsyncSession,
    *,
    policy: Policy,
    planned: Iterable[PlannedTask],
    client: Client | None = None,
) -> ReconcileResult:
    """Converge a policy's persisted renewal tasks onto the planned set.

    Writes are staged on ``session``; the caller owns the transaction.
    Tasks in ``done`` status are never modified or deleted. Running this
    twice with the same plan performs no writes the second time.
    """
    planned_by_days = {item.days_before: item for item in planned if item.policy_id == policy.id}
    existing = _group_by_milestone(
        await tasks_repo.list_renewal_tasks(session, policy.tenant_id, policy.id)
    )
    if planned_by_days and client is None:
        client = await policies_repo.get_client(session, policy.tenant_id, policy.client_id)
    description = renewal_task_description(policy, client)
    result = ReconcileResult()

    for days, item in sorted(planned_by_days.items(), reverse=True):
        tasks = existing.get(days, [])
        live = [task for task in tasks if task.status != TASK_STATUS_DONE]
        if not tasks:
            task = Task(
                tenant_id=policy.tenant_id,
                title=renewal_task_title(policy, item),
                description=description,
                type=TASK_TYPE_RENEWAL,
                status="todo",
                priority=item.priority,
                due_date=item.due_date,
                policy_id=policy.id,
                client_id=policy.client_id,
                created_by_id=policy.created_by_id,
                renewal_days_before=days,
            )
            session.add(task)
            await session.flush()
            result.created.append(task.id)
            continue
        if not live:
            # A completed reminder occupies its milestone and is not resurrected.
            continue
        keeper, duplicates = live[0], live[1:]
        if keeper.due_date != item.due_date or keeper.priority != item.priority:
            keeper.due_date = item.due_date
            keeper.priority = item.priority
            keeper.description = description
            result.updated.append(keeper.id)
        for duplicate in duplicates:
            await session.delete(duplicate)
            result.deleted.append(duplicate.id)

    for days, tasks in existing.items():
        if days in planned_by_days:
            continue
        for task in tasks:
            if task.status == TASK_STATUS_DONE:
                continue
            await session.delete(task)
            result.deleted.append(task.id)

    await session.flush()
    if result.writes:
        logger.info(
            "renewal_tasks_reconciled policy_id=%s created=%d updated=%d deleted=%d",
            policy.id,
            len(result.created),
            len(result.updated),
            len(result.deleted),
        )
    return result


async def generate_tasks_for_policy(session: AsyncSession, policy: Policy) -> ReconcileResult:
    # First-time generation for a newly created policy.
    planned = plan_renewal_tasks(policy.end_date, policy.status, policy_id=policy.id)
    return await reconcile_renewal_tasks(session, policy=policy, planned=planned)


async def regenerate_renewal_tasks(session: AsyncSession, policy: Policy) -> ReconcileResult:
    # End date changed; existing tasks are moved in place rather than recreated.
    planned = plan_renewal_tasks(policy.end_date, policy.status, policy_id=policy.id)
    result = await reconcile_renewal_tasks(session, policy=policy, planned=planned)
    logger.info("renewal_tasks_regenerated policy_id=%s writes=%d", policy.id, result.writes)
    return result


async def delete_renewal_tasks_for_policy(
    session: AsyncSession,
    *,
    tenant_id: str,
    policy_id: str,
) -> ReconcileResult:
    # Equivalent to reconciling against an empty plan, without the date math.
    deleted = await tasks_repo.delete_pending_renewal_tasks(session, tenant_id, policy_id)
    if deleted:
        logger.info("renewal_tasks_deleted policy_id=%s count=%d", policy_id, len(deleted))
    return ReconcileResult(deleted=deleted)
