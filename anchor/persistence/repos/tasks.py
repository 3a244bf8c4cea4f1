from __future__ import annotations

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.domain.constants import TASK_STATUS_DONE, TASK_TYPE_RENEWAL
from anchor.domain.models import Task
from anchor.persistence.guards import tenant_predicate


async def list_renewal_tasks(session: AsyncSession, tenant_id: str, policy_id: str) -> list[Task]:
    # Oldest first so duplicate milestones collapse onto the original row.
    stmt = (
        select(Task)
        .where(
            tenant_predicate(Task, tenant_id),
            Task.policy_id == policy_id,
            Task.type == TASK_TYPE_RENEWAL,
        )
        .order_by(Task.created_at, Task.id)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def delete_pending_renewal_tasks(session: AsyncSession, tenant_id: str, policy_id: str) -> list[str]:
    # Completed reminders are history and are never removed here.
    stmt = select(Task.id).where(
        tenant_predicate(Task, tenant_id),
        Task.policy_id == policy_id,
        Task.type == TASK_TYPE_RENEWAL,
        Task.status != TASK_STATUS_DONE,
    )
    task_ids = (await session.execute(stmt)).scalars().all()
    if not task_ids:
        return []
    await session.execute(delete(Task).where(Task.id.in_(task_ids)))
    return list(task_ids)


async def detach_tasks_from_policy(session: AsyncSession, tenant_id: str, policy_id: str) -> int:
    # Keep surviving tasks when their policy row is removed.
    stmt = (
        update(Task)
        .where(tenant_predicate(Task, tenant_id), Task.policy_id == policy_id)
        .values(policy_id=None)
    )
    result = await session.execute(stmt)
    return int(result.rowcount or 0)
