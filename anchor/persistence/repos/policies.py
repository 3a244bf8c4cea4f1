from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.domain.models import Client, Policy
from anchor.persistence.guards import tenant_predicate


async def get_client(session: AsyncSession, tenant_id: str, client_id: str) -> Client | None:
    stmt = select(Client).where(tenant_predicate(Client, tenant_id), Client.id == client_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def count_client_policies(session: AsyncSession, tenant_id: str, client_id: str) -> int:
    stmt = (
        select(func.count())
        .select_from(Policy)
        .where(tenant_predicate(Policy, tenant_id), Policy.client_id == client_id)
    )
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def get_policy(
    session: AsyncSession,
    tenant_id: str,
    policy_id: str,
    *,
    client_id: str | None = None,
) -> Policy | None:
    # Return None for tenant or client mismatch to keep 404 semantics.
    stmt = select(Policy).where(tenant_predicate(Policy, tenant_id), Policy.id == policy_id)
    if client_id is not None:
        stmt = stmt.where(Policy.client_id == client_id)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_policies_with_end_date(
    session: AsyncSession,
    *,
    statuses: Sequence[str],
) -> list[Policy]:
    # Cross-tenant scan; only unattended jobs call this.
    result = await session.execute(
        select(Policy)
        .where(Policy.end_date.is_not(None), Policy.status.in_(tuple(statuses)))
        .order_by(Policy.tenant_id, Policy.id)
    )
    return list(result.scalars().all())
