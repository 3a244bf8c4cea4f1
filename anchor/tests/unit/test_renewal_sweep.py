from __future__ import annotations

from datetime import date

import pytest

from anchor.core.clock import fixed_clock
from anchor.services.renewals import RenewalSweepRunner
from anchor.services.renewals import sweep as sweep_module
from anchor.tests.utils.factories import (
    TENANT_ID,
    fetch_renewal_tasks,
    seed_client,
    seed_policy,
)


def _runner(db) -> RenewalSweepRunner:
    return RenewalSweepRunner(session_factory=db, clock=fixed_clock(date(2026, 1, 10)))


@pytest.mark.asyncio
async def test_sweep_repairs_missing_tasks_for_renewable_policies(db) -> None:
    client = await seed_client(status="client")
    active = await seed_policy(client_id=client.id, status="active", end_date=date(2026, 3, 16))
    pending = await seed_policy(
        client_id=client.id, status="pending_renewal", end_date=date(2026, 2, 1)
    )
    cancelled = await seed_policy(client_id=client.id, status="cancelled", end_date=date(2026, 3, 1))
    undated = await seed_policy(client_id=client.id, status="active", end_date=None)

    summary = await _runner(db).run()

    assert summary.policies_scanned == 2
    assert summary.tasks_created == 6
    assert summary.failures == []
    assert len(await fetch_renewal_tasks(TENANT_ID, active.id)) == 3
    assert len(await fetch_renewal_tasks(TENANT_ID, pending.id)) == 3
    assert await fetch_renewal_tasks(TENANT_ID, cancelled.id) == []
    assert await fetch_renewal_tasks(TENANT_ID, undated.id) == []


@pytest.mark.asyncio
async def test_sweep_is_idempotent(db) -> None:
    client = await seed_client(status="client")
    await seed_policy(client_id=client.id, status="active", end_date=date(2026, 3, 16))

    await _runner(db).run()
    second = await _runner(db).run()

    assert second.policies_scanned == 1
    assert (second.tasks_created, second.tasks_updated, second.tasks_deleted) == (0, 0, 0)


@pytest.mark.asyncio
async def test_sweep_isolates_policy_failures(db, monkeypatch) -> None:
    client = await seed_client(status="client")
    broken = await seed_policy(client_id=client.id, status="active", end_date=date(2026, 3, 16))
    healthy = await seed_policy(client_id=client.id, status="active", end_date=date(2026, 4, 16))
    original = sweep_module.generate_tasks_for_policy

    async def flaky_generate(session, policy):
        if policy.id == broken.id:
            raise RuntimeError("boom")
        return await original(session, policy)

    monkeypatch.setattr(sweep_module, "generate_tasks_for_policy", flaky_generate)

    summary = await _runner(db).run()

    assert [failure.policy_id for failure in summary.failures] == [broken.id]
    assert summary.tasks_created == 3
    assert len(await fetch_renewal_tasks(TENANT_ID, healthy.id)) == 3
    assert summary.as_dict()["failures"][0]["error"] == "boom"
