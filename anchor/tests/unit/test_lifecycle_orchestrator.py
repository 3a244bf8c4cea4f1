from __future__ import annotations

from datetime import date, timedelta

import pytest

from anchor.core.clock import fixed_clock
from anchor.core.errors import (
    ClientNotFoundError,
    InvalidTransitionError,
    LifecycleValidationError,
    PolicyNotFoundError,
)
from anchor.domain.context import RequestContext
from anchor.domain.schemas import PolicyCreate, PolicyUpdate
from anchor.services import lifecycle as lifecycle_module
from anchor.services.lifecycle import LifecycleOrchestrator
from anchor.tests.utils.factories import (
    TENANT_ID,
    USER_ID,
    fetch_activity,
    fetch_client,
    fetch_policy,
    fetch_renewal_tasks,
    fetch_task,
    seed_client,
    seed_policy,
    seed_renewal_task,
)


TODAY = date(2026, 1, 10)
CTX = RequestContext(tenant_id=TENANT_ID, user_id=USER_ID)


def _orchestrator(db) -> LifecycleOrchestrator:
    return LifecycleOrchestrator(session_factory=db, clock=fixed_clock(TODAY))


async def _create_active_policy(db, *, client_id: str, days_out: int = 65):
    payload = PolicyCreate(
        type="home",
        carrier="Intact",
        status="active",
        start_date=TODAY - timedelta(days=300),
        end_date=TODAY + timedelta(days=days_out),
    )
    return await _orchestrator(db).on_policy_create(CTX, client_id, payload)


@pytest.mark.asyncio
async def test_create_generates_milestone_tasks(db) -> None:
    client = await seed_client()

    result = await _create_active_policy(db, client_id=client.id)

    assert result.renewal_error is None
    assert len(result.renewal.created) == 3
    tasks = await fetch_renewal_tasks(TENANT_ID, result.policy.id)
    assert [(task.due_date, task.priority) for task in tasks] == [
        (TODAY + timedelta(days=5), "medium"),
        (TODAY + timedelta(days=35), "high"),
        (TODAY + timedelta(days=58), "urgent"),
    ]
    assert all(task.created_by_id == USER_ID for task in tasks)
    assert all(task.client_id == client.id for task in tasks)


@pytest.mark.asyncio
async def test_first_policy_converts_lead_and_records_activity(db) -> None:
    client = await seed_client(status="lead")

    result = await _create_active_policy(db, client_id=client.id)

    assert (await fetch_client(client.id)).status == "client"
    events = await fetch_activity(TENANT_ID, client.id)
    assert [event.type for event in events] == ["client_status_changed", "policy_created"]
    assert events[1].policy_id == result.policy.id
    assert events[1].metadata_json == {
        "policyId": result.policy.id,
        "type": "home",
        "carrier": "Intact",
        "status": "active",
    }


@pytest.mark.asyncio
async def test_existing_client_is_not_reconverted(db) -> None:
    client = await seed_client(status="client")
    await _create_active_policy(db, client_id=client.id)
    events = await fetch_activity(TENANT_ID, client.id)
    assert [event.type for event in events] == ["policy_created"]


@pytest.mark.asyncio
async def test_create_without_end_date_schedules_nothing(db) -> None:
    client = await seed_client()
    result = await _orchestrator(db).on_policy_create(CTX, client.id, PolicyCreate(type="auto"))
    assert result.policy.status == "draft"
    assert result.renewal is None
    assert await fetch_renewal_tasks(TENANT_ID, result.policy.id) == []


@pytest.mark.asyncio
async def test_create_for_unknown_client_fails(db) -> None:
    with pytest.raises(ClientNotFoundError):
        await _orchestrator(db).on_policy_create(CTX, "missing", PolicyCreate(type="auto"))


@pytest.mark.asyncio
async def test_end_date_push_updates_tasks_in_place(db) -> None:
    client = await seed_client()
    created = await _create_active_policy(db, client_id=client.id)
    original_ids = [task.id for task in await fetch_renewal_tasks(TENANT_ID, created.policy.id)]

    new_end = TODAY + timedelta(days=95)
    result = await _orchestrator(db).on_policy_update(
        CTX, client.id, created.policy.id, PolicyUpdate(end_date=new_end)
    )

    assert len(result.renewal.updated) == 3
    tasks = await fetch_renewal_tasks(TENANT_ID, created.policy.id)
    assert [task.id for task in tasks] == original_ids
    assert [task.due_date for task in tasks] == [
        TODAY + timedelta(days=35),
        TODAY + timedelta(days=65),
        TODAY + timedelta(days=88),
    ]


@pytest.mark.asyncio
async def test_update_without_date_change_leaves_tasks_alone(db) -> None:
    client = await seed_client()
    created = await _create_active_policy(db, client_id=client.id)

    result = await _orchestrator(db).on_policy_update(
        CTX, client.id, created.policy.id, PolicyUpdate(notes="called client")
    )

    assert result.renewal is None
    assert (await fetch_policy(created.policy.id)).notes == "called client"
    events = await fetch_activity(TENANT_ID, client.id)
    assert events[-1].type == "policy_updated"


@pytest.mark.asyncio
async def test_cancel_deletes_pending_tasks_but_keeps_done(db) -> None:
    client = await seed_client()
    created = await _create_active_policy(db, client_id=client.id)
    tasks = await fetch_renewal_tasks(TENANT_ID, created.policy.id)
    done = await seed_renewal_task(
        policy=created.policy, days_before=90, due_date=TODAY - timedelta(days=25), status="done"
    )

    result = await _orchestrator(db).on_policy_update(
        CTX, client.id, created.policy.id, PolicyUpdate(status="cancelled")
    )

    assert sorted(result.renewal.deleted) == sorted(task.id for task in tasks)
    remaining = await fetch_renewal_tasks(TENANT_ID, created.policy.id)
    assert [task.id for task in remaining] == [done.id]
    events = await fetch_activity(TENANT_ID, client.id)
    assert events[-1].type == "policy_status_changed"
    assert events[-1].metadata_json["from"] == "active"
    assert events[-1].metadata_json["to"] == "cancelled"


@pytest.mark.asyncio
async def test_clearing_end_date_deletes_pending_tasks(db) -> None:
    client = await seed_client()
    created = await _create_active_policy(db, client_id=client.id)

    result = await _orchestrator(db).on_policy_update(
        CTX, client.id, created.policy.id, PolicyUpdate(end_date=None)
    )

    assert len(result.renewal.deleted) == 3
    assert await fetch_renewal_tasks(TENANT_ID, created.policy.id) == []


@pytest.mark.asyncio
async def test_invalid_transition_rejects_whole_update(db) -> None:
    client = await seed_client()
    policy = await seed_policy(client_id=client.id, status="draft", end_date=TODAY + timedelta(days=65))

    with pytest.raises(InvalidTransitionError) as info:
        await _orchestrator(db).on_policy_update(
            CTX, client.id, policy.id, PolicyUpdate(status="renewed", notes="ignored")
        )

    assert info.value.allowed == ("active",)
    stored = await fetch_policy(policy.id)
    assert stored.status == "draft"
    assert stored.notes is None
    assert await fetch_activity(TENANT_ID, client.id) == []


@pytest.mark.asyncio
async def test_update_rejects_end_before_start(db) -> None:
    client = await seed_client()
    policy = await seed_policy(
        client_id=client.id, start_date=date(2026, 1, 1), end_date=date(2026, 12, 31)
    )
    with pytest.raises(LifecycleValidationError):
        await _orchestrator(db).on_policy_update(
            CTX, client.id, policy.id, PolicyUpdate(end_date=date(2025, 12, 1))
        )


@pytest.mark.asyncio
async def test_update_of_other_clients_policy_is_not_found(db) -> None:
    client = await seed_client()
    other = await seed_client(first_name="Sam")
    policy = await seed_policy(client_id=client.id)
    with pytest.raises(PolicyNotFoundError):
        await _orchestrator(db).on_policy_update(
            CTX, other.id, policy.id, PolicyUpdate(notes="x")
        )


@pytest.mark.asyncio
async def test_reconciliation_failure_does_not_roll_back_policy(db, monkeypatch) -> None:
    client = await seed_client()

    async def broken_generate(session, policy):
        raise RuntimeError("task store offline")

    monkeypatch.setattr(lifecycle_module, "generate_tasks_for_policy", broken_generate)

    result = await _create_active_policy(db, client_id=client.id)

    assert result.renewal is None
    assert "task store offline" in result.renewal_error
    assert (await fetch_policy(result.policy.id)) is not None
    assert await fetch_renewal_tasks(TENANT_ID, result.policy.id) == []


@pytest.mark.asyncio
async def test_activity_write_failure_keeps_policy_and_tasks(db, monkeypatch) -> None:
    client = await seed_client(status="lead")
    # A NULL description violates the activity table and fails the insert.
    monkeypatch.setattr(lifecycle_module, "_describe_created", lambda payload: None)

    result = await _create_active_policy(db, client_id=client.id)

    stored = await fetch_policy(result.policy.id)
    assert stored is not None
    assert stored.status == "active"
    assert (await fetch_client(client.id)).status == "client"
    assert len(await fetch_renewal_tasks(TENANT_ID, result.policy.id)) == 3
    events = await fetch_activity(TENANT_ID, client.id)
    assert [event.type for event in events] == ["client_status_changed"]


@pytest.mark.asyncio
async def test_delete_removes_pending_tasks_and_detaches_done(db) -> None:
    client = await seed_client()
    created = await _create_active_policy(db, client_id=client.id)
    done = await seed_renewal_task(
        policy=created.policy, days_before=90, due_date=TODAY - timedelta(days=25), status="done"
    )

    result = await _orchestrator(db).on_policy_delete(CTX, client.id, created.policy.id)

    assert len(result.renewal.deleted) == 3
    assert await fetch_policy(created.policy.id) is None
    survivor = await fetch_task(done.id)
    assert survivor.status == "done"
    assert survivor.policy_id is None
    events = await fetch_activity(TENANT_ID, client.id)
    assert events[-1].type == "policy_deleted"
    assert events[-1].metadata_json["policyId"] == created.policy.id


@pytest.mark.asyncio
async def test_delete_unknown_policy_fails(db) -> None:
    client = await seed_client()
    with pytest.raises(PolicyNotFoundError):
        await _orchestrator(db).on_policy_delete(CTX, client.id, "missing")
