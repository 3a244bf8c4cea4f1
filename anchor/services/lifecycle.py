from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from anchor.core.clock import Clock
from anchor.core.errors import (
    ClientNotFoundError,
    LifecycleValidationError,
    PolicyNotFoundError,
    ReconciliationError,
)
from anchor.domain.constants import (
    ACTIVITY_CLIENT_STATUS_CHANGED,
    ACTIVITY_POLICY_CREATED,
    ACTIVITY_POLICY_DELETED,
    ACTIVITY_POLICY_STATUS_CHANGED,
    ACTIVITY_POLICY_UPDATED,
    NON_RENEWING_STATUSES,
)
from anchor.domain.context import RequestContext
from anchor.domain.models import Policy
from anchor.domain.schemas import PolicyCreate, PolicyUpdate
from anchor.persistence.db import SessionLocal
from anchor.persistence.repos import policies as policies_repo
from anchor.persistence.repos import tasks as tasks_repo
from anchor.services import policy_state
from anchor.services.activity import record_activity
from anchor.services.renewals.reconciler import (
    ReconcileResult,
    delete_renewal_tasks_for_policy,
    generate_tasks_for_policy,
    regenerate_renewal_tasks,
)


logger = logging.getLogger(__name__)

# Columns a policy update may touch; anything else in a payload is ignored.
_UPDATABLE_FIELDS = (
    "type",
    "custom_type",
    "carrier",
    "policy_number",
    "status",
    "start_date",
    "end_date",
    "premium",
    "coverage_amount",
    "deductible",
    "payment_frequency",
    "broker_commission",
    "notes",
)
# Fields that may not be set to null once a policy exists.
_REQUIRED_FIELDS = frozenset({"type", "status"})

RenewalEffect = Callable[[AsyncSession, Policy], Awaitable[ReconcileResult]]


@dataclass
class PolicyMutationResult:
    policy: Policy
    renewal: ReconcileResult | None = None
    # Set when the post-commit renewal side effect failed; the policy write still stands.
    renewal_error: str | None = None


def _describe_created(payload: PolicyCreate) -> str:
    carrier = f" with {payload.carrier}" if payload.carrier else ""
    return f"Created {payload.type} policy{carrier}"


def _describe_deleted(policy: Policy) -> str:
    carrier = f" with {policy.carrier}" if policy.carrier else ""
    return f"Deleted {policy.type} policy{carrier}"


def _check_date_order(start_date: date | None, end_date: date | None) -> None:
    if start_date and end_date and end_date < start_date:
        raise LifecycleValidationError("end_date must not be before start_date")


class LifecycleOrchestrator:
    """Entry point for policy create/update/delete flows.

    Each mutation runs in two phases. Phase one is a single transaction
    holding the policy write and its activity event. Phase two runs after
    that commit in a fresh session and applies renewal task side effects;
    its failures are logged and reported on the result but never undo the
    policy write.
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._session_factory = session_factory or SessionLocal
        self._clock = clock or Clock()

    async def on_policy_create(
        self,
        ctx: RequestContext,
        client_id: str,
        payload: PolicyCreate,
    ) -> PolicyMutationResult:
        policy_state.allowed_transitions(payload.status)
        _check_date_order(payload.start_date, payload.end_date)

        async with self._session_factory() as session:
            async with session.begin():
                client = await policies_repo.get_client(session, ctx.tenant_id, client_id)
                if client is None:
                    raise ClientNotFoundError(f"Client {client_id} not found")
                is_first_policy = (
                    await policies_repo.count_client_policies(session, ctx.tenant_id, client_id)
                ) == 0

                policy = Policy(
                    tenant_id=ctx.tenant_id,
                    client_id=client_id,
                    created_by_id=ctx.user_id,
                    **payload.model_dump(),
                )
                session.add(policy)
                await session.flush()

                if client.status == "lead" and is_first_policy:
                    client.status = "client"
                    await record_activity(
                        session=session,
                        tenant_id=ctx.tenant_id,
                        client_id=client_id,
                        user_id=ctx.user_id,
                        event_type=ACTIVITY_CLIENT_STATUS_CHANGED,
                        description="Automatically converted from lead to client on first policy",
                        metadata={"from": "lead", "to": "client", "trigger": "first_policy"},
                    )
                await record_activity(
                    session=session,
                    tenant_id=ctx.tenant_id,
                    client_id=client_id,
                    user_id=ctx.user_id,
                    event_type=ACTIVITY_POLICY_CREATED,
                    description=_describe_created(payload),
                    metadata={
                        "policyId": policy.id,
                        "type": payload.type,
                        "carrier": payload.carrier,
                        "status": payload.status,
                    },
                    policy_id=policy.id,
                )

        logger.info(
            "policy_created policy_id=%s tenant_id=%s client_id=%s user_id=%s",
            policy.id,
            ctx.tenant_id,
            client_id,
            ctx.user_id,
        )
        result = PolicyMutationResult(policy=policy)
        if policy.end_date is not None:
            await self._apply_renewal_effect(ctx, policy.id, result, generate_tasks_for_policy)
        return result

    async def on_policy_update(
        self,
        ctx: RequestContext,
        client_id: str,
        policy_id: str,
        changes: PolicyUpdate,
    ) -> PolicyMutationResult:
        provided = {name: value for name, value in changes.provided().items() if name in _UPDATABLE_FIELDS}
        for name in _REQUIRED_FIELDS:
            if name in provided and provided[name] is None:
                raise LifecycleValidationError(f"{name} cannot be cleared")

        async with self._session_factory() as session:
            async with session.begin():
                policy = await policies_repo.get_policy(
                    session, ctx.tenant_id, policy_id, client_id=client_id
                )
                if policy is None:
                    raise PolicyNotFoundError(f"Policy {policy_id} not found")

                previous_status = policy.status
                previous_end_date = policy.end_date
                requested_status = provided.get("status")
                status_changed = requested_status is not None and requested_status != previous_status
                if status_changed:
                    policy_state.transition(previous_status, requested_status)
                _check_date_order(
                    provided.get("start_date", policy.start_date),
                    provided.get("end_date", policy.end_date),
                )

                for name, value in provided.items():
                    setattr(policy, name, value)
                await session.flush()

                if status_changed:
                    await record_activity(
                        session=session,
                        tenant_id=ctx.tenant_id,
                        client_id=policy.client_id,
                        user_id=ctx.user_id,
                        event_type=ACTIVITY_POLICY_STATUS_CHANGED,
                        description=f"Policy status changed from {previous_status} to {requested_status}",
                        metadata={"policyId": policy.id, "from": previous_status, "to": requested_status},
                        policy_id=policy.id,
                    )
                else:
                    await record_activity(
                        session=session,
                        tenant_id=ctx.tenant_id,
                        client_id=policy.client_id,
                        user_id=ctx.user_id,
                        event_type=ACTIVITY_POLICY_UPDATED,
                        description=f"Updated {policy.type} policy",
                        metadata={"policyId": policy.id, "changedFields": sorted(provided)},
                        policy_id=policy.id,
                    )

        logger.info(
            "policy_updated policy_id=%s tenant_id=%s fields=%s",
            policy.id,
            ctx.tenant_id,
            ",".join(sorted(provided)),
        )
        result = PolicyMutationResult(policy=policy)
        end_date_changed = "end_date" in provided and provided["end_date"] != previous_end_date
        entered_terminal = status_changed and policy.status in NON_RENEWING_STATUSES

        if entered_terminal or (end_date_changed and policy.end_date is None):
            await self._apply_renewal_effect(ctx, policy.id, result, self._delete_effect)
        elif end_date_changed:
            await self._apply_renewal_effect(ctx, policy.id, result, regenerate_renewal_tasks)
        return result

    async def on_policy_delete(
        self,
        ctx: RequestContext,
        client_id: str,
        policy_id: str,
    ) -> PolicyMutationResult:
        async with self._session_factory() as session:
            async with session.begin():
                policy = await policies_repo.get_policy(
                    session, ctx.tenant_id, policy_id, client_id=client_id
                )
                if policy is None:
                    raise PolicyNotFoundError(f"Policy {policy_id} not found")
                # Task cleanup shares the delete transaction: the rows reference the policy.
                deleted = await tasks_repo.delete_pending_renewal_tasks(session, ctx.tenant_id, policy_id)
                await tasks_repo.detach_tasks_from_policy(session, ctx.tenant_id, policy_id)
                await session.delete(policy)
                await session.flush()
                await record_activity(
                    session=session,
                    tenant_id=ctx.tenant_id,
                    client_id=policy.client_id,
                    user_id=ctx.user_id,
                    event_type=ACTIVITY_POLICY_DELETED,
                    description=_describe_deleted(policy),
                    metadata={
                        "policyId": policy_id,
                        "type": policy.type,
                        "carrier": policy.carrier,
                        "status": policy.status,
                    },
                )

        logger.info(
            "policy_deleted policy_id=%s tenant_id=%s renewal_tasks_deleted=%d",
            policy_id,
            ctx.tenant_id,
            len(deleted),
        )
        return PolicyMutationResult(policy=policy, renewal=ReconcileResult(deleted=deleted))

    @staticmethod
    async def _delete_effect(session: AsyncSession, policy: Policy) -> ReconcileResult:
        return await delete_renewal_tasks_for_policy(
            session, tenant_id=policy.tenant_id, policy_id=policy.id
        )

    async def _apply_renewal_effect(
        self,
        ctx: RequestContext,
        policy_id: str,
        result: PolicyMutationResult,
        effect: RenewalEffect,
    ) -> None:
        # Runs after the policy transaction committed; failures stay here.
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    policy = await policies_repo.get_policy(session, ctx.tenant_id, policy_id)
                    if policy is None:
                        return
                    result.renewal = await effect(session, policy)
        except Exception as exc:  # noqa: BLE001 - renewal scheduling is best-effort.
            failure = ReconciliationError(policy_id, exc)
            logger.exception(
                "renewal_reconciliation_failed policy_id=%s tenant_id=%s today=%s",
                policy_id,
                ctx.tenant_id,
                self._clock.today().isoformat(),
            )
            result.renewal_error = str(failure)

