from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from anchor.apps.api.deps import get_orchestrator, get_request_context
from anchor.apps.api.response import DEFAULT_ERROR_RESPONSES, SuccessEnvelope, success_response
from anchor.domain.context import RequestContext
from anchor.domain.schemas import (
    PolicyCreate,
    PolicyMutationOut,
    PolicyOut,
    PolicyUpdate,
    RenewalChanges,
)
from anchor.services.lifecycle import LifecycleOrchestrator, PolicyMutationResult


router = APIRouter(
    prefix="/clients/{client_id}/policies",
    tags=["policies"],
    responses=DEFAULT_ERROR_RESPONSES,
)


def _to_response(result: PolicyMutationResult) -> PolicyMutationOut:
    renewal = None
    if result.renewal is not None:
        renewal = RenewalChanges(
            created=len(result.renewal.created),
            updated=len(result.renewal.updated),
            deleted=len(result.renewal.deleted),
        )
    return PolicyMutationOut(
        policy=PolicyOut.model_validate(result.policy),
        renewal=renewal,
        renewal_error=result.renewal_error,
    )


@router.post("", status_code=201, response_model=SuccessEnvelope[PolicyMutationOut])
async def create_policy(
    client_id: str,
    payload: PolicyCreate,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> dict:
    result = await orchestrator.on_policy_create(ctx, client_id, payload)
    return success_response(request=request, data=_to_response(result))


@router.patch("/{policy_id}", response_model=SuccessEnvelope[PolicyMutationOut])
async def update_policy(
    client_id: str,
    policy_id: str,
    payload: PolicyUpdate,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> dict:
    # Renewal failures surface as renewal_error; the policy change is already committed.
    result = await orchestrator.on_policy_update(ctx, client_id, policy_id, payload)
    return success_response(request=request, data=_to_response(result))


@router.delete("/{policy_id}", response_model=SuccessEnvelope[PolicyMutationOut])
async def delete_policy(
    client_id: str,
    policy_id: str,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    orchestrator: LifecycleOrchestrator = Depends(get_orchestrator),
) -> dict:
    result = await orchestrator.on_policy_delete(ctx, client_id, policy_id)
    return success_response(request=request, data=_to_response(result))
