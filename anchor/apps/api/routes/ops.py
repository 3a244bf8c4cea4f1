from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request

from anchor.apps.api.deps import require_role
from anchor.apps.api.response import DEFAULT_ERROR_RESPONSES, success_response
from anchor.domain.context import RequestContext
from anchor.services.maintenance import run_maintenance_task


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ops", tags=["ops"], responses=DEFAULT_ERROR_RESPONSES)


@router.post("/recurring-expenses/run")
async def run_recurring_expenses(
    request: Request,
    ctx: RequestContext = Depends(require_role("admin")),
) -> dict:
    # Manual trigger for the daily job; the batch spans every tenant and is safe to repeat.
    logger.info("ops_trigger task=recurring_expenses user_id=%s", ctx.user_id)
    summary = await run_maintenance_task("recurring_expenses")
    return success_response(request=request, data=summary)


@router.post("/renewals/sweep")
async def run_renewal_sweep(
    request: Request,
    ctx: RequestContext = Depends(require_role("admin")),
) -> dict:
    logger.info("ops_trigger task=renewal_sweep user_id=%s", ctx.user_id)
    summary = await run_maintenance_task("renewal_sweep")
    return success_response(request=request, data=summary)
