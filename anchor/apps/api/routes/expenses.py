from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.apps.api.deps import get_db, get_request_context
from anchor.apps.api.response import DEFAULT_ERROR_RESPONSES, SuccessEnvelope, success_response
from anchor.domain.context import RequestContext
from anchor.domain.schemas import ExpenseCreate, ExpenseOut, ExpenseUpdate
from anchor.services.expenses import create_expense, update_expense


router = APIRouter(prefix="/expenses", tags=["expenses"], responses=DEFAULT_ERROR_RESPONSES)


@router.post("", status_code=201, response_model=SuccessEnvelope[ExpenseOut])
async def post_expense(
    payload: ExpenseCreate,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    async with db.begin():
        expense = await create_expense(db, ctx, payload)
    return success_response(request=request, data=ExpenseOut.model_validate(expense))


@router.patch("/{expense_id}", response_model=SuccessEnvelope[ExpenseOut])
async def patch_expense(
    expense_id: str,
    payload: ExpenseUpdate,
    request: Request,
    ctx: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_db),
) -> dict:
    async with db.begin():
        expense = await update_expense(db, ctx, expense_id, payload)
    return success_response(request=request, data=ExpenseOut.model_validate(expense))
