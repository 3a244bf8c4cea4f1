from __future__ import annotations

import logging
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from anchor.apps.api.response import get_request_id
from anchor.domain.constants import ROLE_ORDER
from anchor.domain.context import RequestContext
from anchor.persistence.db import get_session
from anchor.services.lifecycle import LifecycleOrchestrator


logger = logging.getLogger(__name__)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


def _auth_error(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
    )


async def get_request_context(
    request: Request,
    x_tenant_id: str | None = Header(default=None, alias="X-Tenant-Id"),
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
    x_user_role: str | None = Header(default=None, alias="X-User-Role"),
) -> RequestContext:
    # Tenant and actor are resolved upstream by the gateway and forwarded as headers.
    tenant_id = (x_tenant_id or "").strip()
    user_id = (x_user_id or "").strip()
    role = (x_user_role or "agent").strip().lower()
    if not tenant_id:
        raise _auth_error("Missing X-Tenant-Id header")
    if not user_id:
        raise _auth_error("Missing X-User-Id header")
    if role not in ROLE_ORDER:
        raise _auth_error("Unknown X-User-Role header")
    return RequestContext(
        tenant_id=tenant_id,
        user_id=user_id,
        request_id=get_request_id(request),
        role=role,
    )


def role_allows(*, role: str, minimum_role: str) -> bool:
    return ROLE_ORDER.get(role, 0) >= ROLE_ORDER.get(minimum_role, 0)


def require_role(minimum_role: str):
    # Dependency factory to enforce role checks at the route level.
    async def _dependency(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
        if not role_allows(role=ctx.role, minimum_role=minimum_role):
            logger.warning(
                "role_forbidden tenant_id=%s user_id=%s role=%s required_role=%s",
                ctx.tenant_id,
                ctx.user_id,
                ctx.role,
                minimum_role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={"code": "AUTH_FORBIDDEN", "message": "Insufficient role"},
            )
        return ctx

    return _dependency


def get_orchestrator() -> LifecycleOrchestrator:
    return LifecycleOrchestrator()
