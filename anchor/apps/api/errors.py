from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from anchor.apps.api.response import error_response
from anchor.core.errors import (
    AnchorError,
    ExpenseNotEditableError,
    InvalidTransitionError,
    LifecycleValidationError,
    NotFoundError,
)
from anchor.persistence.guards import TenantPredicateError


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
}


def _default_code(status_code: int) -> str:
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # HTTPException detail may be a plain message or a {code, message, ...} dict.
    if isinstance(detail, dict):
        code = str(detail.get("code") or _default_code(status_code))
        message = str(detail.get("message") or "Request failed")
        details = {k: v for k, v in detail.items() if k not in {"code", "message"}}
        return code, message, details or None
    if isinstance(detail, str):
        return _default_code(status_code), detail, None
    return _default_code(status_code), "Request failed", None


def map_anchor_error(exc: AnchorError) -> tuple[int, str, dict[str, Any] | None]:
    """Status code, error code and details for a domain error."""
    if isinstance(exc, InvalidTransitionError):
        return 400, "INVALID_TRANSITION", {
            "from": exc.from_status,
            "to": exc.to_status,
            "allowed": list(exc.allowed),
        }
    if isinstance(exc, LifecycleValidationError):
        return 422, "VALIDATION_ERROR", None
    if isinstance(exc, NotFoundError):
        return 404, "NOT_FOUND", None
    if isinstance(exc, ExpenseNotEditableError):
        return 409, "EXPENSE_NOT_EDITABLE", None
    return 500, "INTERNAL_ERROR", None


async def anchor_exception_handler(request: Request, exc: AnchorError) -> JSONResponse:
    status_code, code, details = map_anchor_error(exc)
    message = str(exc) if status_code < 500 else "Internal server error"
    if status_code >= 500:
        logger.error("unmapped_domain_error path=%s", request.url.path, exc_info=exc)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(content=payload, status_code=422)


async def tenant_predicate_exception_handler(request: Request, exc: TenantPredicateError) -> JSONResponse:
    payload = error_response(request=request, code="TENANT_SCOPE_REQUIRED", message=str(exc))
    return JSONResponse(content=payload, status_code=400)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Stack traces stay in the logs, never in the response.
    logger.error("unhandled_exception path=%s", request.url.path, exc_info=exc)
    payload = error_response(request=request, code="INTERNAL_ERROR", message="Internal server error")
    return JSONResponse(content=payload, status_code=500)


__all__ = [
    "anchor_exception_handler",
    "http_exception_handler",
    "map_anchor_error",
    "tenant_predicate_exception_handler",
    "unhandled_exception_handler",
    "validation_exception_handler",
]
