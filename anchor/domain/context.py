from __future__ import annotations

from dataclasses import dataclass

from anchor.domain.constants import UserRole


@dataclass(frozen=True)
class RequestContext:
    # Tenant and actor for one interactive mutation; passed explicitly to every call.
    tenant_id: str
    user_id: str
    request_id: str | None = None
    role: UserRole = "agent"
