from __future__ import annotations


class TenantPredicateError(RuntimeError):
    # Raised when a tenant-scoped query is built without a tenant id.
    pass


def require_tenant_id(tenant_id: str | None) -> str:
    if not tenant_id:
        raise TenantPredicateError("Tenant predicate required but tenant_id is missing")
    return tenant_id


def tenant_predicate(model, tenant_id: str | None) -> object:
    # Every tenant-scoped repo query builds its tenant filter here.
    return model.tenant_id == require_tenant_id(tenant_id)
