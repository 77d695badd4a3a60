import json
from typing import Any, Optional
from fastapi import Request
from sqlalchemy.orm import Session
from app.crud.tenant import tenant as tenant_crud
from app.core.exceptions import MissingTenantError, TenantNotFoundError
from app.models.tenant import Tenant

TENANT_FIELD = "tenant_id"


def _present(value: Any) -> bool:
    return value is not None and str(value).strip() != ""


def resolve_tenant_id(path_value: Any = None, query_value: Any = None, body_value: Any = None) -> Any:
    """
    Pick the tenant identifier from path, query and body, in that precedence.

    Raises:
        MissingTenantError: If none of the three carries a value
    """
    for value in (path_value, query_value, body_value):
        if _present(value):
            return value
    raise MissingTenantError()


async def _body_tenant_value(request: Request) -> Optional[Any]:
    if request.method in ("GET", "HEAD", "DELETE", "OPTIONS"):
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return None
    if isinstance(body, dict):
        return body.get(TENANT_FIELD)
    return None


class TenantResolver:
    """
    Resolves the tenant a request targets and attaches it to request.state.

    Fails closed: a missing identifier, an identifier that is not a tenant id
    and an inactive tenant all abort the request.
    """

    def __init__(self, crud=tenant_crud):
        self.crud = crud

    def load(self, db: Session, raw_tenant_id: Any) -> Tenant:
        try:
            tenant_id = int(raw_tenant_id)
        except (TypeError, ValueError):
            raise TenantNotFoundError(raw_tenant_id)

        tenant = self.crud.get(db, tenant_id)
        if tenant is None or not tenant.is_active:
            raise TenantNotFoundError(tenant_id)
        return tenant

    async def resolve(self, db: Session, request: Request) -> Tenant:
        raw_tenant_id = resolve_tenant_id(
            path_value=request.path_params.get(TENANT_FIELD),
            query_value=request.query_params.get(TENANT_FIELD),
            body_value=await _body_tenant_value(request),
        )
        tenant = self.load(db, raw_tenant_id)
        request.state.tenant = tenant
        return tenant


tenant_resolver = TenantResolver()
