"""
Shared API dependencies for the tenant service.

The TenantDatabaseManager and TenantAccessGuard are created once by the
application lifespan and stored on app.state; these dependencies hand them to
endpoints. Tenant-scoped endpoints depend on get_tenant_context, which
authenticates the caller, resolves the tenant the request acts on, and
provisions its database before the handler runs.
"""

from typing import Optional

from fastapi import Depends, Header, Query, Request

from common.config.settings import TenantServiceSettings
from common.database import TenantDatabaseManager
from common.security import Principal, TenantAccessGuard, TenantContext, authenticate


def get_service_settings(request: Request) -> TenantServiceSettings:
    return request.app.state.settings


def get_manager(request: Request) -> TenantDatabaseManager:
    return request.app.state.tenant_manager


def get_guard(request: Request) -> TenantAccessGuard:
    return request.app.state.tenant_guard


def get_principal(
    authorization: Optional[str] = Header(None),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    settings: TenantServiceSettings = Depends(get_service_settings),
) -> Principal:
    """Authenticate the caller from the Authorization or X-API-Key header."""
    return authenticate(authorization=authorization, api_key=x_api_key, settings=settings)


def get_requested_tenant(
    request: Request,
    x_company_name: Optional[str] = Header(None, alias="X-Company-Name"),
    company_name: Optional[str] = Query(None, alias="company_name"),
) -> Optional[str]:
    """
    Get the company a request names, if any.

    Checked in order: X-Company-Name header, company_name query parameter,
    company_name path parameter.
    """
    for candidate in (x_company_name, company_name, request.path_params.get("company_name")):
        if candidate is not None and candidate.strip():
            return candidate
    return None


async def get_tenant_context(
    principal: Principal = Depends(get_principal),
    requested_tenant: Optional[str] = Depends(get_requested_tenant),
    guard: TenantAccessGuard = Depends(get_guard),
) -> TenantContext:
    """Resolve and authorize the tenant of the request, provisioning it if needed."""
    return await guard.authorize(principal, requested_tenant)
