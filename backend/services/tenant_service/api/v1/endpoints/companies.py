"""
Company Database API Endpoints

This module defines the REST API endpoints for the company database lifecycle.

Endpoints:
    GET /companies
        List every company database on the server (admin only).

    GET /companies/current
        Resolve the company of the request (credential, X-Company-Name header
        or company_name query) and provision its database if needed.

    POST /companies
        Provision a company database. Idempotent: provisioning an existing
        company returns the same database name. Admins may provision any
        company; managers and service clients only the one they act on.

    GET /companies/{company_name}/exists
        Check whether a company database exists, without creating it.

    GET /companies/{company_name}/stats
        Count the users of a company by role (manager-equivalent roles).

    DELETE /companies/{company_name}
        Terminate connections to and drop a company database (admin only).
        Irreversible.

Error Handling:
    Tenant errors are rendered by the app factory as {"error": message}:
    - 400 Bad Request: Invalid company name, or company required
    - 401 Unauthorized: Missing or invalid credentials
    - 403 Forbidden: Cross-company access or insufficient role
    - 404 Not Found: Deleting a company that does not exist
    - 500 Internal Server Error: Database creation, bootstrap or drop failed
    - 503 Service Unavailable: Database unreachable or provisioning timed out
"""

from fastapi import APIRouter, Depends, Query
from loguru import logger

from common.database import TenantDatabaseManager
from common.security import (
    Principal,
    TenantAccessGuard,
    TenantContext,
    require_admin,
    require_manager,
)
from services.tenant_service.api.dependencies import (
    get_guard,
    get_manager,
    get_principal,
    get_tenant_context,
)
from services.tenant_service.api.v1.models import (
    CompanyCreateRequest,
    CompanyDatabaseResponse,
    CompanyDeleteResponse,
    CompanyExistsResponse,
    CompanyListResponse,
    CompanyProvisionResponse,
    CompanyStatsResponse,
)

router = APIRouter()


@router.get("", response_model=CompanyListResponse)
async def list_companies(
    include_size: bool = Query(True, description="Include database size on disk"),
    principal: Principal = Depends(get_principal),
    manager: TenantDatabaseManager = Depends(get_manager),
) -> CompanyListResponse:
    """
    List all company databases, ordered by name.

    Returns:
        CompanyListResponse with one entry per company database and the total.
    """
    require_admin(principal)
    records = await manager.list_tenant_databases(include_size=include_size)
    companies = [
        CompanyDatabaseResponse(
            company_name=record.tenant_key,
            database_name=record.database_name,
            exists=record.exists,
            size_on_disk=record.size_on_disk,
        )
        for record in records
    ]
    return CompanyListResponse(companies=companies, total=len(companies))


@router.get("/current", response_model=CompanyDatabaseResponse)
async def current_company(
    context: TenantContext = Depends(get_tenant_context),
) -> CompanyDatabaseResponse:
    """Return the company database the request acts on."""
    return CompanyDatabaseResponse(
        company_name=context.tenant_key,
        database_name=context.database_name,
        exists=True,
    )


@router.post("", response_model=CompanyProvisionResponse)
async def provision_company(
    request: CompanyCreateRequest,
    principal: Principal = Depends(get_principal),
    guard: TenantAccessGuard = Depends(get_guard),
) -> CompanyProvisionResponse:
    """
    Create a company database and apply the schema, if it is not there yet.

    Args:
        request: Body with the company display name.

    Returns:
        CompanyProvisionResponse with the canonical key and database name.
    """
    require_manager(principal)
    context = await guard.authorize(principal, request.company_name)
    logger.info(
        f"Company '{context.tenant_key}' provisioned by principal '{principal.id}' "
        f"({principal.role.value})"
    )
    return CompanyProvisionResponse(
        message=f"Database for company '{context.tenant_key}' is ready.",
        company_name=context.tenant_key,
        database_name=context.database_name,
    )


@router.get("/{company_name}/exists", response_model=CompanyExistsResponse)
async def company_exists(
    company_name: str,
    principal: Principal = Depends(get_principal),
    guard: TenantAccessGuard = Depends(get_guard),
    manager: TenantDatabaseManager = Depends(get_manager),
) -> CompanyExistsResponse:
    """Check whether a company database exists. Never creates it."""
    context = guard.resolve(principal, company_name)
    exists = await manager.exists(context.tenant_key)
    return CompanyExistsResponse(
        company_name=context.tenant_key,
        database_name=context.database_name,
        exists=exists,
    )


@router.get("/{company_name}/stats", response_model=CompanyStatsResponse)
async def company_stats(
    company_name: str,
    principal: Principal = Depends(get_principal),
    guard: TenantAccessGuard = Depends(get_guard),
    manager: TenantDatabaseManager = Depends(get_manager),
) -> CompanyStatsResponse:
    """
    Count the users of a company by role.

    Returns:
        CompanyStatsResponse with total_users, employees and managers.
    """
    require_manager(principal)
    context = await guard.authorize(principal, company_name)
    stats = await manager.tenant_stats(context.tenant_key)
    return CompanyStatsResponse(
        company_name=context.tenant_key,
        database_name=context.database_name,
        **stats,
    )


@router.delete("/{company_name}", response_model=CompanyDeleteResponse)
async def delete_company(
    company_name: str,
    principal: Principal = Depends(get_principal),
    manager: TenantDatabaseManager = Depends(get_manager),
) -> CompanyDeleteResponse:
    """
    Permanently delete a company database.

    Raises:
        TenantNotFound: If the company database does not exist (404).
    """
    require_admin(principal)
    tenant_key = manager.provisioner.tenant_key(company_name)
    database_name = manager.provisioner.database_name(tenant_key)
    await manager.delete(tenant_key, actor=f"admin '{principal.id}'")
    return CompanyDeleteResponse(
        message=f"Database for company '{tenant_key}' deleted.",
        company_name=tenant_key,
        database_name=database_name,
    )
