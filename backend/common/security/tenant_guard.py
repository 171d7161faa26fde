"""
Tenant resolution and access guard.

Given an authenticated Principal and the tenant a request asks for, decide
which tenant the request acts on and whether the principal may act on it.

Resolution (first match wins):
    1. Service principals have no tenant of their own: the request must name
       one, otherwise TenantRequired.
    2. Everyone else acts on the tenant of their credential. A requested
       tenant that differs is denied (CrossTenantAccessDenied) unless the
       principal is an admin, who may act on any tenant.

Before a resolved tenant is used for data access, authorize() awaits
TenantProvisioner.ensure(), so a company database springs into existence on
its first legitimate access.
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from common.database.tenant_provisioning import TenantProvisioner
from common.exceptions import CrossTenantAccessDenied, TenantRequired
from common.security.auth import Principal, Role


@dataclass(frozen=True)
class TenantContext:
    """The tenant a request acts on, after resolution and access checks."""

    tenant_key: str
    database_name: str
    principal: Principal


class TenantAccessGuard:
    """
    Resolves the effective tenant of a request and enforces tenant isolation.

    Args:
        provisioner: Used to validate names and to ensure the tenant database.
    """

    def __init__(self, provisioner: TenantProvisioner) -> None:
        self.provisioner = provisioner

    def resolve(self, principal: Principal, requested_tenant: Optional[str] = None) -> TenantContext:
        """
        Resolve the effective tenant without touching the database.

        Args:
            principal: Authenticated caller.
            requested_tenant: Tenant named by the request (header, query or
                path), raw or canonical. None if the request names none.

        Returns:
            The resolved TenantContext.

        Raises:
            TenantRequired: A service principal (or an admin with no company of
                their own) did not name a tenant.
            CrossTenantAccessDenied: A non-admin principal named another tenant,
                or has no company associated with their account.
            InvalidTenantName: The requested tenant name is invalid.
        """
        requested_key = None
        if requested_tenant is not None and requested_tenant.strip():
            requested_key = self.provisioner.tenant_key(requested_tenant)

        if principal.role == Role.SERVICE:
            if requested_key is None:
                raise TenantRequired("Company name is required for service requests.")
            tenant_key = requested_key
        elif principal.role == Role.ADMIN:
            tenant_key = requested_key or principal.tenant_key
            if tenant_key is None:
                raise TenantRequired()
        else:
            if principal.tenant_key is None:
                logger.warning(
                    f"SECURITY: principal '{principal.id}' ({principal.role.value}) has no company"
                )
                raise CrossTenantAccessDenied("Access denied: No company associated with your account.")
            if requested_key is not None and requested_key != principal.tenant_key:
                logger.warning(
                    f"SECURITY: cross-tenant access denied for principal '{principal.id}' "
                    f"({principal.role.value}): own tenant '{principal.tenant_key}', "
                    f"requested '{requested_key}'"
                )
                raise CrossTenantAccessDenied()
            tenant_key = principal.tenant_key

        return TenantContext(
            tenant_key=tenant_key,
            database_name=self.provisioner.database_name(tenant_key),
            principal=principal,
        )

    async def authorize(
        self,
        principal: Principal,
        requested_tenant: Optional[str] = None,
        ensure: bool = True,
    ) -> TenantContext:
        """
        Resolve the effective tenant and, by default, make sure its database is ready.

        Args:
            principal: Authenticated caller.
            requested_tenant: Tenant named by the request, if any.
            ensure: Await provisioning before returning. Pass False for
                operations that must not create a database (e.g. existence checks).

        Raises:
            Everything resolve() raises, plus the provisioning errors of
            TenantProvisioner.ensure().
        """
        context = self.resolve(principal, requested_tenant)
        if ensure:
            await self.provisioner.ensure(context.tenant_key)
        return context
