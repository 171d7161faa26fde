"""
Tenant database manager and shutdown handling.

TenantDatabaseManager is the composition root of the tenant database
lifecycle. It is constructed once at application startup (FastAPI lifespan or
CLI entry point), owns the master engine and the pool registry, and is shut
down exactly once when the process exits.

Usage:
    ```python
    from common.config import get_settings
    from common.database.lifecycle import TenantDatabaseManager

    manager = TenantDatabaseManager.from_settings(get_settings("tenant-service"))
    try:
        async with manager.session("Acme Corp") as session:
            ...
    finally:
        await manager.shutdown()
    ```
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial

from loguru import logger
from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncSession

from common.config.settings import TenantServiceSettings
from common.database.session import (
    create_bootstrap_engine,
    create_master_engine,
    create_tenant_engine,
)
from common.database.tenant_naming import get_tenant_database_name
from common.database.tenant_pools import TenantPoolRegistry
from common.database.tenant_provisioning import (
    TenantCatalog,
    TenantDatabaseRecord,
    TenantProvisioner,
)
from common.database.tenant_schema import SchemaBootstrapper
from common.exceptions import PoolUnavailable
from common.models.users import UserAuth


class TenantDatabaseManager:
    """
    Owns every database resource of the process.

    Attributes:
        settings: Tenant service settings.
        catalog: Catalog operations on the shared master engine.
        registry: Per-tenant pool registry.
        provisioner: Ensure/exists/delete/list entry point.
    """

    def __init__(
        self,
        settings: TenantServiceSettings,
        catalog: TenantCatalog,
        bootstrapper: SchemaBootstrapper,
        registry: TenantPoolRegistry,
        provisioner: TenantProvisioner | None = None,
    ) -> None:
        self.settings = settings
        self.catalog = catalog
        self.bootstrapper = bootstrapper
        self.registry = registry
        self.provisioner = provisioner or TenantProvisioner(
            catalog=catalog,
            bootstrapper=bootstrapper,
            registry=registry,
            settings=settings,
        )
        self._closed = False

    @classmethod
    def from_settings(cls, settings: TenantServiceSettings) -> "TenantDatabaseManager":
        """Build the manager and its collaborators against a real database server."""
        prefix = settings.TENANT_DATABASE_PREFIX
        catalog = TenantCatalog(create_master_engine(settings))
        bootstrapper = SchemaBootstrapper(partial(create_bootstrap_engine, settings=settings))
        registry = TenantPoolRegistry(
            engine_factory=partial(create_tenant_engine, settings=settings),
            database_name_for=lambda tenant_key: get_tenant_database_name(tenant_key, prefix),
        )
        logger.info(
            f"Tenant database manager configured for {settings.POSTGRES_HOST}:{settings.POSTGRES_PORT} "
            f"(prefix '{prefix}')"
        )
        return cls(settings, catalog, bootstrapper, registry)

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_open(self) -> None:
        if self._closed:
            raise PoolUnavailable("Tenant database manager is shut down.")

    async def ensure(self, tenant: str) -> str:
        return await self.provisioner.ensure(tenant)

    async def exists(self, tenant: str) -> bool:
        return await self.provisioner.exists(tenant)

    async def delete(
        self, tenant: str, missing_ok: bool = False, actor: str | None = None
    ) -> None:
        await self.provisioner.delete(tenant, missing_ok=missing_ok, actor=actor)

    async def list_tenant_databases(self, include_size: bool = True) -> list[TenantDatabaseRecord]:
        return await self.provisioner.list_databases(include_size=include_size)

    async def list_all_tenant_databases(self) -> list[str]:
        return await self.provisioner.list_database_names()

    async def get_pool(self, tenant: str) -> AsyncEngine:
        """
        Get the pooled engine of a tenant, provisioning the database first if needed.

        After a tenant is deleted, the next call provisions a fresh database
        and builds a fresh pool instead of reusing the evicted one.

        Raises:
            PoolUnavailable: If the manager has been shut down, or the pool
                cannot reach its database.
        """
        self._require_open()
        await self.provisioner.ensure(tenant)
        return await self.registry.get_pool(self.provisioner.tenant_key(tenant))

    @asynccontextmanager
    async def connect(self, tenant: str) -> AsyncIterator[AsyncConnection]:
        """Borrow a connection from the tenant pool."""
        engine = await self.get_pool(tenant)
        async with engine.connect() as connection:
            yield connection

    @asynccontextmanager
    async def session(self, tenant: str) -> AsyncIterator[AsyncSession]:
        """
        Open an AsyncSession on the tenant pool.

        Commits when the block exits normally, rolls back on error.
        """
        self._require_open()
        await self.provisioner.ensure(tenant)
        session_maker = await self.registry.get_session_maker(self.provisioner.tenant_key(tenant))
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def tenant_stats(self, tenant: str) -> dict[str, int]:
        """
        Count the users of a tenant by role.

        Returns:
            Dict with total_users, employees and managers.

        Raises:
            PoolUnavailable: If the query cannot be run.
        """
        query = select(
            func.count().label("total_users"),
            func.count(case((UserAuth.role == "employee", 1))).label("employees"),
            func.count(case((UserAuth.role == "manager", 1))).label("managers"),
        ).select_from(UserAuth)
        try:
            async with self.connect(tenant) as connection:
                row = (await connection.execute(query)).one()
        except SQLAlchemyError as e:
            logger.error(f"Error reading stats for tenant '{tenant}': {e}")
            raise PoolUnavailable(internal_error=e) from e

        return {
            "total_users": int(row.total_users or 0),
            "employees": int(row.employees or 0),
            "managers": int(row.managers or 0),
        }

    async def shutdown(self) -> None:
        """
        Close every tenant pool, then the master engine.

        Safe to call more than once. Failures are logged and not retried.
        """
        if self._closed:
            return
        self._closed = True

        logger.info(f"Shutting down tenant database manager ({len(self.registry)} open pool(s))")
        try:
            await self.registry.close_all()
        except Exception as e:
            logger.error(f"Error closing tenant connection pools: {e}")
        try:
            await self.catalog.dispose()
        except Exception as e:
            logger.error(f"Error closing master database connection: {e}")
        logger.info("Tenant database manager shut down")
