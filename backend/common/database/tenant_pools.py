"""
Tenant connection pool registry.

The registry is the only component that holds long-lived connections to tenant
databases. It owns at most one pooled AsyncEngine per canonical tenant key,
created on first access and kept until the tenant is deleted or the process
shuts down. Handlers borrow connections from these pools; they never build
their own engines.
"""

import asyncio
from collections.abc import Callable

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from common.exceptions import PoolUnavailable

EngineFactory = Callable[[str], AsyncEngine]


class TenantPoolRegistry:
    """
    Registry of pooled engines, one per tenant key.

    Pool creation is compute-if-absent under a per-key asyncio lock, so
    concurrent first requests for the same tenant share one engine. Requests for
    different tenants never wait on each other.

    Args:
        engine_factory: Builds a pooled engine for a physical database name.
        database_name_for: Maps a canonical tenant key to its database name.
        verify_connection: Open one connection before caching a new pool, so an
            unreachable database surfaces as PoolUnavailable instead of an
            error inside the first business query.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        database_name_for: Callable[[str], str],
        verify_connection: bool = True,
    ) -> None:
        self._engine_factory = engine_factory
        self._database_name_for = database_name_for
        self._verify_connection = verify_connection
        self._engines: dict[str, AsyncEngine] = {}
        self._session_makers: dict[str, async_sessionmaker] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._closed = False

    def __contains__(self, tenant_key: str) -> bool:
        return tenant_key in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def tenant_keys(self) -> list[str]:
        return sorted(self._engines)

    @property
    def closed(self) -> bool:
        return self._closed

    async def get_pool(self, tenant_key: str) -> AsyncEngine:
        """
        Get or create the pooled engine for a tenant.

        Args:
            tenant_key: Canonical tenant key. The tenant database must already
                exist; provisioning is the caller's job.

        Returns:
            The tenant's AsyncEngine. Repeated calls return the same object.

        Raises:
            PoolUnavailable: If a new pool cannot reach its database, or the
                registry has been closed.
        """
        if self._closed:
            raise PoolUnavailable("Connection pools are closed.")
        engine = self._engines.get(tenant_key)
        if engine is not None:
            return engine

        lock = self._locks.setdefault(tenant_key, asyncio.Lock())
        async with lock:
            engine = self._engines.get(tenant_key)
            if engine is not None:
                return engine

            database_name = self._database_name_for(tenant_key)
            engine = self._engine_factory(database_name)
            if self._verify_connection:
                try:
                    async with engine.connect() as connection:
                        await connection.execute(text("SELECT 1"))
                except (SQLAlchemyError, OSError) as e:
                    logger.error(f"Could not connect to tenant database '{database_name}': {e}")
                    await engine.dispose()
                    raise PoolUnavailable(internal_error=e) from e

            # close_all may have run while the connection was being verified
            if self._closed:
                await engine.dispose()
                raise PoolUnavailable("Connection pools are closed.")

            self._engines[tenant_key] = engine
            logger.info(f"Created connection pool for tenant '{tenant_key}' ({database_name})")
            return engine

    async def get_session_maker(self, tenant_key: str) -> async_sessionmaker:
        """Get the cached AsyncSession factory bound to the tenant's pool."""
        engine = await self.get_pool(tenant_key)
        session_maker = self._session_makers.get(tenant_key)
        if session_maker is None:
            session_maker = async_sessionmaker(
                bind=engine,
                class_=AsyncSession,
                autoflush=False,
                expire_on_commit=False,
            )
            self._session_makers[tenant_key] = session_maker
        return session_maker

    async def close_one(self, tenant_key: str) -> None:
        """
        Close and evict a single tenant's pool.

        A no-op if the tenant has no pool. The next get_pool builds a fresh one.
        """
        lock = self._locks.setdefault(tenant_key, asyncio.Lock())
        async with lock:
            engine = self._engines.pop(tenant_key, None)
            self._session_makers.pop(tenant_key, None)
            if engine is None:
                return
            await engine.dispose()
            logger.info(f"Closed connection pool for tenant '{tenant_key}'")

    async def close_all(self) -> None:
        """
        Close every cached pool and clear the registry.

        Pools requested afterwards are refused. Failures are logged and do not
        stop the remaining pools from closing.
        """
        self._closed = True
        engines = list(self._engines.items())
        self._engines.clear()
        self._session_makers.clear()
        for tenant_key, engine in engines:
            try:
                await engine.dispose()
                logger.info(f"Closed connection pool for tenant '{tenant_key}'")
            except Exception as e:
                logger.error(f"Error closing connection pool for tenant '{tenant_key}': {e}")
