"""
Tenant database provisioning.

This module handles the creation, verification, listing and deletion of
tenant-specific databases. Every company gets its own physical database,
created lazily on first legitimate access, so data is isolated at the database
level. The database server's catalog is the tenant registry: a tenant exists
if and only if a database named {prefix}_{canonical_key} exists.

Key Features:
    - Idempotent provisioning: ensure() is safe to call on every request
    - Concurrent provisioning of one tenant creates one database and runs one
      bootstrap per process; "already exists" from a racing process is success
    - Bounded provisioning time (PROVISIONING_TIMEOUT_SECONDS)
    - Short-lived "known ready" cache to skip catalog round trips
    - Deletion terminates open connections before dropping the database

Provisioning State Machine (per tenant):
    Unknown --exists + marker--> Ready (no bootstrap re-run)
    Unknown --exists, no marker--> Bootstrapping (earlier attempt failed)
    Unknown --absent--> Creating --created--> Bootstrapping --ok--> Ready
    Creating | Bootstrapping --error--> Failed (error propagates, nothing cached;
        the next ensure() starts again from the existence check)

Usage:
    ```python
    from common.database.tenant_provisioning import TenantProvisioner

    database_name = await provisioner.ensure("Acme Corp")
    # "logos_ai_acme_corp"

    await provisioner.delete("Acme Corp")
    assert not await provisioner.exists("Acme Corp")
    ```

Note:
    - A failed bootstrap leaves the created (empty) database in place; the next
      ensure() re-runs bootstrap because the schema marker is missing
    - The cache is per process; deleting a tenant from another process is seen
      here once the cache entry expires
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import time

from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from common.config.settings import TenantServiceSettings
from common.database.tenant_naming import (
    get_tenant_database_name,
    get_tenant_key_from_database_name,
    tenant_database_name_pattern,
    validate_tenant_name,
)
from common.database.tenant_pools import TenantPoolRegistry
from common.database.tenant_schema import SchemaBootstrapper
from common.exceptions import (
    DatabaseCreateFailed,
    DatabaseDropFailed,
    PoolUnavailable,
    ProvisioningTimeout,
    TenantNotFound,
)

# duplicate_database, and unique_violation on pg_database_datname_index when
# two CREATE DATABASE statements race
_ALREADY_EXISTS_SQLSTATES = {"42P04", "23505"}

AuditHook = Callable[[str, str, str | None], Awaitable[None] | None]


@dataclass(frozen=True)
class TenantDatabaseRecord:
    """
    A tenant database as seen in the server catalog.

    Attributes:
        tenant_key: Canonical tenant key.
        database_name: Physical database name.
        exists: Always True for records read from the catalog.
        size_on_disk: Database size in bytes (informational), None if not requested.
    """

    tenant_key: str
    database_name: str
    exists: bool = True
    size_on_disk: int | None = None


def _is_already_exists_error(error: Exception) -> bool:
    orig = getattr(error, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _ALREADY_EXISTS_SQLSTATES:
        return True
    error_str = str(error)
    return "42P04" in error_str or "already exists" in error_str.lower()


class TenantCatalog:
    """
    Database-level operations against the catalog (master) database.

    Owns the single shared master engine. CREATE/DROP DATABASE need AUTOCOMMIT,
    which create_master_engine configures.

    Args:
        engine: Master AsyncEngine connected to POSTGRES_MASTER_DATABASE.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def database_exists(self, database_name: str) -> bool:
        """
        Check if a database exists.

        Raises:
            PoolUnavailable: If the catalog cannot be queried.
        """
        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    text("SELECT 1 FROM pg_database WHERE datname = :database_name"),
                    {"database_name": database_name},
                )
                return result.first() is not None
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error checking if database '{database_name}' exists: {e}")
            raise PoolUnavailable(internal_error=e) from e

    async def create_database(self, database_name: str) -> bool:
        """
        Create a database.

        Returns:
            True if this call created the database, False if it already existed
            (e.g. a concurrent provisioner won the race).

        Raises:
            DatabaseCreateFailed: For any failure other than "already exists".
        """
        logger.info(f"Creating tenant database '{database_name}'...")
        try:
            async with self._engine.connect() as connection:
                await connection.execute(text(f'CREATE DATABASE "{database_name}"'))
        except DBAPIError as e:
            if _is_already_exists_error(e):
                logger.info(
                    f"Tenant database '{database_name}' already exists (concurrent creation detected)."
                )
                return False
            logger.error(f"Error creating tenant database '{database_name}': {e}")
            raise DatabaseCreateFailed(internal_error=e) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error creating tenant database '{database_name}': {e}")
            raise DatabaseCreateFailed(internal_error=e) from e

        logger.info(f"Tenant database '{database_name}' created successfully.")
        return True

    async def terminate_connections(self, database_name: str) -> int:
        """
        Terminate every other backend connected to a database.

        Returns:
            Number of backends signalled.

        Raises:
            DatabaseDropFailed: If the termination query fails.
        """
        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    text(
                        """
                        SELECT pg_terminate_backend(pg_stat_activity.pid)
                        FROM pg_stat_activity
                        WHERE pg_stat_activity.datname = :database_name
                        AND pid <> pg_backend_pid()
                        """
                    ),
                    {"database_name": database_name},
                )
                terminated = len(result.fetchall())
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error terminating connections to '{database_name}': {e}")
            raise DatabaseDropFailed(internal_error=e) from e

        if terminated:
            logger.info(f"Terminated {terminated} connection(s) to '{database_name}'")
        return terminated

    async def drop_database(self, database_name: str) -> None:
        """
        Drop a database if it exists.

        Raises:
            DatabaseDropFailed: If DROP DATABASE fails.
        """
        try:
            async with self._engine.connect() as connection:
                await connection.execute(text(f'DROP DATABASE IF EXISTS "{database_name}"'))
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error dropping tenant database '{database_name}': {e}")
            raise DatabaseDropFailed(internal_error=e) from e
        logger.info(f"Tenant database '{database_name}' dropped successfully.")

    async def list_databases(self, prefix: str, include_size: bool = False) -> list[TenantDatabaseRecord]:
        """
        List tenant databases by name prefix, ordered by name.

        Args:
            prefix: Tenant database prefix.
            include_size: Also read pg_database_size() for each database.

        Raises:
            PoolUnavailable: If the catalog cannot be queried.
        """
        size_column = "pg_database_size(datname)" if include_size else "NULL"
        query = text(
            f"""
            SELECT datname AS database_name, {size_column} AS size_on_disk
            FROM pg_database
            WHERE datistemplate = false
            AND datname LIKE :pattern ESCAPE '\\'
            ORDER BY datname
            """
        )
        try:
            async with self._engine.connect() as connection:
                result = await connection.execute(
                    query, {"pattern": tenant_database_name_pattern(prefix)}
                )
                rows = result.fetchall()
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error listing tenant databases: {e}")
            raise PoolUnavailable(internal_error=e) from e

        records = []
        for row in rows:
            tenant_key = get_tenant_key_from_database_name(row.database_name, prefix)
            if tenant_key is None:
                continue
            records.append(
                TenantDatabaseRecord(
                    tenant_key=tenant_key,
                    database_name=row.database_name,
                    size_on_disk=row.size_on_disk,
                )
            )
        return records

    async def dispose(self) -> None:
        await self._engine.dispose()
        logger.info("Closed master database connection")


async def log_tenant_deletion(tenant_key: str, database_name: str, actor: str | None = None) -> None:
    """Default audit hook for tenant deletion."""
    logger.warning(
        f"AUDIT: tenant '{tenant_key}' deleted by {actor or 'unknown'}, "
        f"database '{database_name}' dropped"
    )


class TenantProvisioner:
    """
    Orchestrates existence check, creation, bootstrap and deletion of tenant
    databases.

    All public methods accept either a raw company name or a canonical key;
    both go through validate_tenant_name, which is idempotent on keys.

    Args:
        catalog: Catalog operations on the master database.
        bootstrapper: Applies the tenant schema.
        registry: Pool registry; deletion evicts the tenant's pool.
        settings: Tenant service settings (prefix, name limits, timeout, cache TTL).
        on_delete: Audit hook called after a tenant database is dropped.
    """

    def __init__(
        self,
        catalog: TenantCatalog,
        bootstrapper: SchemaBootstrapper,
        registry: TenantPoolRegistry,
        settings: TenantServiceSettings,
        on_delete: AuditHook | None = log_tenant_deletion,
    ) -> None:
        self.catalog = catalog
        self.bootstrapper = bootstrapper
        self.registry = registry
        self.settings = settings
        self._on_delete = on_delete
        self._locks: dict[str, asyncio.Lock] = {}
        self._known_ready: dict[str, float] = {}

    def tenant_key(self, tenant: str) -> str:
        """
        Canonicalize and validate a company name.

        Raises:
            InvalidTenantName: If the name violates the naming policy.
        """
        return validate_tenant_name(
            tenant,
            min_length=self.settings.TENANT_NAME_MIN_LENGTH,
            max_length=self.settings.TENANT_NAME_MAX_LENGTH,
        )

    def database_name(self, tenant: str) -> str:
        return get_tenant_database_name(
            self.tenant_key(tenant), self.settings.TENANT_DATABASE_PREFIX
        )

    def _lock_for(self, tenant_key: str) -> asyncio.Lock:
        return self._locks.setdefault(tenant_key, asyncio.Lock())

    def is_known_ready(self, tenant_key: str) -> bool:
        ttl = self.settings.TENANT_EXISTS_CACHE_TTL_SECONDS
        verified_at = self._known_ready.get(tenant_key)
        if verified_at is None or ttl <= 0:
            return False
        if time.monotonic() - verified_at > ttl:
            self._known_ready.pop(tenant_key, None)
            return False
        return True

    def forget(self, tenant_key: str) -> None:
        """Drop the cached "known ready" state of a tenant."""
        self._known_ready.pop(tenant_key, None)

    async def exists(self, tenant: str) -> bool:
        """
        Check the catalog for the tenant database. No side effects.

        Raises:
            InvalidTenantName: If the name violates the naming policy.
            PoolUnavailable: If the catalog cannot be queried.
        """
        return await self.catalog.database_exists(self.database_name(tenant))

    async def ensure(self, tenant: str) -> str:
        """
        Guarantee the tenant database exists and carries the schema.

        Args:
            tenant: Raw company name or canonical key.

        Returns:
            The tenant database name. Repeated calls return the same name and
            do not re-run bootstrap.

        Raises:
            InvalidTenantName: If the name violates the naming policy.
            DatabaseCreateFailed: If CREATE DATABASE fails.
            SchemaBootstrapFailed: If applying the schema fails.
            PoolUnavailable: If the catalog or tenant database is unreachable.
            ProvisioningTimeout: If create+bootstrap exceeds
                PROVISIONING_TIMEOUT_SECONDS.
        """
        tenant_key = self.tenant_key(tenant)
        database_name = get_tenant_database_name(
            tenant_key, self.settings.TENANT_DATABASE_PREFIX
        )

        if self.is_known_ready(tenant_key):
            logger.debug(f"Tenant '{tenant_key}' known ready, skipping catalog check")
            return database_name

        async with self._lock_for(tenant_key):
            # Another task may have provisioned while we waited for the lock
            if self.is_known_ready(tenant_key):
                return database_name

            try:
                await asyncio.wait_for(
                    self._provision(tenant_key, database_name),
                    timeout=self.settings.PROVISIONING_TIMEOUT_SECONDS,
                )
            except asyncio.TimeoutError as e:
                logger.error(
                    f"Provisioning of tenant database '{database_name}' timed out after "
                    f"{self.settings.PROVISIONING_TIMEOUT_SECONDS}s"
                )
                raise ProvisioningTimeout(internal_error=e) from e

            self._known_ready[tenant_key] = time.monotonic()

        return database_name

    async def _provision(self, tenant_key: str, database_name: str) -> None:
        if await self.catalog.database_exists(database_name):
            if await self.bootstrapper.is_bootstrapped(database_name):
                logger.debug(f"Tenant database '{database_name}' already exists and is initialized.")
                return
            logger.info(
                f"Tenant database '{database_name}' exists but schema not initialized. Proceeding..."
            )
        else:
            logger.info(f"Starting provisioning for tenant database '{database_name}'...")
            await self.catalog.create_database(database_name)

        await self.bootstrapper.bootstrap(database_name, tenant_key=tenant_key)
        logger.info(f"Successfully provisioned tenant database '{database_name}'")

    async def delete(
        self, tenant: str, missing_ok: bool = False, actor: str | None = None
    ) -> None:
        """
        Permanently delete a tenant database.

        Evicts the tenant's pool from the registry, terminates every remaining
        connection to the database, then drops it. Irreversible.

        Args:
            tenant: Raw company name or canonical key.
            missing_ok: Return silently if the database does not exist.
            actor: Who requested the deletion, passed to the audit hook.

        Raises:
            TenantNotFound: If the database does not exist and missing_ok is False.
            DatabaseDropFailed: If terminating connections or dropping fails.
        """
        tenant_key = self.tenant_key(tenant)
        database_name = get_tenant_database_name(
            tenant_key, self.settings.TENANT_DATABASE_PREFIX
        )

        async with self._lock_for(tenant_key):
            self.forget(tenant_key)
            if not await self.catalog.database_exists(database_name):
                if missing_ok:
                    logger.info(f"Tenant database '{database_name}' does not exist, nothing to drop.")
                    return
                raise TenantNotFound(f"Database for company '{tenant_key}' does not exist.")

            logger.warning(f"Dropping tenant database '{database_name}'...")
            await self.registry.close_one(tenant_key)
            await self.catalog.terminate_connections(database_name)
            await self.catalog.drop_database(database_name)

        if self._on_delete is not None:
            outcome = self._on_delete(tenant_key, database_name, actor)
            if asyncio.iscoroutine(outcome):
                await outcome

    async def list_databases(self, include_size: bool = False) -> list[TenantDatabaseRecord]:
        """List every tenant database on the server, ordered by name."""
        return await self.catalog.list_databases(
            self.settings.TENANT_DATABASE_PREFIX, include_size=include_size
        )

    async def list_database_names(self) -> list[str]:
        """List the names of every tenant database on the server."""
        return [record.database_name for record in await self.list_databases()]
