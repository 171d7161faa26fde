"""
Tenant schema bootstrap.

This module applies the fixed tenant schema to a tenant database. The schema is
the set of tables registered on common.database.base.Base.metadata by the
common.models package.

Schema Initialization:
    Tables are created in foreign key dependency order (Base.metadata.sorted_tables),
    so user_auth precedes employees, and employees precedes every call and
    analytics table that references it. Each table is followed by its indexes.

    Every statement uses IF NOT EXISTS. The bootstrap transaction first takes a
    transaction-scoped advisory lock keyed on the database name and re-checks
    the marker, so a process that loses a race waits for the winner and then
    finds the schema already in place.

Transactions:
    All DDL runs in one transaction (PostgreSQL DDL is transactional). The last
    statement of that transaction writes the tenant_schema_info marker row, so a
    database either carries the full schema plus the marker, or neither.

Connections:
    Bootstrap opens its own short-lived, unpooled engine and disposes it when
    done. Long-lived access to the tenant database goes through
    TenantPoolRegistry.

Usage:
    ```python
    from common.database.tenant_schema import SchemaBootstrapper

    bootstrapper = SchemaBootstrapper(engine_factory)
    await bootstrapper.bootstrap("logos_ai_acme_corp", tenant_key="acme_corp")
    assert await bootstrapper.is_bootstrapped("logos_ai_acme_corp")
    ```
"""

from collections.abc import Callable

from loguru import logger
from sqlalchemy import MetaData, Table, select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine
from sqlalchemy.schema import CreateIndex, CreateTable, DDLElement

from common.database.base import Base
from common.exceptions import PoolUnavailable, SchemaBootstrapFailed
from common.models.tenants import TENANT_SCHEMA_VERSION, TenantSchemaInfo

EngineFactory = Callable[[str], AsyncEngine]

_MARKER_TABLE_EXISTS = text(
    """
    SELECT EXISTS (
        SELECT 1
        FROM information_schema.tables
        WHERE table_schema = 'public'
        AND table_name = :table_name
    )
    """
)

# Held until the bootstrap transaction ends; serializes bootstrap across processes
_BOOTSTRAP_LOCK = text("SELECT pg_advisory_xact_lock(hashtext(:database_name))")


def build_schema_statements(metadata: MetaData = Base.metadata) -> list[DDLElement]:
    """
    Build the ordered, idempotent DDL applied to every tenant database.

    Each table is followed by its indexes; tables come in dependency order so
    foreign keys always point at an existing table.

    Args:
        metadata: Metadata holding the tenant tables. Defaults to Base.metadata.

    Returns:
        List of CREATE TABLE / CREATE INDEX constructs, all IF NOT EXISTS.
    """
    statements: list[DDLElement] = []
    for table in metadata.sorted_tables:
        statements.append(CreateTable(table, if_not_exists=True))
        for index in sorted(table.indexes, key=lambda ix: ix.name or ""):
            statements.append(CreateIndex(index, if_not_exists=True))
    return statements


class SchemaBootstrapper:
    """
    Applies the tenant schema to a tenant database.

    Attributes:
        schema_version (str): Version written to the marker row; a database
            whose marker carries another version is treated as not bootstrapped.

    Thread Safety:
        Concurrent bootstrap of the same database is serialized by
        pg_advisory_xact_lock; the second caller sees the marker and returns
        without running DDL. TenantProvisioner additionally serializes bootstrap
        per tenant within a process.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        metadata: MetaData = Base.metadata,
        schema_version: str = TENANT_SCHEMA_VERSION,
    ) -> None:
        self._engine_factory = engine_factory
        self._metadata = metadata
        self.schema_version = schema_version
        self._statements = build_schema_statements(metadata)
        self._marker_table: Table = TenantSchemaInfo.__table__

    @property
    def statements(self) -> list[DDLElement]:
        return list(self._statements)

    async def bootstrap(self, database_name: str, tenant_key: str) -> None:
        """
        Apply the schema to a tenant database.

        Args:
            database_name: Physical tenant database name. The caller must have
                just created it or verified it exists.
            tenant_key: Canonical tenant key, stored in the marker row.

        Raises:
            SchemaBootstrapFailed: If any DDL statement fails. The transaction
                is rolled back, so no partial schema is left behind.
        """
        logger.info(f"Initializing schema for tenant database '{database_name}'...")
        engine = self._engine_factory(database_name)
        try:
            async with engine.begin() as connection:
                await connection.execute(_BOOTSTRAP_LOCK, {"database_name": database_name})
                if await self._has_marker(connection):
                    logger.info(
                        f"Schema of tenant database '{database_name}' was initialized concurrently, skipping."
                    )
                    return

                for i, statement in enumerate(self._statements):
                    logger.debug(
                        f"Executing statement {i + 1}/{len(self._statements)} "
                        f"on '{database_name}': {type(statement).__name__} {statement.element.name}"
                    )
                    await connection.execute(statement)

                marker = (
                    pg_insert(self._marker_table)
                    .values(schema_version=self.schema_version, tenant_key=tenant_key)
                    .on_conflict_do_nothing(index_elements=["schema_version"])
                )
                await connection.execute(marker)
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Schema initialization failed for tenant database '{database_name}'. "
                f"Transaction rolled back. Error: {e}"
            )
            raise SchemaBootstrapFailed(internal_error=e) from e
        finally:
            await engine.dispose()

        logger.info(
            f"Schema initialization completed successfully for tenant database '{database_name}'."
        )

    async def is_bootstrapped(self, database_name: str) -> bool:
        """
        Check whether a tenant database carries the current schema marker.

        Args:
            database_name: Physical tenant database name. Must exist.

        Returns:
            True if the marker table exists and holds a row for schema_version.

        Raises:
            PoolUnavailable: If no connection to the database can be opened.
        """
        engine = self._engine_factory(database_name)
        try:
            async with engine.connect() as connection:
                return await self._has_marker(connection)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Error checking schema of tenant database '{database_name}': {e}")
            raise PoolUnavailable(internal_error=e) from e
        finally:
            await engine.dispose()

    async def _has_marker(self, connection: AsyncConnection) -> bool:
        result = await connection.execute(
            _MARKER_TABLE_EXISTS, {"table_name": self._marker_table.name}
        )
        if not result.scalar():
            return False
        result = await connection.execute(
            select(self._marker_table.c.schema_version).where(
                self._marker_table.c.schema_version == self.schema_version
            )
        )
        return result.scalar() is not None
