"""
Database engine construction for the tenant-isolated architecture.

Every tenant owns a dedicated PostgreSQL database on a single server. This module
builds the SQLAlchemy async engines used to reach those databases; it never caches
them. Long-lived tenant pools are owned by TenantPoolRegistry, and the catalog
engine is owned by TenantCatalog.

Engine Types:
    - Tenant engine: pooled connections to one tenant database (create_tenant_engine)
    - Bootstrap engine: unpooled, short-lived connections used only while applying
      the schema to a fresh tenant database (create_bootstrap_engine)
    - Master engine: small fixed pool in AUTOCOMMIT mode connected to the catalog
      database, used for CREATE/DROP DATABASE and existence checks
      (create_master_engine)

All engines use the asyncpg driver so every round trip is a non-blocking await.

Example:
    ```python
    from common.config import get_settings
    from common.database.session import create_tenant_engine

    settings = get_settings("tenant-service")
    engine = create_tenant_engine("logos_ai_acme_corp", settings)
    async with engine.connect() as connection:
        await connection.execute(text("SELECT 1"))
    await engine.dispose()
    ```
"""

from typing import Any

from loguru import logger
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from common.config import BaseServiceSettings


def create_sqlalchemy_url(database_name: str, settings: BaseServiceSettings) -> URL:
    """
    Create SQLAlchemy database URL for the configured database server.

    Args:
        database_name: Name of the database to connect to. For tenant databases,
            use get_tenant_database_name(tenant_key). For catalog operations, use
            settings.POSTGRES_MASTER_DATABASE.
        settings: Service settings carrying the POSTGRES_* connection parameters.

    Returns:
        SQLAlchemy URL object using the postgresql+asyncpg driver.

    Raises:
        ValueError: If database_name is empty or None.
    """
    if not database_name:
        msg = (
            "database_name is required for tenant-isolated architecture. "
            "Use get_tenant_database_name(tenant_key) for tenant databases, "
            "or POSTGRES_MASTER_DATABASE for catalog operations."
        )
        raise ValueError(
            msg
        )

    return URL.create(
        drivername="postgresql+asyncpg",
        username=settings.POSTGRES_USER,
        password=settings.POSTGRES_PASSWORD or None,
        host=settings.POSTGRES_HOST,
        port=settings.POSTGRES_PORT,
        database=database_name,
    )


def _connect_args(settings: BaseServiceSettings, application_name: str) -> dict[str, Any]:
    return {
        "timeout": settings.DATABASE_CONNECT_TIMEOUT,
        "server_settings": {
            "application_name": application_name,
            "jit": "off",  # Disable JIT for faster connection times
            "statement_timeout": str(settings.DATABASE_STATEMENT_TIMEOUT_MS),
        },
    }


def create_tenant_engine(database_name: str, settings: BaseServiceSettings) -> AsyncEngine:
    """
    Create a pooled async engine for one tenant database.

    The engine does not connect until first use. Pool sizing comes from the
    DATABASE_* settings; pre-ping discards connections the server has closed
    (e.g. after pg_terminate_backend).

    Args:
        database_name: Physical tenant database name.
        settings: Service settings.

    Returns:
        SQLAlchemy AsyncEngine with its own connection pool.
    """
    engine = create_async_engine(
        create_sqlalchemy_url(database_name, settings),
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_recycle=settings.DATABASE_POOL_RECYCLE,
        pool_pre_ping=True,
        echo=settings.DEBUG,
        connect_args=_connect_args(settings, settings.SERVICE_NAME),
    )
    logger.info(
        f"Created database engine for '{database_name}' with "
        f"pool_size={settings.DATABASE_POOL_SIZE}, max_overflow={settings.DATABASE_MAX_OVERFLOW}"
    )
    return engine


def create_bootstrap_engine(database_name: str, settings: BaseServiceSettings) -> AsyncEngine:
    """
    Create an unpooled async engine for schema bootstrap.

    NullPool closes each connection as soon as it is released, so nothing
    lingers against the tenant database after bootstrap finishes.
    """
    return create_async_engine(
        create_sqlalchemy_url(database_name, settings),
        poolclass=NullPool,
        echo=settings.DEBUG,
        connect_args=_connect_args(settings, f"{settings.SERVICE_NAME}-bootstrap"),
    )


def create_master_engine(settings: BaseServiceSettings) -> AsyncEngine:
    """
    Create the catalog engine used for database-level operations.

    CREATE DATABASE and DROP DATABASE cannot run inside a transaction block, so
    the engine runs in AUTOCOMMIT mode. The pool is small and fixed
    (MASTER_POOL_SIZE, no overflow) since catalog operations are infrequent.
    """
    engine = create_async_engine(
        create_sqlalchemy_url(settings.POSTGRES_MASTER_DATABASE, settings),
        isolation_level="AUTOCOMMIT",
        pool_size=max(settings.MASTER_POOL_SIZE, 1),
        max_overflow=0,
        pool_timeout=settings.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
        echo=settings.DEBUG,
        connect_args=_connect_args(settings, f"{settings.SERVICE_NAME}-catalog"),
    )
    logger.info(
        f"Created catalog engine for '{settings.POSTGRES_MASTER_DATABASE}' "
        f"with pool_size={max(settings.MASTER_POOL_SIZE, 1)}"
    )
    return engine
