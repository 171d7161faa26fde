"""
Common database utilities for the tenant database lifecycle.

This module provides the database layer shared by the tenant service and the
admin tooling: naming, engine construction, schema bootstrap, provisioning,
connection pooling and shutdown.

Key Features:
    - One physical PostgreSQL database per company (database-level isolation)
    - Lazy, idempotent provisioning with concurrency safety
    - At most one connection pool per tenant
    - Deterministic shutdown of every pool and the master connection

Architecture:
    Each tenant has a dedicated PostgreSQL database named
    {TENANT_DATABASE_PREFIX}_{canonical_key}, e.g. logos_ai_acme_corp. The
    server catalog is the tenant registry; there is no separate tenant table.

Main Components:
    - Base: SQLAlchemy declarative base class for all tenant ORM models
    - tenant_naming: Company name canonicalization and database naming
    - session: Engine factories (master, tenant pool, bootstrap)
    - tenant_schema: Idempotent schema bootstrap
    - tenant_pools: Per-tenant connection pool registry
    - tenant_provisioning: Catalog operations and the provisioner
    - lifecycle: TenantDatabaseManager, the composition root

Usage:
    ```python
    from common.database import TenantDatabaseManager, canonicalize_tenant_name

    canonicalize_tenant_name("Acme Corp!")
    # Returns: "acme_corp"

    manager = TenantDatabaseManager.from_settings(settings)
    database_name = await manager.ensure("Acme Corp")
    # Returns: "logos_ai_acme_corp"
    ```
"""

from .base import Base
from .lifecycle import TenantDatabaseManager
from .session import (
    create_bootstrap_engine,
    create_master_engine,
    create_sqlalchemy_url,
    create_tenant_engine,
)
from .tenant_naming import (
    canonicalize_tenant_name,
    get_tenant_database_name,
    get_tenant_key_from_database_name,
    validate_tenant_name,
)
from .tenant_pools import TenantPoolRegistry
from .tenant_provisioning import (
    TenantCatalog,
    TenantDatabaseRecord,
    TenantProvisioner,
)
from .tenant_schema import SchemaBootstrapper, build_schema_statements

__all__ = [
    # Base
    "Base",
    # Naming
    "canonicalize_tenant_name",
    "get_tenant_database_name",
    "get_tenant_key_from_database_name",
    "validate_tenant_name",
    # Engines
    "create_bootstrap_engine",
    "create_master_engine",
    "create_sqlalchemy_url",
    "create_tenant_engine",
    # Lifecycle
    "SchemaBootstrapper",
    "TenantCatalog",
    "TenantDatabaseManager",
    "TenantDatabaseRecord",
    "TenantPoolRegistry",
    "TenantProvisioner",
    "build_schema_statements",
]
