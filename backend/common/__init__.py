"""
Common utilities and shared code for the call-center analytics backend.

This package provides the tenant database lifecycle shared by the tenant
service and the admin tooling. It includes:

Modules:
    - config: Centralized configuration management with environment-based settings
    - database: Tenant naming, provisioning, schema bootstrap, pooling and shutdown
    - exceptions: Tenant error taxonomy and API error responses
    - fastapi: FastAPI application factory with common middleware and configuration
    - logging: Centralized logging configuration using loguru
    - models: SQLAlchemy ORM models of the tables inside every tenant database
    - security: Authentication (JWT, service API keys) and the tenant access guard

Tenant Isolation:
    Every company has a dedicated PostgreSQL database, created lazily on the
    first legitimate access. A principal may only act on its own company's
    database; admins may act on any.

Usage:
    ```python
    from common.config import get_settings
    from common.database import TenantDatabaseManager
    from common.logging import setup_logging
    from common.security import TenantAccessGuard
    ```

Version:
    Current version: 0.1.0
"""

__version__ = "0.1.0"
