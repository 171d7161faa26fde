"""
Tenant Service - FastAPI Application Entrypoint

This module is the entry point of the Tenant Service, the microservice that
exposes the company database lifecycle over HTTP: listing, provisioning,
inspecting and deleting per-company PostgreSQL databases.

Lifecycle:
    On startup the lifespan builds one TenantDatabaseManager (master engine,
    pool registry, provisioner) and one TenantAccessGuard and stores them on
    app.state. On shutdown it closes every tenant pool and then the master
    connection before the process exits.

Example:
    To run the service locally:
        ```bash
        uv run uvicorn services.tenant_service:app --port 8004 --reload
        ```

    The service will be available at:
        - API Base: http://localhost:8004/api/v1/companies
        - Swagger UI: http://localhost:8004/docs
        - Health Check: http://localhost:8004/health
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from common.config import get_settings
from common.config.settings import TenantServiceSettings
from common.database import TenantDatabaseManager
from common.fastapi import create_fastapi_app
from common.security import TenantAccessGuard
from services.tenant_service.api.v1.api import api_router

SERVICE_NAME = "tenant-service"


def create_app(
    manager: TenantDatabaseManager | None = None,
    settings: TenantServiceSettings | None = None,
) -> FastAPI:
    """
    Create the tenant service application.

    Args:
        manager: Optional prebuilt manager. Built from settings at startup when
            omitted. The application shuts it down either way.
        settings: Optional settings. Loaded from the environment when omitted.
    """
    if settings is None:
        settings = get_settings(SERVICE_NAME)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        tenant_manager = manager or TenantDatabaseManager.from_settings(settings)
        app.state.tenant_manager = tenant_manager
        app.state.tenant_guard = TenantAccessGuard(tenant_manager.provisioner)
        logger.info(f"{settings.SERVICE_NAME} started")
        try:
            yield
        finally:
            await tenant_manager.shutdown()
            logger.info(f"{settings.SERVICE_NAME} stopped")

    # The root_path="/tenants" ensures proper routing when behind Nginx reverse proxy
    # In development (ENVIRONMENT=DEV), root_path is automatically set to ""
    return create_fastapi_app(
        service_name=SERVICE_NAME,
        description="Company database lifecycle service for the call-center analytics platform",
        api_router=api_router,
        root_path="/tenants",
        lifespan=lifespan,
        settings=settings,
    )


app = create_app()
