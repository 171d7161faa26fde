"""
Tenant Service Package

This package provides the Tenant Service: the HTTP surface of the tenant
database lifecycle (list, provision, inspect and delete company databases).

The package structure:
    - main.py: FastAPI application entrypoint
    - api/: API layer with dependencies, endpoints and models

Usage:
    ```python
    from services.tenant_service import app

    # Run with uvicorn
    # uvicorn services.tenant_service:app --port 8004
    ```

Exports:
    app: FastAPI application instance configured for the tenant service
"""

from services.tenant_service.main import app

__all__ = ["app"]
