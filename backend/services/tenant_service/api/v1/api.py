"""
API Router Aggregation for Tenant Service v1

The v1 API provides the following endpoint groups:
    - Companies: company database lifecycle
        - GET /companies: List company databases (admin)
        - POST /companies: Provision a company database
        - GET /companies/{company_name}/exists: Check existence
        - GET /companies/{company_name}/stats: User counts by role
        - DELETE /companies/{company_name}: Drop a company database (admin)

Example:
    ```python
    from services.tenant_service.api.v1.api import api_router

    app.include_router(api_router, prefix="/api/v1")
    ```
"""

from fastapi import APIRouter

from services.tenant_service.api.v1.endpoints import companies

api_router = APIRouter()

api_router.include_router(companies.router, prefix="/companies", tags=["companies"])
