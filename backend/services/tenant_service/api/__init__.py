"""
Tenant Service API Package

Package Structure:
    - dependencies.py: Request-scoped dependencies (manager, principal, tenant context)
    - v1/: Version 1 API implementation
        - api.py: Router aggregation
        - endpoints/: API endpoint handlers
        - models/: Pydantic request/response models
"""
