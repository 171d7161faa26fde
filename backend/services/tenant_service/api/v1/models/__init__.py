"""
Tenant Service API v1 Models Package

Models:
    - CompanyCreateRequest: Provision request
    - CompanyDatabaseResponse: One company database
    - CompanyListResponse: Company database listing
    - CompanyProvisionResponse: Provision result
    - CompanyExistsResponse: Existence check result
    - CompanyStatsResponse: User counts by role
    - CompanyDeleteResponse: Deletion result
"""

from .companies import (
    CompanyCreateRequest,
    CompanyDatabaseResponse,
    CompanyDeleteResponse,
    CompanyExistsResponse,
    CompanyListResponse,
    CompanyProvisionResponse,
    CompanyStatsResponse,
)

__all__ = [
    "CompanyCreateRequest",
    "CompanyDatabaseResponse",
    "CompanyDeleteResponse",
    "CompanyExistsResponse",
    "CompanyListResponse",
    "CompanyProvisionResponse",
    "CompanyStatsResponse",
]
