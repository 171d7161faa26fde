"""
Company API Request/Response Models

Models follow a consistent naming pattern:
    - Request models: Company{Action}Request
    - Response models: Company{Thing}Response

company_name in responses is always the canonical tenant key, so two display
names that map to the same company are visibly the same company.

Example:
    ```python
    from services.tenant_service.api.v1.models import CompanyCreateRequest

    request = CompanyCreateRequest(company_name="Acme Corp")
    ```
"""

from typing import Optional

from pydantic import BaseModel, Field


class CompanyCreateRequest(BaseModel):
    """
    Request model for provisioning a company database.

    Attributes:
        company_name (str): Company display name, e.g. "Acme Corp". Canonicalized
            server side to "acme_corp".
    """

    company_name: str = Field(..., description="Company display name", min_length=1, max_length=200)


class CompanyDatabaseResponse(BaseModel):
    company_name: str = Field(..., description="Canonical company key")
    database_name: str = Field(..., description="Physical database name")
    exists: bool = Field(True, description="Whether the database exists")
    size_on_disk: Optional[int] = Field(None, description="Database size in bytes")


class CompanyListResponse(BaseModel):
    companies: list[CompanyDatabaseResponse] = Field(default_factory=list)
    total: int = 0


class CompanyProvisionResponse(BaseModel):
    """
    Response model for provisioning a company database.

    Attributes:
        success (bool): Always True; failures are rendered as error responses.
        message (str): Human-readable status message.
        company_name (str): Canonical company key.
        database_name (str): Physical database name, e.g. "logos_ai_acme_corp".
    """

    success: bool = True
    message: str
    company_name: str
    database_name: str


class CompanyExistsResponse(BaseModel):
    company_name: str
    database_name: str
    exists: bool


class CompanyStatsResponse(BaseModel):
    company_name: str
    database_name: str
    total_users: int = 0
    employees: int = 0
    managers: int = 0


class CompanyDeleteResponse(BaseModel):
    success: bool = True
    message: str
    company_name: str
    database_name: str
