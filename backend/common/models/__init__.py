"""
Tenant ORM models.

This module provides the SQLAlchemy ORM models of the tables that live inside
every tenant database. Importing this package registers all of them on
common.database.base.Base.metadata, which is the schema the bootstrapper applies.

Models:
    - Users: UserAuth, Employee, VerificationCode
    - Calls: Dialogue, CallQuality, CallTraining
    - Analytics: EmployeeStats, DepartmentAnalytics, OverallData
    - Reports: DepartmentReport, UploadedFile
    - Schema marker: TenantSchemaInfo

All models inherit from common.database.base.Base, which provides:
- Automatic created_at and updated_at timestamps
- Automatic table name generation

Usage:
    ```python
    from sqlalchemy import select
    from common.models import UserAuth

    async with manager.connect("Acme Corp") as connection:
        result = await connection.execute(select(UserAuth).where(UserAuth.role == "manager"))
        managers = result.fetchall()
    ```
"""

from .analytics import DepartmentAnalytics, EmployeeStats, OverallData
from .calls import CallQuality, CallTraining, Dialogue
from .reports import DepartmentReport, UploadedFile
from .tenants import TENANT_SCHEMA_VERSION, TenantSchemaInfo
from .users import Employee, UserAuth, VerificationCode

__all__ = [
    "TENANT_SCHEMA_VERSION",
    "CallQuality",
    "CallTraining",
    "DepartmentAnalytics",
    "DepartmentReport",
    "Dialogue",
    "Employee",
    "EmployeeStats",
    "OverallData",
    "TenantSchemaInfo",
    "UploadedFile",
    "UserAuth",
    "VerificationCode",
]
