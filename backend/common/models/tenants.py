"""
Tenant schema marker - records which schema version a tenant database carries.

The bootstrapper writes this row last, in the same transaction as the DDL, so its
presence means the whole schema was applied.
"""
from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from common.database.base import Base

TENANT_SCHEMA_VERSION = "1"


class TenantSchemaInfo(Base):
    __tablename__ = "tenant_schema_info"

    schema_version: Mapped[str] = mapped_column(String(20), primary_key=True)
    tenant_key: Mapped[str] = mapped_column(String(100), nullable=False)
