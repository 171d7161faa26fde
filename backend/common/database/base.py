"""
Base declarative class for all tenant ORM models.

Every table declared on this base lives inside a tenant database. The schema
bootstrapper creates exactly the tables registered on Base.metadata, in foreign
key dependency order, so adding a model here is how a table becomes part of every
tenant's schema.

Features:
    - Automatic timestamp tracking (created_at, updated_at)
    - Automatic table name generation from class name
    - Timezone-aware timestamps with server-side defaults

Usage:
    ```python
    from common.database.base import Base
    from sqlalchemy.orm import Mapped, mapped_column
    from sqlalchemy import Integer, String

    class CallScript(Base):
        __tablename__ = "call_scripts"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        title: Mapped[str] = mapped_column(String(255))
    ```
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, text
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(DeclarativeBase):
    """
    Base declarative class for tenant ORM models.

    Attributes:
        created_at (Mapped[datetime]): Timestamp when the record was created.
            Automatically set by the database server using NOW().
        updated_at (Mapped[datetime]): Timestamp when the record was last updated.
            Automatically set by the database server using NOW().

    Note:
        - Models that declare no __tablename__ get the lowercase class name
        - Timestamps are timezone-aware (TIMESTAMP WITH TIME ZONE)
    """

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return cls.__name__.lower()
