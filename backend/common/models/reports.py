"""
Report models - department reports and uploaded files.

Both reference the uploading account (user_auth.id), not an employee profile,
since managers upload reports.
"""
from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from common.database.base import Base


class DepartmentReport(Base):
    __tablename__ = "department_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    created_by: Mapped[Optional[int]] = mapped_column(ForeignKey("user_auth.id", ondelete="SET NULL"))

    __table_args__ = (
        Index("ix_department_reports_created_by", "created_by"),
    )


class UploadedFile(Base):
    __tablename__ = "uploaded_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_url: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_by: Mapped[Optional[int]] = mapped_column(ForeignKey("user_auth.id", ondelete="SET NULL"))

    __table_args__ = (
        Index("ix_uploaded_files_uploaded_by", "uploaded_by"),
    )
