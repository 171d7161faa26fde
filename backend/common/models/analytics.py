"""
Analytics models - per-employee performance and department-level aggregates.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, Date, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from common.database.base import Base


class EmployeeStats(Base):
    __tablename__ = "employee_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    stat_date: Mapped[Optional[date]] = mapped_column("date", Date)
    rating: Mapped[Optional[float]] = mapped_column(Numeric(4, 2))
    calls: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    deals: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    plan: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    error: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    avg_call_duration_minutes: Mapped[Optional[float]] = mapped_column(Numeric(6, 2))
    script_compliance_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    key_phrases_used: Mapped[Optional[int]] = mapped_column(Integer)
    forbidden_phrases_count: Mapped[Optional[int]] = mapped_column(Integer)
    stages_completed: Mapped[Optional[int]] = mapped_column(Integer)
    total_stages: Mapped[Optional[int]] = mapped_column(Integer)
    success_rate_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))

    __table_args__ = (
        Index("ix_employee_stats_user_id_date", "user_id", "date"),
    )


class DepartmentAnalytics(Base):
    __tablename__ = "department_analytics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    report_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    total_calls: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    successful_calls: Mapped[int] = mapped_column(Integer, server_default=text("0"))
    call_duration_seconds: Mapped[int] = mapped_column(Integer, server_default=text("0"))

    __table_args__ = (
        Index("ix_department_analytics_date", "date"),
    )


class OverallData(Base):
    """Graded training task submissions."""

    __tablename__ = "overall_data"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    task_name: Mapped[Optional[str]] = mapped_column(String(255))
    grade: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    report: Mapped[Optional[str]] = mapped_column(Text)
    submitted_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )
