"""
Call models - recorded dialogues, call quality scores and training cases.

All call-level rows reference employees.id; deleting an employee removes their
call history.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from sqlalchemy import TIMESTAMP, Date, ForeignKey, Index, Integer, Numeric, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from common.database.base import Base


class Dialogue(Base):
    __tablename__ = "dialogues"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    task_name: Mapped[Optional[str]] = mapped_column(String(255))
    full_dialogue: Mapped[Optional[str]] = mapped_column(Text)
    audio_file_url: Mapped[Optional[str]] = mapped_column(String(500))
    recorded_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=text("NOW()")
    )

    __table_args__ = (
        Index("ix_dialogues_user_id_recorded_at", "user_id", "recorded_at"),
    )


class CallQuality(Base):
    __tablename__ = "call_quality"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    call_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    call_id: Mapped[Optional[str]] = mapped_column(String(100))
    script_compliance_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    stages_completed: Mapped[Optional[int]] = mapped_column(Integer)
    total_stages: Mapped[Optional[int]] = mapped_column(Integer)
    key_phrases_used: Mapped[Optional[int]] = mapped_column(Integer)
    forbidden_phrases_count: Mapped[Optional[int]] = mapped_column(Integer)
    forbidden_phrases_list: Mapped[Optional[list]] = mapped_column(JSONB)
    client_speech_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2))
    emotional_tone: Mapped[Optional[str]] = mapped_column(String(50))
    interest_phrases: Mapped[Optional[list]] = mapped_column(JSONB)
    rejection_phrases: Mapped[Optional[list]] = mapped_column(JSONB)

    __table_args__ = (
        Index("ix_call_quality_user_id_date", "user_id", "date"),
    )


class CallTraining(Base):
    __tablename__ = "call_training"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    length: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("0"))
    recommendations: Mapped[Optional[str]] = mapped_column(Text)

    __table_args__ = (
        Index("ix_call_training_user_id", "user_id"),
    )
