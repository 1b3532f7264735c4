"""Append-only ledger of answer attempts."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from questlearn.core.clock import utcnow
from questlearn.models.base import Base


class AttemptSource(str, Enum):
    """Where an answer was submitted from."""
    PRACTICE = "practice"
    STAGE = "stage"
    EXPLORATION = "exploration"


class AttemptRecord(Base):
    """One submitted answer. Never updated or deleted once written."""

    __tablename__ = "attempt_records"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    question_id: Mapped[str] = mapped_column(String(100), index=True)
    subject: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    source: Mapped[str] = mapped_column(String(20), default=AttemptSource.PRACTICE.value)

    submitted_answer: Mapped[Any] = mapped_column(JSON, nullable=True)  # str or list[str]
    is_correct: Mapped[bool] = mapped_column(Boolean)
    time_spent_seconds: Mapped[int] = mapped_column(Integer, default=0)

    # What was actually credited for this attempt (after caps and boosts)
    exp_granted: Mapped[int] = mapped_column(Integer, default=0)
    gold_granted: Mapped[int] = mapped_column(Integer, default=0)

    # Set by the application (UTC) so "today" windows use one clock
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    __table_args__ = (
        Index("ix_attempt_player_created", "player_id", "created_at"),
        Index("ix_attempt_player_correct", "player_id", "is_correct"),
    )
