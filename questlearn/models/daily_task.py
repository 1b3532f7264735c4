"""Daily task catalog and per-day player task instances."""

from datetime import date, datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlearn.models.base import Base


class TaskDifficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class DailyTaskDefinition(Base):
    """Catalog entry - authored by admins, read-only to the engine."""

    __tablename__ = "daily_task_definitions"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True)  # e.g., "DAILY_Q3"
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(50), default="📋")

    requirement_kind: Mapped[str] = mapped_column(String(50))
    target_value: Mapped[int] = mapped_column(Integer)  # >= 1
    target_subject: Mapped[str | None] = mapped_column(String(50), nullable=True)

    exp_reward: Mapped[int] = mapped_column(Integer, default=0)
    gold_reward: Mapped[int] = mapped_column(Integer, default=0)
    difficulty: Mapped[str] = mapped_column(String(20), default=TaskDifficulty.EASY.value)

    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        Index("ix_daily_task_active_order", "is_active", "sort_order"),
    )


class PlayerDailyTask(Base):
    """One task instance per (player, task, calendar day).

    State moves pending -> completed -> claimed and never back.
    """

    __tablename__ = "player_daily_tasks"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    task_id: Mapped[int] = mapped_column(
        ForeignKey("daily_task_definitions.id", ondelete="CASCADE"),
    )
    task_date: Mapped[date] = mapped_column(Date)  # Calendar day in the reference timezone

    progress: Mapped[int] = mapped_column(Integer, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False)
    is_claimed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    task: Mapped["DailyTaskDefinition"] = relationship("DailyTaskDefinition")

    __table_args__ = (
        UniqueConstraint("player_id", "task_id", "task_date", name="uq_player_daily_task"),
        Index("ix_player_daily_task_day", "player_id", "task_date"),
    )
