"""Player progression state - level, exp, gold, daily practice counters."""

from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlearn.core.config import settings
from questlearn.models.base import Base

if TYPE_CHECKING:
    from questlearn.models.achievement import PlayerAchievement

DEFAULT_SUBJECT_STAT = 50
MAX_SUBJECT_STAT = 100


class Player(Base):
    """A student account's progression record.

    Numeric progression fields are only ever changed through guarded or
    incremental UPDATE statements issued by the engine services.
    """

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Leveling
    level: Mapped[int] = mapped_column(Integer, default=1)
    exp: Mapped[int] = mapped_column(Integer, default=0)  # Exp into the current level
    exp_to_next_level: Mapped[int] = mapped_column(
        Integer,
        default=lambda: settings.base_exp_to_next_level,
    )
    gold: Mapped[int] = mapped_column(Integer, default=0)

    # Lifetime stats
    total_questions_answered: Mapped[int] = mapped_column(Integer, default=0)
    correct_rate: Mapped[float] = mapped_column(Float, default=0)  # 0-100

    # Daily practice reward cap (ordinary practice source only)
    daily_practice_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    daily_questions_answered: Mapped[int] = mapped_column(Integer, default=0)
    daily_rewarded_questions: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    subject_stats: Mapped[list["PlayerSubjectStat"]] = relationship(
        "PlayerSubjectStat",
        back_populates="player",
        cascade="all, delete-orphan",
    )
    achievements: Mapped[list["PlayerAchievement"]] = relationship(
        "PlayerAchievement",
        back_populates="player",
        cascade="all, delete-orphan",
    )


class PlayerSubjectStat(Base):
    """Per-subject mastery stat (0-100), one row per (player, subject)."""

    __tablename__ = "player_subject_stats"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    subject: Mapped[str] = mapped_column(String(50))
    value: Mapped[int] = mapped_column(Integer, default=DEFAULT_SUBJECT_STAT)

    player: Mapped["Player"] = relationship("Player", back_populates="subject_stats")

    __table_args__ = (
        UniqueConstraint("player_id", "subject", name="uq_player_subject_stat"),
    )
