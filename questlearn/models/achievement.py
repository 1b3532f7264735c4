"""Achievement catalog and per-player unlock records."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from questlearn.core.clock import utcnow
from questlearn.models.base import Base

if TYPE_CHECKING:
    from questlearn.models.player import Player


class RequirementKind(str, Enum):
    """Measurable player progress shared by achievements and daily tasks."""
    QUESTIONS_ANSWERED = "questions_answered"
    CORRECT_ANSWERS = "correct_answers"
    CORRECT_STREAK = "correct_streak"
    LEVEL_REACHED = "level_reached"
    EXP_EARNED = "exp_earned"
    GOLD_EARNED = "gold_earned"
    GOLD_SPENT = "gold_spent"
    ITEMS_PURCHASED = "items_purchased"
    LOGIN_DAYS = "login_days"
    DAILY_QUESTIONS = "daily_questions"
    SUBJECT_MASTERY = "subject_mastery"
    PERFECT_SCORE = "perfect_score"
    SUBJECT_QUESTIONS = "subject_questions"
    PERFECT_ANSWERS = "perfect_answers"


class AchievementCategory(str, Enum):
    """Achievement categories."""
    LEARNING = "learning"
    ADVENTURE = "adventure"
    SOCIAL = "social"
    SPECIAL = "special"


class AchievementRarity(str, Enum):
    """Achievement rarity levels."""
    COMMON = "common"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"


class AchievementDefinition(Base):
    """Catalog entry - authored by admins, read-only to the engine."""

    __tablename__ = "achievement_definitions"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(String(100), unique=True)  # e.g., "CORRECT_STREAK_10"
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(50), default="🏆")
    # Use String to avoid PostgreSQL enum mapping issues - values validated at app layer
    category: Mapped[str] = mapped_column(String(50), default=AchievementCategory.LEARNING.value)
    rarity: Mapped[str] = mapped_column(String(50), default=AchievementRarity.COMMON.value)

    requirement_kind: Mapped[str] = mapped_column(String(50))
    requirement_value: Mapped[int] = mapped_column(Integer)  # Threshold, >= 1
    requirement_subject: Mapped[str | None] = mapped_column(String(50), nullable=True)

    exp_reward: Mapped[int] = mapped_column(Integer, default=0)
    gold_reward: Mapped[int] = mapped_column(Integer, default=0)

    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_hidden: Mapped[bool] = mapped_column(Boolean, default=False)  # Display only

    unlocks: Mapped[list["PlayerAchievement"]] = relationship(
        "PlayerAchievement",
        back_populates="achievement",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_achievement_kind_active", "requirement_kind", "is_active"),
        Index("ix_achievement_category", "category", "sort_order"),
    )


class PlayerAchievement(Base):
    """A permanent unlock. At most one row per (player, achievement)."""

    __tablename__ = "player_achievements"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    achievement_id: Mapped[int] = mapped_column(
        ForeignKey("achievement_definitions.id", ondelete="CASCADE"),
        index=True,
    )
    progress: Mapped[int] = mapped_column(Integer, default=0)  # Value observed at unlock
    is_new: Mapped[bool] = mapped_column(Boolean, default=True)  # Not yet seen by the player
    unlocked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )

    player: Mapped["Player"] = relationship("Player", back_populates="achievements")
    achievement: Mapped["AchievementDefinition"] = relationship(
        "AchievementDefinition",
        back_populates="unlocks",
    )

    __table_args__ = (
        UniqueConstraint("player_id", "achievement_id", name="uq_player_achievement"),
        Index("ix_player_achievement_new", "player_id", "is_new"),
    )
