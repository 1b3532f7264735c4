"""Inventory tables owned by the shop/inventory subsystem.

The progression engine only reads these: item totals for the
``items_purchased`` requirement and boost effects at reward time.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from questlearn.models.base import Base


class EffectType(str, Enum):
    EXP_BOOST = "exp_boost"
    GOLD_BOOST = "gold_boost"
    SHIELD = "shield"
    TIME_EXTEND = "time_extend"


class PlayerItem(Base):
    __tablename__ = "player_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    item_id: Mapped[str] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, default=1)


class ActiveEffect(Base):
    """Temporary multiplier with an expiry; lifecycle managed elsewhere."""

    __tablename__ = "active_effects"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(
        ForeignKey("players.id", ondelete="CASCADE"),
        index=True,
    )
    item_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    effect_type: Mapped[str] = mapped_column(String(50))
    value: Mapped[float] = mapped_column(Float)  # e.g. 1.5 for +50%
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("ix_active_effect_lookup", "player_id", "effect_type", "expires_at"),
    )
