"""Leveling ledger - the single write path for a player's exp, gold and level."""

import logging
from dataclasses import dataclass
from fractions import Fraction

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.models.player import Player
from questlearn.services.exceptions import PlayerNotFoundError

logger = logging.getLogger(__name__)


# =============================================================================
# LEVEL CALCULATIONS
# =============================================================================

# Threshold multiplier per level-up. Kept exact so floor(threshold * 1.2)
# never drifts on float rounding.
LEVEL_GROWTH = Fraction(6, 5)


def next_threshold(exp_to_next_level: int) -> int:
    """Exp needed for the level after this one."""
    return int(exp_to_next_level * LEVEL_GROWTH)


def apply_level_ups(level: int, exp: int, exp_to_next_level: int) -> tuple[int, int, int]:
    """
    Normalize (level, exp, threshold) so that exp < threshold.
    Returns (level, exp, exp_to_next_level). Handles several level-ups at once.
    """
    if exp_to_next_level <= 0:
        raise ValueError("exp_to_next_level must be positive")
    while exp >= exp_to_next_level:
        exp -= exp_to_next_level
        level += 1
        exp_to_next_level = next_threshold(exp_to_next_level)
    return level, exp, exp_to_next_level


@dataclass(frozen=True)
class GrantResult:
    new_level: int
    new_exp: int
    new_gold: int
    exp_to_next_level: int
    leveled_up: bool


# =============================================================================
# LEVELING LEDGER
# =============================================================================

class LevelingLedger:
    """Applies exp/gold deltas without read-modify-write of the player row.

    The deltas land as one atomic increment. Level-ups are then written with
    a compare-and-swap guarded on the values just observed, so two grants
    racing on the same player both count and neither level-up is lost.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def grant(self, player_id: int, exp_delta: int = 0, gold_delta: int = 0) -> GrantResult:
        """Add exp and gold, then apply any level-ups the new exp allows.

        leveled_up is True only when this call wrote the level-up. If a
        concurrent grant already moved the row to a higher level, the result
        carries that level with leveled_up False.
        """
        if exp_delta < 0 or gold_delta < 0:
            raise ValueError("exp and gold deltas must be non-negative")

        result = await self.db.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(exp=Player.exp + exp_delta, gold=Player.gold + gold_delta)
            .returning(Player.level, Player.exp, Player.exp_to_next_level, Player.gold)
            .execution_options(synchronize_session=False)
        )
        row = result.one_or_none()
        if row is None:
            raise PlayerNotFoundError(player_id)

        level, exp, threshold, gold = row.level, row.exp, row.exp_to_next_level, row.gold
        level_before = None

        while exp >= threshold:
            new_level, new_exp, new_threshold = apply_level_ups(level, exp, threshold)
            result = await self.db.execute(
                update(Player)
                .where(
                    Player.id == player_id,
                    Player.level == level,
                    Player.exp == exp,
                    Player.exp_to_next_level == threshold,
                )
                .values(level=new_level, exp=new_exp, exp_to_next_level=new_threshold)
                .returning(Player.gold)
                .execution_options(synchronize_session=False)
            )
            swapped = result.one_or_none()
            if swapped is not None:
                level_before = level
                level, exp, threshold, gold = new_level, new_exp, new_threshold, swapped.gold
                break

            # Another grant touched the row in between - re-read and retry
            logger.debug(f"Level-up CAS lost for player {player_id}, retrying")
            current = await self.db.execute(
                select(Player.level, Player.exp, Player.exp_to_next_level, Player.gold)
                .where(Player.id == player_id)
            )
            latest = current.one()
            level, exp, threshold, gold = (
                latest.level, latest.exp, latest.exp_to_next_level, latest.gold
            )

        leveled_up = level_before is not None
        if leveled_up:
            logger.info(f"Player {player_id} leveled up: {level_before} -> {level}")

        return GrantResult(
            new_level=level,
            new_exp=exp,
            new_gold=gold,
            exp_to_next_level=threshold,
            leveled_up=leveled_up,
        )
