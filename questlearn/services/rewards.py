"""Per-attempt reward amounts - difficulty defaults and active boost effects."""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import utcnow
from questlearn.models.inventory import ActiveEffect, EffectType

# Used when the question carries no positive base reward of its own
EXP_BY_DIFFICULTY = {"easy": 10, "medium": 20, "hard": 30}
GOLD_BY_DIFFICULTY = {"easy": 5, "medium": 10, "hard": 15}
DEFAULT_EXP = 10
DEFAULT_GOLD = 5


def base_rewards(
    is_correct: bool,
    difficulty: str | None = None,
    base_exp: int | None = None,
    base_gold: int | None = None,
) -> tuple[int, int]:
    """(exp, gold) a single answer is worth before limits and boosts."""
    if not is_correct:
        return 0, 0
    exp = base_exp if base_exp and base_exp > 0 else EXP_BY_DIFFICULTY.get(difficulty, DEFAULT_EXP)
    gold = base_gold if base_gold and base_gold > 0 else GOLD_BY_DIFFICULTY.get(difficulty, DEFAULT_GOLD)
    return exp, gold


async def apply_active_boosts(
    db: AsyncSession,
    player_id: int,
    exp: int,
    gold: int,
    now: datetime | None = None,
) -> tuple[int, int]:
    """Multiply by each unexpired exp/gold boost, flooring after every step."""
    result = await db.execute(
        select(ActiveEffect.effect_type, ActiveEffect.value)
        .where(
            ActiveEffect.player_id == player_id,
            ActiveEffect.expires_at > (now or utcnow()),
            ActiveEffect.effect_type.in_([EffectType.EXP_BOOST.value, EffectType.GOLD_BOOST.value]),
        )
        .order_by(ActiveEffect.id)
    )
    for effect_type, value in result.all():
        if effect_type == EffectType.EXP_BOOST.value:
            exp = int(exp * value)
        else:
            gold = int(gold * value)
    return exp, gold
