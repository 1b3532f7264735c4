"""Progress aggregator - current metric values per requirement kind."""

from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import start_of_today
from questlearn.models.achievement import RequirementKind
from questlearn.models.attempt import AttemptRecord
from questlearn.models.inventory import PlayerItem
from questlearn.models.player import Player, PlayerSubjectStat
from questlearn.services.attempt_ledger import AttemptLedger
from questlearn.services.exceptions import PlayerNotFoundError


@dataclass(frozen=True)
class ProgressScope:
    """Window a metric is computed over.

    ``since`` limits ledger-derived kinds to attempts at or after that moment
    (daily tasks pass the start of today). ``subject`` is only read by
    subject-scoped kinds.
    """
    since: datetime | None = None
    subject: str | None = None
    now: datetime | None = None


Metric = Callable[["ProgressAggregator", int, ProgressScope], Awaitable[int]]


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, halves rounded up. 0 when there is nothing to divide."""
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (2 * whole)


# =============================================================================
# METRICS
# =============================================================================

async def _questions_answered(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    return await agg.ledger.count_since(player_id, since=scope.since)


async def _correct_answers(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    return await agg.ledger.count_since(
        player_id, AttemptRecord.is_correct.is_(True), since=scope.since
    )


async def _correct_streak(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    return await agg.ledger.correct_streak(player_id, since=scope.since)


async def _exp_earned(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    return await agg.ledger.sum_since(player_id, AttemptRecord.exp_granted, since=scope.since)


async def _gold_earned(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    return await agg.ledger.sum_since(player_id, AttemptRecord.gold_granted, since=scope.since)


async def _daily_questions(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    # Always "today", whatever window the caller asked for
    return await agg.ledger.count_since(player_id, since=start_of_today(scope.now))


async def _level_reached(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    result = await agg.db.execute(select(Player.level).where(Player.id == player_id))
    level = result.scalar_one_or_none()
    if level is None:
        raise PlayerNotFoundError(player_id)
    return level


async def _items_purchased(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    result = await agg.db.execute(
        select(func.coalesce(func.sum(PlayerItem.quantity), 0)).where(
            PlayerItem.player_id == player_id
        )
    )
    return int(result.scalar() or 0)


async def _subject_mastery(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    if not scope.subject:
        return 0
    result = await agg.db.execute(
        select(PlayerSubjectStat.value).where(
            PlayerSubjectStat.player_id == player_id,
            PlayerSubjectStat.subject == scope.subject,
        )
    )
    return result.scalar_one_or_none() or 0


async def _perfect_answers(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    answered = await _questions_answered(agg, player_id, scope)
    if answered == 0:
        return 0
    correct = await _correct_answers(agg, player_id, scope)
    return 1 if correct == answered else 0


async def _unsupported(agg: "ProgressAggregator", player_id: int, scope: ProgressScope) -> int:
    """Kinds the catalog allows but nothing measures yet. Never satisfiable."""
    return 0


METRICS: dict[RequirementKind, Metric] = {
    RequirementKind.QUESTIONS_ANSWERED: _questions_answered,
    RequirementKind.CORRECT_ANSWERS: _correct_answers,
    RequirementKind.CORRECT_STREAK: _correct_streak,
    RequirementKind.LEVEL_REACHED: _level_reached,
    RequirementKind.EXP_EARNED: _exp_earned,
    RequirementKind.GOLD_EARNED: _gold_earned,
    RequirementKind.ITEMS_PURCHASED: _items_purchased,
    RequirementKind.DAILY_QUESTIONS: _daily_questions,
    RequirementKind.SUBJECT_MASTERY: _subject_mastery,
    RequirementKind.PERFECT_ANSWERS: _perfect_answers,
    RequirementKind.GOLD_SPENT: _unsupported,
    RequirementKind.LOGIN_DAYS: _unsupported,
    RequirementKind.PERFECT_SCORE: _unsupported,
    RequirementKind.SUBJECT_QUESTIONS: _unsupported,
}

UNSUPPORTED_KINDS = frozenset(kind for kind, metric in METRICS.items() if metric is _unsupported)


def ensure_exhaustive(metrics: dict[RequirementKind, Metric]) -> None:
    missing = set(RequirementKind) - set(metrics)
    if missing:
        raise RuntimeError(f"No metric registered for: {sorted(k.value for k in missing)}")


ensure_exhaustive(METRICS)


# =============================================================================
# AGGREGATOR
# =============================================================================

class ProgressAggregator:
    """Computes point-in-time metric snapshots from the ledger and player row.

    Snapshots are plain values - call again after any state change.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = AttemptLedger(db)

    async def value(
        self,
        player_id: int,
        kind: RequirementKind | str,
        scope: ProgressScope | None = None,
    ) -> int:
        kind = RequirementKind(kind)
        return await METRICS[kind](self, player_id, scope or ProgressScope())

    async def snapshot(
        self,
        player_id: int,
        kinds: Iterable[RequirementKind | str],
        since: datetime | None = None,
        subject: str | None = None,
        now: datetime | None = None,
    ) -> dict[RequirementKind, int]:
        scope = ProgressScope(since=since, subject=subject, now=now)
        return {
            RequirementKind(kind): await self.value(player_id, kind, scope)
            for kind in set(kinds)
        }
