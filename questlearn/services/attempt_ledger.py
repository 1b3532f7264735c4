"""Attempt ledger - append-only record of answer attempts."""

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import utcnow
from questlearn.models.attempt import AttemptRecord, AttemptSource


class AttemptLedger:
    """Writes and scans a player's attempt history.

    The ledger is the source of truth for every derived progress value, so
    nothing here updates or deletes rows.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def record(
        self,
        player_id: int,
        question_id: str,
        is_correct: bool,
        time_spent_seconds: int = 0,
        exp_granted: int = 0,
        gold_granted: int = 0,
        submitted_answer: Any = None,
        subject: str | None = None,
        source: str = AttemptSource.PRACTICE.value,
        created_at: datetime | None = None,
    ) -> AttemptRecord:
        attempt = AttemptRecord(
            player_id=player_id,
            question_id=str(question_id),
            subject=subject,
            source=source,
            submitted_answer=submitted_answer,
            is_correct=is_correct,
            time_spent_seconds=time_spent_seconds,
            exp_granted=exp_granted,
            gold_granted=gold_granted,
            created_at=created_at or utcnow(),
        )
        self.db.add(attempt)
        await self.db.flush()
        return attempt

    def _window(self, player_id: int, since: datetime | None) -> list[ColumnElement[bool]]:
        criteria = [AttemptRecord.player_id == player_id]
        if since is not None:
            criteria.append(AttemptRecord.created_at >= since)
        return criteria

    async def count_since(
        self,
        player_id: int,
        *predicates: ColumnElement[bool],
        since: datetime | None = None,
    ) -> int:
        """Count attempts matching all predicates, optionally from ``since`` on."""
        result = await self.db.execute(
            select(func.count(AttemptRecord.id)).where(
                *self._window(player_id, since), *predicates
            )
        )
        return int(result.scalar() or 0)

    async def sum_since(
        self,
        player_id: int,
        column: Any,
        since: datetime | None = None,
    ) -> int:
        result = await self.db.execute(
            select(func.coalesce(func.sum(column), 0)).where(*self._window(player_id, since))
        )
        return int(result.scalar() or 0)

    async def recent_by(
        self,
        player_id: int,
        limit: int,
        offset: int = 0,
        since: datetime | None = None,
    ) -> Sequence[AttemptRecord]:
        """Attempts newest first. Ties on timestamp fall back to insertion order."""
        result = await self.db.execute(
            select(AttemptRecord)
            .where(*self._window(player_id, since))
            .order_by(AttemptRecord.created_at.desc(), AttemptRecord.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return result.scalars().all()

    async def correct_streak(
        self,
        player_id: int,
        since: datetime | None = None,
        page_size: int = 100,
    ) -> int:
        """Consecutive correct attempts counting back from the newest one."""
        streak = 0
        offset = 0
        while True:
            page = await self.recent_by(player_id, page_size, offset=offset, since=since)
            for attempt in page:
                if not attempt.is_correct:
                    return streak
                streak += 1
            if len(page) < page_size:
                return streak
            offset += page_size
