"""Attempt submission - ties the ledger, limiter, leveling, achievements and tasks together."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import case, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import local_date, utcnow
from questlearn.core.config import settings
from questlearn.models.achievement import RequirementKind
from questlearn.models.attempt import AttemptRecord, AttemptSource
from questlearn.models.player import (
    DEFAULT_SUBJECT_STAT,
    MAX_SUBJECT_STAT,
    Player,
    PlayerSubjectStat,
)
from questlearn.services.achievements import AchievementService
from questlearn.services.attempt_ledger import AttemptLedger
from questlearn.services.daily_practice import DailyPracticeLimiter, PracticeStatus
from questlearn.services.daily_tasks import DailyTaskService
from questlearn.services.exceptions import PlayerNotFoundError
from questlearn.services.leveling import LevelingLedger
from questlearn.services.progress import percent
from questlearn.services.rewards import apply_active_boosts, base_rewards

logger = logging.getLogger(__name__)

SUBJECT_STAT_STEP = 2


@dataclass
class AttemptSubmission:
    """One graded answer handed over by the question-answering flow."""
    question_id: str
    is_correct: bool
    subject: str | None = None
    difficulty: str | None = None
    base_exp: int | None = None
    base_gold: int | None = None
    time_spent_seconds: int = 0
    source: str = AttemptSource.PRACTICE.value
    submitted_answer: Any = None


def triggered_kinds(is_correct: bool, leveled_up: bool, subject_moved: bool) -> set[RequirementKind]:
    """Requirement kinds an attempt can have changed."""
    kinds = {RequirementKind.QUESTIONS_ANSWERED, RequirementKind.DAILY_QUESTIONS}
    if is_correct:
        kinds |= {
            RequirementKind.CORRECT_ANSWERS,
            RequirementKind.CORRECT_STREAK,
            RequirementKind.EXP_EARNED,
            RequirementKind.GOLD_EARNED,
        }
    if leveled_up:
        kinds.add(RequirementKind.LEVEL_REACHED)
    if subject_moved:
        kinds.add(RequirementKind.SUBJECT_MASTERY)
    return kinds


class ProgressionService:
    """Entry point for answer submissions and player progress reads."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = AttemptLedger(db)
        self.leveling = LevelingLedger(db)
        self.limiter = DailyPracticeLimiter(db)
        self.achievements = AchievementService(db)
        self.daily_tasks = DailyTaskService(db)

    async def _require_player(self, player_id: int) -> None:
        result = await self.db.execute(select(Player.id).where(Player.id == player_id))
        if result.scalar_one_or_none() is None:
            raise PlayerNotFoundError(player_id)

    async def submit_attempt(
        self,
        player_id: int,
        submission: AttemptSubmission,
        now: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Record one answer and apply everything that follows from it.
        Runs inside the caller's transaction; the caller commits.
        """
        now = now or utcnow()
        await self._require_player(player_id)

        # Daily cap applies to ordinary practice only
        practice: PracticeStatus | None = None
        if submission.source == AttemptSource.PRACTICE.value:
            practice = await self.limiter.check_and_advance(player_id, submission.is_correct, now=now)
        rewards_limited = practice is not None and not practice.can_earn_rewards

        exp, gold = base_rewards(
            submission.is_correct,
            submission.difficulty,
            submission.base_exp,
            submission.base_gold,
        )
        if rewards_limited:
            exp, gold = 0, 0
        elif submission.is_correct:
            exp, gold = await apply_active_boosts(self.db, player_id, exp, gold, now=now)

        attempt = await self.ledger.record(
            player_id=player_id,
            question_id=submission.question_id,
            is_correct=submission.is_correct,
            time_spent_seconds=submission.time_spent_seconds,
            exp_granted=exp,
            gold_granted=gold,
            submitted_answer=submission.submitted_answer,
            subject=submission.subject,
            source=submission.source,
            created_at=now,
        )

        grant = await self.leveling.grant(player_id, exp_delta=exp, gold_delta=gold)
        await self._update_answer_stats(player_id)

        subject_moved = False
        if submission.is_correct and not rewards_limited and submission.subject:
            subject_moved = await self._raise_subject_stat(player_id, submission.subject)

        kinds = triggered_kinds(submission.is_correct, grant.leveled_up, subject_moved)
        unlocked = await self.achievements.evaluate(player_id, kinds, now=now)
        completed_tasks = await self.daily_tasks.advance(player_id, now=now)

        response: dict[str, Any] = {
            "attempt_id": attempt.id,
            "is_correct": submission.is_correct,
            "rewards": {"exp": exp, "gold": gold},
            "leveling": {
                "new_level": grant.new_level,
                "new_exp": grant.new_exp,
                "new_gold": grant.new_gold,
                "exp_to_next_level": grant.exp_to_next_level,
                "leveled_up": grant.leveled_up,
            },
            "unlocked_achievements": unlocked,
            "completed_tasks": completed_tasks,
            "daily_practice_status": None,
        }
        if practice is not None:
            response["daily_practice_status"] = {
                "questions_answered_today": practice.questions_answered_today,
                "rewarded_questions_today": practice.rewarded_today,
                "daily_limit": practice.daily_limit,
                "can_earn_more_rewards": practice.can_earn_more_rewards,
                "rewards_limited": rewards_limited,
            }
        return response

    async def _update_answer_stats(self, player_id: int) -> None:
        total = await self.ledger.count_since(player_id)
        correct = await self.ledger.count_since(player_id, AttemptRecord.is_correct.is_(True))
        await self.db.execute(
            update(Player)
            .where(Player.id == player_id)
            .values(
                total_questions_answered=Player.total_questions_answered + 1,
                correct_rate=percent(correct, total),
            )
            .execution_options(synchronize_session=False)
        )

    async def _subject_stat_exists(self, player_id: int, subject: str) -> bool:
        result = await self.db.execute(
            select(PlayerSubjectStat.id).where(
                PlayerSubjectStat.player_id == player_id,
                PlayerSubjectStat.subject == subject,
            )
        )
        return result.scalar_one_or_none() is not None

    async def _raise_subject_stat(self, player_id: int, subject: str) -> bool:
        """Bump a subject stat by one step, capped. Returns whether it moved."""
        raised = (
            update(PlayerSubjectStat)
            .where(
                PlayerSubjectStat.player_id == player_id,
                PlayerSubjectStat.subject == subject,
                PlayerSubjectStat.value < MAX_SUBJECT_STAT,
            )
            .values(
                value=case(
                    (PlayerSubjectStat.value + SUBJECT_STAT_STEP > MAX_SUBJECT_STAT, MAX_SUBJECT_STAT),
                    else_=PlayerSubjectStat.value + SUBJECT_STAT_STEP,
                )
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(raised)
        if result.rowcount == 1:
            return True

        if await self._subject_stat_exists(player_id, subject):
            return False  # Already maxed

        try:
            async with self.db.begin_nested():
                self.db.add(PlayerSubjectStat(
                    player_id=player_id,
                    subject=subject,
                    value=min(DEFAULT_SUBJECT_STAT + SUBJECT_STAT_STEP, MAX_SUBJECT_STAT),
                ))
                await self.db.flush()
            return True
        except IntegrityError:
            logger.debug(f"Subject stat {subject} for player {player_id} created concurrently")
            result = await self.db.execute(raised)
            return result.rowcount == 1

    # =========================================================================
    # READS
    # =========================================================================

    async def get_player_progress(self, player_id: int, now: datetime | None = None) -> dict[str, Any]:
        result = await self.db.execute(
            select(Player)
            .where(Player.id == player_id)
            .execution_options(populate_existing=True)
        )
        player = result.scalar_one_or_none()
        if not player:
            raise PlayerNotFoundError(player_id)

        result = await self.db.execute(
            select(PlayerSubjectStat.subject, PlayerSubjectStat.value)
            .where(PlayerSubjectStat.player_id == player_id)
            .order_by(PlayerSubjectStat.subject)
        )
        subject_stats = {subject: value for subject, value in result.all()}

        # Counters left over from an earlier day read as zero until the next practice attempt resets them
        is_today = player.daily_practice_date == local_date(now)
        answered_today = player.daily_questions_answered if is_today else 0
        rewarded_today = player.daily_rewarded_questions if is_today else 0
        limit = settings.daily_practice_reward_limit

        return {
            "player_id": player.id,
            "display_name": player.display_name,
            "level": player.level,
            "exp": player.exp,
            "exp_to_next_level": player.exp_to_next_level,
            "level_progress": player.exp / player.exp_to_next_level,
            "gold": player.gold,
            "total_questions_answered": player.total_questions_answered,
            "correct_rate": player.correct_rate,
            "subject_stats": subject_stats,
            "daily_practice": {
                "questions_answered_today": answered_today,
                "rewarded_questions_today": rewarded_today,
                "daily_limit": limit,
                "can_earn_more_rewards": rewarded_today < limit,
            },
        }

    async def get_attempt_history(
        self,
        player_id: int,
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        """Paginated attempts, newest first."""
        await self._require_player(player_id)
        total = await self.ledger.count_since(player_id)
        attempts = await self.ledger.recent_by(player_id, page_size, offset=(page - 1) * page_size)

        return {
            "attempts": [
                {
                    "id": a.id,
                    "question_id": a.question_id,
                    "subject": a.subject,
                    "source": a.source,
                    "submitted_answer": a.submitted_answer,
                    "is_correct": a.is_correct,
                    "time_spent_seconds": a.time_spent_seconds,
                    "exp_granted": a.exp_granted,
                    "gold_granted": a.gold_granted,
                    "created_at": a.created_at,
                }
                for a in attempts
            ],
            "total": total,
            "page": page,
            "page_size": page_size,
            "total_pages": (total + page_size - 1) // page_size,
        }
