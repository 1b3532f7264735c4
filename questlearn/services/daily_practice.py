"""Daily practice limiter - caps rewarded correct answers per calendar day."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import local_date
from questlearn.core.config import settings
from questlearn.models.player import Player
from questlearn.services.exceptions import PlayerNotFoundError


@dataclass(frozen=True)
class PracticeStatus:
    questions_answered_today: int
    rewarded_today: int
    can_earn_rewards: bool  # This attempt fell within the cap
    daily_limit: int

    @property
    def can_earn_more_rewards(self) -> bool:
        return self.rewarded_today < self.daily_limit

    @property
    def rewards_limited(self) -> bool:
        return not self.can_earn_rewards


class DailyPracticeLimiter:
    """Tracks today's practice counters on the player row.

    Only ordinary practice attempts go through here. The day rollover is
    applied lazily on the first call of a new day; every counter change is a
    conditional UPDATE so concurrent submissions can't push past the cap.
    """

    def __init__(self, db: AsyncSession, daily_limit: int | None = None):
        self.db = db
        self.daily_limit = settings.daily_practice_reward_limit if daily_limit is None else daily_limit

    async def check_and_advance(
        self,
        player_id: int,
        is_correct: bool,
        now: datetime | None = None,
    ) -> PracticeStatus:
        today = local_date(now)

        await self.db.execute(
            update(Player)
            .where(
                Player.id == player_id,
                or_(Player.daily_practice_date.is_(None), Player.daily_practice_date != today),
            )
            .values(
                daily_practice_date=today,
                daily_questions_answered=0,
                daily_rewarded_questions=0,
            )
            .execution_options(synchronize_session=False)
        )

        row = None
        eligible = False
        if is_correct:
            result = await self.db.execute(
                update(Player)
                .where(
                    Player.id == player_id,
                    Player.daily_rewarded_questions < self.daily_limit,
                )
                .values(
                    daily_questions_answered=Player.daily_questions_answered + 1,
                    daily_rewarded_questions=Player.daily_rewarded_questions + 1,
                )
                .returning(Player.daily_questions_answered, Player.daily_rewarded_questions)
                .execution_options(synchronize_session=False)
            )
            row = result.one_or_none()
            eligible = row is not None

        if row is None:
            result = await self.db.execute(
                update(Player)
                .where(Player.id == player_id)
                .values(daily_questions_answered=Player.daily_questions_answered + 1)
                .returning(Player.daily_questions_answered, Player.daily_rewarded_questions)
                .execution_options(synchronize_session=False)
            )
            row = result.one_or_none()
            if row is None:
                raise PlayerNotFoundError(player_id)
            if not is_correct:
                # Wrong answers earn nothing anyway; report whether a right one would have
                eligible = row.daily_rewarded_questions < self.daily_limit

        return PracticeStatus(
            questions_answered_today=row.daily_questions_answered,
            rewarded_today=row.daily_rewarded_questions,
            can_earn_rewards=eligible,
            daily_limit=self.daily_limit,
        )
