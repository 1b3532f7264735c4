"""Tests for the daily practice reward cap."""
from datetime import timedelta

import pytest
from sqlalchemy import select

from questlearn.models import Player
from questlearn.services.daily_practice import DailyPracticeLimiter
from questlearn.services.exceptions import PlayerNotFoundError
from tests.conftest import NOW, create_player


async def _answer_correctly(limiter, player_id, times, now=NOW):
    status = None
    for _ in range(times):
        status = await limiter.check_and_advance(player_id, True, now=now)
    return status


class TestDailyPracticeLimiter:
    async def test_first_answer_of_the_day(self, db):
        player = await create_player(db)

        status = await DailyPracticeLimiter(db).check_and_advance(player.id, True, now=NOW)

        assert status.can_earn_rewards is True
        assert status.questions_answered_today == 1
        assert status.rewarded_today == 1
        assert status.daily_limit == 20

    async def test_incorrect_answers_count_but_are_not_rewarded(self, db):
        player = await create_player(db)
        limiter = DailyPracticeLimiter(db)

        await limiter.check_and_advance(player.id, False, now=NOW)
        status = await limiter.check_and_advance(player.id, False, now=NOW)

        assert status.questions_answered_today == 2
        assert status.rewarded_today == 0
        assert status.can_earn_more_rewards is True

    async def test_twenty_first_correct_answer_is_limited(self, db):
        player = await create_player(db)
        limiter = DailyPracticeLimiter(db)

        twentieth = await _answer_correctly(limiter, player.id, 20)
        assert twentieth.can_earn_rewards is True
        assert twentieth.rewarded_today == 20
        assert twentieth.can_earn_more_rewards is False

        status = await limiter.check_and_advance(player.id, True, now=NOW)

        assert status.can_earn_rewards is False
        assert status.rewards_limited is True
        assert status.questions_answered_today == 21
        assert status.rewarded_today == 20

    async def test_rollover_resets_counters(self, db):
        player = await create_player(db)
        limiter = DailyPracticeLimiter(db)
        await _answer_correctly(limiter, player.id, 25)

        status = await limiter.check_and_advance(player.id, True, now=NOW + timedelta(days=1))

        assert status.can_earn_rewards is True
        assert status.questions_answered_today == 1
        assert status.rewarded_today == 1

        result = await db.execute(select(Player.daily_practice_date).where(Player.id == player.id))
        assert result.scalar_one() == (NOW + timedelta(days=1)).date()

    async def test_custom_limit(self, db):
        player = await create_player(db)
        limiter = DailyPracticeLimiter(db, daily_limit=2)

        await _answer_correctly(limiter, player.id, 2)
        status = await limiter.check_and_advance(player.id, True, now=NOW)

        assert status.can_earn_rewards is False

    async def test_incorrect_answer_after_cap_reports_limited(self, db):
        player = await create_player(db)
        limiter = DailyPracticeLimiter(db, daily_limit=1)
        await _answer_correctly(limiter, player.id, 1)

        status = await limiter.check_and_advance(player.id, False, now=NOW)

        assert status.can_earn_rewards is False

    async def test_unknown_player(self, db):
        with pytest.raises(PlayerNotFoundError):
            await DailyPracticeLimiter(db).check_and_advance(12345, True, now=NOW)
