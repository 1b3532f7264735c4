"""Tests for achievement unlocking and achievement views.

Covers:
  - Ten correct answers in a row unlock a streak-10 achievement exactly once
  - Re-evaluation is idempotent (no second unlock, no second reward)
  - Losing the unlock race skips the grant
  - Subject-scoped mastery, unsupported kinds, inactive definitions
  - Grouped listing with hidden masking, new/seen flags
"""
import pytest
from sqlalchemy import func, select

from questlearn.models import Player, PlayerAchievement, PlayerSubjectStat, RequirementKind
from questlearn.services.achievements import HIDDEN_ICON, HIDDEN_NAME, AchievementService
from questlearn.services.exceptions import AchievementNotFoundError
from tests.conftest import create_achievement, create_player, record_attempts


async def _exp_and_gold(db, player_id):
    result = await db.execute(select(Player.exp, Player.gold).where(Player.id == player_id))
    return tuple(result.one())


async def _unlock_count(db, player_id):
    result = await db.execute(
        select(func.count(PlayerAchievement.id)).where(PlayerAchievement.player_id == player_id)
    )
    return result.scalar()


class TestEvaluate:
    async def test_streak_of_ten_unlocks_once(self, db):
        player = await create_player(db)
        streak = await create_achievement(db, exp_reward=75, gold_reward=30)
        await record_attempts(db, player.id, [True] * 10)

        service = AchievementService(db)
        unlocked = await service.evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        assert [a["code"] for a in unlocked] == [streak.code]
        assert await _exp_and_gold(db, player.id) == (75, 30)
        assert await _unlock_count(db, player.id) == 1

    async def test_evaluate_is_idempotent(self, db):
        player = await create_player(db)
        await create_achievement(db, exp_reward=75, gold_reward=30)
        await record_attempts(db, player.id, [True] * 10)
        service = AchievementService(db)

        await service.evaluate(player.id, {RequirementKind.CORRECT_STREAK})
        again = await service.evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        assert again == []
        assert await _exp_and_gold(db, player.id) == (75, 30)
        assert await _unlock_count(db, player.id) == 1

    async def test_threshold_not_met(self, db):
        player = await create_player(db)
        await create_achievement(db)
        await record_attempts(db, player.id, [True] * 9)

        assert await AchievementService(db).evaluate(player.id, {"correct_streak"}) == []

    async def test_only_triggered_kinds_are_checked(self, db):
        player = await create_player(db)
        await create_achievement(db)
        await record_attempts(db, player.id, [True] * 10)

        unlocked = await AchievementService(db).evaluate(player.id, {RequirementKind.QUESTIONS_ANSWERED})

        assert unlocked == []

    async def test_lost_race_skips_grant(self, db, monkeypatch):
        player = await create_player(db)
        definition = await create_achievement(db, exp_reward=75, gold_reward=30)
        await record_attempts(db, player.id, [True] * 10)
        db.add(PlayerAchievement(player_id=player.id, achievement_id=definition.id, progress=10))
        await db.commit()

        # Simulate a concurrent evaluation that read the unlock list before the row landed
        async def _stale_unlocked_ids(self, player_id):
            return set()
        monkeypatch.setattr(AchievementService, "_unlocked_ids", _stale_unlocked_ids)

        unlocked = await AchievementService(db).evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        assert unlocked == []
        assert await _exp_and_gold(db, player.id) == (0, 0)
        assert await _unlock_count(db, player.id) == 1

    async def test_level_up_from_reward_is_applied(self, db):
        player = await create_player(db, exp=90)
        await create_achievement(db, exp_reward=30, gold_reward=0)
        await record_attempts(db, player.id, [True] * 10)

        await AchievementService(db).evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        result = await db.execute(
            select(Player.level, Player.exp, Player.exp_to_next_level).where(Player.id == player.id)
        )
        assert tuple(result.one()) == (2, 20, 120)

    async def test_subject_mastery_matches_subject(self, db):
        player = await create_player(db)
        await create_achievement(
            db, code="MASTERY_MATH_70", requirement_kind="subject_mastery",
            requirement_value=70, requirement_subject="math",
        )
        await create_achievement(
            db, code="MASTERY_CHINESE_70", requirement_kind="subject_mastery",
            requirement_value=70, requirement_subject="chinese",
        )
        db.add_all([
            PlayerSubjectStat(player_id=player.id, subject="math", value=72),
            PlayerSubjectStat(player_id=player.id, subject="chinese", value=50),
        ])
        await db.commit()

        unlocked = await AchievementService(db).evaluate(player.id, {RequirementKind.SUBJECT_MASTERY})

        assert [a["code"] for a in unlocked] == ["MASTERY_MATH_70"]

    async def test_unsupported_kind_never_unlocks(self, db):
        player = await create_player(db)
        await create_achievement(db, code="LOGIN_1", requirement_kind="login_days", requirement_value=1)

        assert await AchievementService(db).evaluate(player.id, {RequirementKind.LOGIN_DAYS}) == []

    async def test_inactive_definitions_are_ignored(self, db):
        player = await create_player(db)
        await create_achievement(db, is_active=False)
        await record_attempts(db, player.id, [True] * 10)

        assert await AchievementService(db).evaluate(player.id, {RequirementKind.CORRECT_STREAK}) == []

    async def test_hidden_achievements_unlock_normally(self, db):
        player = await create_player(db)
        await create_achievement(db, is_hidden=True)
        await record_attempts(db, player.id, [True] * 10)

        unlocked = await AchievementService(db).evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        assert len(unlocked) == 1


class TestAchievementViews:
    async def test_grouped_listing_with_progress(self, db):
        player = await create_player(db)
        await create_achievement(db, code="QUESTION_10", requirement_kind="questions_answered",
                                 requirement_value=10, category="learning")
        await create_achievement(db, code="LEVEL_5", requirement_kind="level_reached",
                                 requirement_value=5, category="adventure")
        await record_attempts(db, player.id, [True, False, True])

        view = await AchievementService(db).get_achievements(player.id)

        assert set(view["achievements"]) == {"learning", "adventure", "social", "special"}
        learning = view["achievements"]["learning"]
        assert learning[0]["code"] == "QUESTION_10"
        assert learning[0]["progress"] == 3
        assert learning[0]["is_unlocked"] is False
        assert view["achievements"]["adventure"][0]["progress"] == 1
        assert view["stats"] == {"total": 2, "unlocked": 0, "percentage": 0, "new_count": 0}

    async def test_hidden_locked_achievement_is_masked(self, db):
        player = await create_player(db)
        await create_achievement(db, is_hidden=True, category="special")

        view = await AchievementService(db).get_achievements(player.id)

        item = view["achievements"]["special"][0]
        assert item["name"] == HIDDEN_NAME
        assert item["icon"] == HIDDEN_ICON
        assert item["progress"] == 0
        assert "exp_reward" not in item

    async def test_unlocked_shows_full_progress_and_stats(self, db):
        player = await create_player(db)
        await create_achievement(db, is_hidden=True)
        await create_achievement(db, code="CORRECT_100", requirement_kind="correct_answers",
                                 requirement_value=100)
        await record_attempts(db, player.id, [True] * 12)
        service = AchievementService(db)
        await service.evaluate(player.id, {RequirementKind.CORRECT_STREAK})

        view = await service.get_achievements(player.id)

        by_code = {a["code"]: a for a in view["achievements"]["learning"]}
        assert by_code["STREAK_10"]["is_unlocked"] is True
        assert by_code["STREAK_10"]["progress"] == 10
        assert by_code["STREAK_10"]["name"] == "Hot Streak"
        assert by_code["STREAK_10"]["is_new"] is True
        assert by_code["CORRECT_100"]["progress"] == 12
        assert view["stats"] == {"total": 2, "unlocked": 1, "percentage": 50, "new_count": 1}

    async def test_new_and_seen_flags(self, db):
        player = await create_player(db)
        first = await create_achievement(db)
        await create_achievement(db, code="QUESTION_1", requirement_kind="questions_answered",
                                 requirement_value=1)
        await record_attempts(db, player.id, [True] * 10)
        service = AchievementService(db)
        await service.evaluate(player.id, {"correct_streak", "questions_answered"})

        assert len(await service.get_new_achievements(player.id)) == 2

        await service.mark_seen(player.id, first.id)
        remaining = await service.get_new_achievements(player.id)
        assert [a["code"] for a in remaining] == ["QUESTION_1"]

        assert await service.mark_all_seen(player.id) == 1
        assert await service.get_new_achievements(player.id) == []

    async def test_mark_seen_unknown_achievement(self, db):
        player = await create_player(db)
        with pytest.raises(AchievementNotFoundError):
            await AchievementService(db).mark_seen(player.id, 424242)
