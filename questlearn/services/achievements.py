"""Achievement evaluator - one-time unlocks with reward grants, plus player views."""

import logging
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import utcnow
from questlearn.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    PlayerAchievement,
    RequirementKind,
)
from questlearn.services.exceptions import AchievementNotFoundError
from questlearn.services.leveling import LevelingLedger
from questlearn.services.progress import ProgressAggregator, ProgressScope, percent

logger = logging.getLogger(__name__)

HIDDEN_NAME = "???"
HIDDEN_DESCRIPTION = "Meet a secret condition to unlock this achievement"
HIDDEN_ICON = "❓"


class AchievementService:
    """Checks triggered requirement kinds against the catalog and unlocks.

    An unlock row and its reward grant share one savepoint: the
    (player, achievement) unique constraint decides the winner when two
    evaluations race, and the loser's grant never happens.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.aggregator = ProgressAggregator(db)
        self.leveling = LevelingLedger(db)

    async def _unlocked_ids(self, player_id: int) -> set[int]:
        result = await self.db.execute(
            select(PlayerAchievement.achievement_id).where(PlayerAchievement.player_id == player_id)
        )
        return set(result.scalars().all())

    async def evaluate(
        self,
        player_id: int,
        triggered_kinds: Iterable[RequirementKind | str],
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Unlock every active achievement of a triggered kind whose threshold is met.

        Returns the achievements this call unlocked. Already-unlocked ones,
        and ones another evaluation unlocked first, are skipped silently.
        """
        kinds = {RequirementKind(kind).value for kind in triggered_kinds}
        if not kinds:
            return []

        result = await self.db.execute(
            select(AchievementDefinition)
            .where(
                AchievementDefinition.is_active == True,
                AchievementDefinition.requirement_kind.in_(kinds),
            )
            .order_by(AchievementDefinition.sort_order, AchievementDefinition.id)
        )
        candidates = result.scalars().all()
        if not candidates:
            return []

        unlocked_ids = await self._unlocked_ids(player_id)
        values: dict[tuple[str, str | None], int] = {}
        newly_unlocked = []

        for definition in candidates:
            if definition.id in unlocked_ids:
                continue

            subject = definition.requirement_subject
            if definition.requirement_kind != RequirementKind.SUBJECT_MASTERY.value:
                subject = None
            key = (definition.requirement_kind, subject)
            if key not in values:
                values[key] = await self.aggregator.value(
                    player_id, definition.requirement_kind, ProgressScope(subject=subject, now=now)
                )
            current = values[key]
            if current < definition.requirement_value:
                continue

            unlock = await self._unlock(player_id, definition, current)
            if unlock is not None:
                newly_unlocked.append(unlock)

        return newly_unlocked

    async def _unlock(
        self,
        player_id: int,
        definition: AchievementDefinition,
        current: int,
    ) -> dict[str, Any] | None:
        unlocked = {
            "id": definition.id,
            "code": definition.code,
            "name": definition.name,
            "description": definition.description,
            "icon": definition.icon,
            "category": definition.category,
            "rarity": definition.rarity,
            "exp_reward": definition.exp_reward,
            "gold_reward": definition.gold_reward,
        }
        try:
            async with self.db.begin_nested():
                record = PlayerAchievement(
                    player_id=player_id,
                    achievement_id=unlocked["id"],
                    progress=current,
                    unlocked_at=utcnow(),
                )
                self.db.add(record)
                await self.db.flush()
                if unlocked["exp_reward"] or unlocked["gold_reward"]:
                    await self.leveling.grant(
                        player_id,
                        exp_delta=unlocked["exp_reward"],
                        gold_delta=unlocked["gold_reward"],
                    )
        except IntegrityError:
            logger.debug(
                f"Achievement {unlocked['code']} already unlocked for player {player_id}, skipping"
            )
            return None

        logger.info(f"Player {player_id} unlocked achievement {unlocked['code']}")
        unlocked["unlocked_at"] = record.unlocked_at
        return unlocked

    # =========================================================================
    # VIEWS
    # =========================================================================

    async def get_achievements(self, player_id: int) -> dict[str, Any]:
        """All active achievements grouped by category, with progress and stats."""
        result = await self.db.execute(
            select(AchievementDefinition)
            .where(AchievementDefinition.is_active == True)
            .order_by(AchievementDefinition.category, AchievementDefinition.sort_order)
        )
        definitions = result.scalars().all()

        result = await self.db.execute(
            select(PlayerAchievement)
            .where(PlayerAchievement.player_id == player_id)
            .execution_options(populate_existing=True)
        )
        unlocks = {pa.achievement_id: pa for pa in result.scalars().all()}

        grouped: dict[str, list[dict[str, Any]]] = {c.value: [] for c in AchievementCategory}
        values: dict[tuple[str, str | None], int] = {}
        unlocked_count = 0
        new_count = 0

        for definition in definitions:
            unlock = unlocks.get(definition.id)
            is_unlocked = unlock is not None

            if is_unlocked:
                unlocked_count += 1
                new_count += int(unlock.is_new)
                progress = definition.requirement_value
            else:
                key = (definition.requirement_kind, definition.requirement_subject)
                if key not in values:
                    values[key] = await self.aggregator.value(
                        player_id,
                        definition.requirement_kind,
                        ProgressScope(subject=definition.requirement_subject),
                    )
                progress = min(values[key], definition.requirement_value)

            if definition.is_hidden and not is_unlocked:
                item = {
                    "id": definition.id,
                    "code": definition.code,
                    "name": HIDDEN_NAME,
                    "description": HIDDEN_DESCRIPTION,
                    "icon": HIDDEN_ICON,
                    "category": definition.category,
                    "rarity": definition.rarity,
                    "requirement_value": definition.requirement_value,
                    "is_unlocked": False,
                    "is_hidden": True,
                    "progress": 0,
                }
            else:
                item = {
                    "id": definition.id,
                    "code": definition.code,
                    "name": definition.name,
                    "description": definition.description,
                    "icon": definition.icon,
                    "category": definition.category,
                    "rarity": definition.rarity,
                    "requirement_kind": definition.requirement_kind,
                    "requirement_value": definition.requirement_value,
                    "requirement_subject": definition.requirement_subject,
                    "exp_reward": definition.exp_reward,
                    "gold_reward": definition.gold_reward,
                    "is_unlocked": is_unlocked,
                    "is_hidden": definition.is_hidden,
                    "is_new": unlock.is_new if unlock else False,
                    "unlocked_at": unlock.unlocked_at if unlock else None,
                    "progress": progress,
                }

            grouped.setdefault(definition.category, []).append(item)

        total = len(definitions)
        return {
            "achievements": grouped,
            "stats": {
                "total": total,
                "unlocked": unlocked_count,
                "percentage": percent(unlocked_count, total),
                "new_count": new_count,
            },
        }

    async def get_new_achievements(self, player_id: int) -> list[dict[str, Any]]:
        """Unlocks the player hasn't seen yet, newest first."""
        result = await self.db.execute(
            select(PlayerAchievement, AchievementDefinition)
            .join(AchievementDefinition, PlayerAchievement.achievement_id == AchievementDefinition.id)
            .where(PlayerAchievement.player_id == player_id, PlayerAchievement.is_new == True)
            .order_by(PlayerAchievement.unlocked_at.desc(), PlayerAchievement.id.desc())
            .execution_options(populate_existing=True)
        )
        return [
            {
                "id": definition.id,
                "code": definition.code,
                "name": definition.name,
                "description": definition.description,
                "icon": definition.icon,
                "category": definition.category,
                "rarity": definition.rarity,
                "exp_reward": definition.exp_reward,
                "gold_reward": definition.gold_reward,
                "unlocked_at": unlock.unlocked_at,
            }
            for unlock, definition in result.all()
        ]

    async def mark_seen(self, player_id: int, achievement_id: int) -> None:
        """Clear the unseen flag on one unlock. Display state only."""
        definition = await self.db.get(AchievementDefinition, achievement_id)
        if definition is None:
            raise AchievementNotFoundError(achievement_id)

        await self.db.execute(
            update(PlayerAchievement)
            .where(
                PlayerAchievement.player_id == player_id,
                PlayerAchievement.achievement_id == achievement_id,
            )
            .values(is_new=False)
            .execution_options(synchronize_session=False)
        )

    async def mark_all_seen(self, player_id: int) -> int:
        result = await self.db.execute(
            update(PlayerAchievement)
            .where(PlayerAchievement.player_id == player_id, PlayerAchievement.is_new == True)
            .values(is_new=False)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
