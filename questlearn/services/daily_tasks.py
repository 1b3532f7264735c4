"""Daily task tracker - per-day task instances, completion and claim-once payouts."""

import logging
from datetime import date, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.clock import local_date, start_of_day, utcnow
from questlearn.models.daily_task import DailyTaskDefinition, PlayerDailyTask
from questlearn.services.leveling import LevelingLedger
from questlearn.services.progress import ProgressAggregator, ProgressScope

logger = logging.getLogger(__name__)


class DailyTaskService:
    """Today's tasks for a player.

    Progress is always recomputed from the attempt ledger for the current
    calendar day. Instances only move pending -> completed -> claimed, and
    each move is an UPDATE guarded on the previous state.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.aggregator = ProgressAggregator(db)
        self.leveling = LevelingLedger(db)

    async def _active_tasks(self) -> list[DailyTaskDefinition]:
        result = await self.db.execute(
            select(DailyTaskDefinition)
            .where(DailyTaskDefinition.is_active == True)
            .order_by(DailyTaskDefinition.sort_order, DailyTaskDefinition.id)
        )
        return list(result.scalars().all())

    async def _existing_task_ids(self, player_id: int, today: date) -> set[int]:
        result = await self.db.execute(
            select(PlayerDailyTask.task_id).where(
                PlayerDailyTask.player_id == player_id,
                PlayerDailyTask.task_date == today,
            )
        )
        return set(result.scalars().all())

    async def ensure_today(self, player_id: int, now: datetime | None = None) -> None:
        """Create today's instance for every active task that doesn't have one yet."""
        today = local_date(now)
        tasks = await self._active_tasks()

        existing = await self._existing_task_ids(player_id, today)
        for task_id in [task.id for task in tasks if task.id not in existing]:
            try:
                async with self.db.begin_nested():
                    self.db.add(PlayerDailyTask(player_id=player_id, task_id=task_id, task_date=today))
                    await self.db.flush()
            except IntegrityError:
                logger.debug(f"Daily task {task_id} for player {player_id} on {today} already exists")

    async def _today_values(
        self,
        player_id: int,
        tasks: list[DailyTaskDefinition],
        now: datetime | None,
    ) -> dict[int, int]:
        scope_start = start_of_day(local_date(now))
        values: dict[tuple[str, str | None], int] = {}
        per_task = {}
        for task in tasks:
            key = (task.requirement_kind, task.target_subject)
            if key not in values:
                values[key] = await self.aggregator.value(
                    player_id,
                    task.requirement_kind,
                    ProgressScope(since=scope_start, subject=task.target_subject, now=now),
                )
            per_task[task.id] = values[key]
        return per_task

    async def _instances(self, player_id: int, today: date) -> dict[int, PlayerDailyTask]:
        result = await self.db.execute(
            select(PlayerDailyTask)
            .where(PlayerDailyTask.player_id == player_id, PlayerDailyTask.task_date == today)
            .execution_options(populate_existing=True)
        )
        return {instance.task_id: instance for instance in result.scalars().all()}

    async def progress_today(self, player_id: int, now: datetime | None = None) -> list[dict[str, Any]]:
        await self.ensure_today(player_id, now)
        today = local_date(now)
        tasks = await self._active_tasks()
        values = await self._today_values(player_id, tasks, now)
        instances = await self._instances(player_id, today)

        views = []
        for task in tasks:
            instance = instances.get(task.id)
            value = values[task.id]
            views.append({
                "id": task.id,
                "code": task.code,
                "name": task.name,
                "description": task.description,
                "icon": task.icon,
                "requirement_kind": task.requirement_kind,
                "target_value": task.target_value,
                "target_subject": task.target_subject,
                "exp_reward": task.exp_reward,
                "gold_reward": task.gold_reward,
                "difficulty": task.difficulty,
                "progress": min(value, task.target_value),
                "is_completed": value >= task.target_value,
                "is_claimed": instance.is_claimed if instance else False,
            })
        return views

    async def get_daily_tasks(self, player_id: int, now: datetime | None = None) -> dict[str, Any]:
        tasks = await self.progress_today(player_id, now)
        return {
            "tasks": tasks,
            "stats": {
                "total": len(tasks),
                "completed": sum(1 for t in tasks if t["is_completed"]),
                "claimed": sum(1 for t in tasks if t["is_claimed"]),
            },
        }

    async def advance(self, player_id: int, now: datetime | None = None) -> list[dict[str, Any]]:
        """Recompute today's progress and mark tasks that just reached their target.

        Returns only the tasks this call moved to completed. A task a
        concurrent call completed first is left out.
        """
        await self.ensure_today(player_id, now)
        today = local_date(now)
        tasks = await self._active_tasks()
        values = await self._today_values(player_id, tasks, now)

        newly_completed = []
        for task in tasks:
            value = values[task.id]
            pending = (
                PlayerDailyTask.player_id == player_id,
                PlayerDailyTask.task_id == task.id,
                PlayerDailyTask.task_date == today,
                PlayerDailyTask.is_completed == False,
            )

            if value < task.target_value:
                await self.db.execute(
                    update(PlayerDailyTask)
                    .where(*pending)
                    .values(progress=value)
                    .execution_options(synchronize_session=False)
                )
                continue

            result = await self.db.execute(
                update(PlayerDailyTask)
                .where(*pending)
                .values(progress=task.target_value, is_completed=True, completed_at=now or utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                continue

            logger.info(f"Player {player_id} completed daily task {task.code}")
            newly_completed.append({
                "id": task.id,
                "code": task.code,
                "name": task.name,
                "icon": task.icon,
                "exp_reward": task.exp_reward,
                "gold_reward": task.gold_reward,
            })

        return newly_completed

    async def claim(
        self,
        player_id: int,
        task_id: int,
        now: datetime | None = None,
    ) -> dict[str, int] | None:
        """Pay out one completed task. None when there is nothing to claim."""
        today = local_date(now)

        async with self.db.begin_nested():
            result = await self.db.execute(
                update(PlayerDailyTask)
                .where(
                    PlayerDailyTask.player_id == player_id,
                    PlayerDailyTask.task_id == task_id,
                    PlayerDailyTask.task_date == today,
                    PlayerDailyTask.is_completed == True,
                    PlayerDailyTask.is_claimed == False,
                )
                .values(is_claimed=True, claimed_at=now or utcnow())
                .returning(PlayerDailyTask.task_id)
                .execution_options(synchronize_session=False)
            )
            if result.one_or_none() is None:
                return None

            task = await self.db.get(DailyTaskDefinition, task_id)
            await self.leveling.grant(player_id, exp_delta=task.exp_reward, gold_delta=task.gold_reward)

        logger.info(f"Player {player_id} claimed daily task {task.code}")
        return {"exp_reward": task.exp_reward, "gold_reward": task.gold_reward}

    async def claim_all(self, player_id: int, now: datetime | None = None) -> dict[str, int]:
        """Pay out every completed, unclaimed task of today in one guarded update.

        Totals come from the rows this call actually flipped, so two
        overlapping calls never pay the same task twice.
        """
        today = local_date(now)

        async with self.db.begin_nested():
            result = await self.db.execute(
                update(PlayerDailyTask)
                .where(
                    PlayerDailyTask.player_id == player_id,
                    PlayerDailyTask.task_date == today,
                    PlayerDailyTask.is_completed == True,
                    PlayerDailyTask.is_claimed == False,
                )
                .values(is_claimed=True, claimed_at=now or utcnow())
                .returning(PlayerDailyTask.task_id)
                .execution_options(synchronize_session=False)
            )
            claimed_ids = list(result.scalars().all())
            if not claimed_ids:
                return {"total_exp": 0, "total_gold": 0, "count": 0}

            result = await self.db.execute(
                select(
                    func.coalesce(func.sum(DailyTaskDefinition.exp_reward), 0),
                    func.coalesce(func.sum(DailyTaskDefinition.gold_reward), 0),
                ).where(DailyTaskDefinition.id.in_(claimed_ids))
            )
            total_exp, total_gold = result.one()
            await self.leveling.grant(player_id, exp_delta=int(total_exp), gold_delta=int(total_gold))

        logger.info(f"Player {player_id} claimed {len(claimed_ids)} daily tasks")
        return {"total_exp": int(total_exp), "total_gold": int(total_gold), "count": len(claimed_ids)}
