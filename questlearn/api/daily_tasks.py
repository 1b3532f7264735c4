"""Daily task endpoints - today's tasks and reward claims."""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.api.auth import get_current_player
from questlearn.core.database import get_db
from questlearn.models.player import Player
from questlearn.services.daily_tasks import DailyTaskService

router = APIRouter(prefix="/daily-tasks", tags=["daily-tasks"])


class DailyTaskResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    icon: str
    requirement_kind: str
    target_value: int
    target_subject: str | None
    exp_reward: int
    gold_reward: int
    difficulty: str
    progress: int
    is_completed: bool
    is_claimed: bool


class DailyTaskStatsResponse(BaseModel):
    total: int
    completed: int
    claimed: int


class DailyTaskListResponse(BaseModel):
    tasks: list[DailyTaskResponse]
    stats: DailyTaskStatsResponse


class ClaimResponse(BaseModel):
    exp_reward: int
    gold_reward: int


class ClaimAllResponse(BaseModel):
    total_exp: int
    total_gold: int
    count: int


@router.get("", response_model=DailyTaskListResponse)
async def get_daily_tasks(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Today's tasks with progress. Creates today's instances on first read."""
    service = DailyTaskService(db)
    result = await service.get_daily_tasks(current_player.id)
    await db.commit()
    return result


@router.post("/claim-all", response_model=ClaimAllResponse)
async def claim_all_tasks(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    service = DailyTaskService(db)
    result = await service.claim_all(current_player.id)
    if result["count"] == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No completed tasks to claim",
        )
    await db.commit()
    return result


@router.post("/{task_id}/claim", response_model=ClaimResponse)
async def claim_task(
    task_id: int,
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, int]:
    """Pay out one completed task."""
    service = DailyTaskService(db)
    result = await service.claim(current_player.id, task_id)
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Task is not completed or already claimed",
        )
    await db.commit()
    return result
