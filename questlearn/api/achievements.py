"""Achievement endpoints - list with progress, unseen unlocks, seen flags."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.api.auth import get_current_player
from questlearn.core.database import get_db
from questlearn.models.player import Player
from questlearn.services.achievements import AchievementService
from questlearn.services.exceptions import AchievementNotFoundError

router = APIRouter(prefix="/achievements", tags=["achievements"])


class AchievementResponse(BaseModel):
    """Single achievement with player progress. Hidden locked ones omit details."""
    id: int
    code: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    requirement_value: int
    is_unlocked: bool
    is_hidden: bool
    progress: int
    requirement_kind: str | None = None
    requirement_subject: str | None = None
    exp_reward: int | None = None
    gold_reward: int | None = None
    is_new: bool = False
    unlocked_at: datetime | None = None


class AchievementStatsResponse(BaseModel):
    total: int
    unlocked: int
    percentage: int
    new_count: int


class AchievementListResponse(BaseModel):
    achievements: dict[str, list[AchievementResponse]]
    stats: AchievementStatsResponse


class NewAchievementResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    exp_reward: int
    gold_reward: int
    unlocked_at: datetime


@router.get("", response_model=AchievementListResponse)
async def get_achievements(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """All active achievements grouped by category."""
    service = AchievementService(db)
    return await service.get_achievements(current_player.id)


@router.get("/new", response_model=list[NewAchievementResponse])
async def get_new_achievements(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> list[dict[str, Any]]:
    """Unlocks the player hasn't been shown yet."""
    service = AchievementService(db)
    return await service.get_new_achievements(current_player.id)


@router.post("/mark-all-seen")
async def mark_all_achievements_seen(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    service = AchievementService(db)
    count = await service.mark_all_seen(current_player.id)
    await db.commit()
    return {"status": "ok", "count": count}


@router.post("/{achievement_id}/seen")
async def mark_achievement_seen(
    achievement_id: int,
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, str]:
    service = AchievementService(db)
    try:
        await service.mark_seen(current_player.id, achievement_id)
    except AchievementNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    await db.commit()
    return {"status": "ok"}
