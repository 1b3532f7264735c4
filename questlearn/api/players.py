from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.api.auth import get_current_player
from questlearn.core.database import get_db
from questlearn.models.player import Player
from questlearn.services.exceptions import PlayerNotFoundError
from questlearn.services.progression import ProgressionService

router = APIRouter(prefix="/players", tags=["players"])


class DailyPracticeResponse(BaseModel):
    questions_answered_today: int
    rewarded_questions_today: int
    daily_limit: int
    can_earn_more_rewards: bool


class PlayerProgressResponse(BaseModel):
    """Level, currency and stats for one player."""
    player_id: int
    display_name: str | None
    level: int
    exp: int
    exp_to_next_level: int
    level_progress: float
    gold: int
    total_questions_answered: int
    correct_rate: float
    subject_stats: dict[str, int]
    daily_practice: DailyPracticeResponse


@router.get("/me/progress", response_model=PlayerProgressResponse)
async def get_my_progress(
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    service = ProgressionService(db)
    try:
        return await service.get_player_progress(current_player.id)
    except PlayerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
