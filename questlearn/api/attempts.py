"""Attempt submission and history endpoints."""

import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.api.auth import get_current_player
from questlearn.core.database import get_db
from questlearn.models.attempt import AttemptSource
from questlearn.models.player import Player
from questlearn.services.exceptions import NotFoundError
from questlearn.services.progression import AttemptSubmission, ProgressionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/attempts", tags=["attempts"])


# =============================================================================
# REQUEST / RESPONSE SCHEMAS
# =============================================================================

class AttemptSubmitRequest(BaseModel):
    """A graded answer from the question-answering flow."""
    question_id: str = Field(min_length=1, max_length=100)
    is_correct: bool
    submitted_answer: Any = None
    subject: str | None = Field(default=None, max_length=50)
    difficulty: str | None = Field(default=None, description="easy, medium or hard")
    base_exp: int | None = Field(default=None, ge=0)
    base_gold: int | None = Field(default=None, ge=0)
    time_spent_seconds: int = Field(default=0, ge=0)
    source: AttemptSource = AttemptSource.PRACTICE


class RewardsResponse(BaseModel):
    exp: int
    gold: int


class LevelingResponse(BaseModel):
    new_level: int
    new_exp: int
    new_gold: int
    exp_to_next_level: int
    leveled_up: bool


class UnlockedAchievementResponse(BaseModel):
    id: int
    code: str
    name: str
    description: str
    icon: str
    category: str
    rarity: str
    exp_reward: int
    gold_reward: int
    unlocked_at: datetime | None


class CompletedTaskResponse(BaseModel):
    id: int
    code: str
    name: str
    icon: str
    exp_reward: int
    gold_reward: int


class DailyPracticeStatusResponse(BaseModel):
    questions_answered_today: int
    rewarded_questions_today: int
    daily_limit: int
    can_earn_more_rewards: bool
    rewards_limited: bool


class AttemptResultResponse(BaseModel):
    """Everything an answer changed."""
    attempt_id: int
    is_correct: bool
    rewards: RewardsResponse
    leveling: LevelingResponse
    unlocked_achievements: list[UnlockedAchievementResponse]
    completed_tasks: list[CompletedTaskResponse]
    daily_practice_status: DailyPracticeStatusResponse | None = None


class AttemptResponse(BaseModel):
    id: int
    question_id: str
    subject: str | None
    source: str
    submitted_answer: Any = None
    is_correct: bool
    time_spent_seconds: int
    exp_granted: int
    gold_granted: int
    created_at: datetime


class AttemptHistoryResponse(BaseModel):
    attempts: list[AttemptResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("", response_model=AttemptResultResponse, status_code=status.HTTP_201_CREATED)
async def submit_attempt(
    request: AttemptSubmitRequest,
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Record an answer and apply rewards, unlocks and daily task progress."""
    service = ProgressionService(db)
    submission = AttemptSubmission(
        question_id=request.question_id,
        is_correct=request.is_correct,
        subject=request.subject,
        difficulty=request.difficulty,
        base_exp=request.base_exp,
        base_gold=request.base_gold,
        time_spent_seconds=request.time_spent_seconds,
        source=request.source.value,
        submitted_answer=request.submitted_answer,
    )
    try:
        result = await service.submit_attempt(current_player.id, submission)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    await db.commit()
    return result


@router.get("/history", response_model=AttemptHistoryResponse)
async def get_attempt_history(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    current_player: Player = Depends(get_current_player),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Get the current player's attempts, newest first."""
    service = ProgressionService(db)
    try:
        return await service.get_attempt_history(current_player.id, page=page, page_size=page_size)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
