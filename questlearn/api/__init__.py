from fastapi import APIRouter

from questlearn import __version__
from questlearn.api.achievements import router as achievements_router
from questlearn.api.attempts import router as attempts_router
from questlearn.api.daily_tasks import router as daily_tasks_router
from questlearn.api.players import router as players_router
from questlearn.core.config import settings

router = APIRouter()
router.include_router(attempts_router)
router.include_router(achievements_router)
router.include_router(daily_tasks_router)
router.include_router(players_router)


@router.get("/health", tags=["health"])
async def health() -> dict[str, str]:
    return {"status": "ok", "name": settings.app_name, "version": __version__}
