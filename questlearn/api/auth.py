import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.database import get_db
from questlearn.models.player import Player
from questlearn.services.auth import decode_access_token, get_player_by_id

logger = logging.getLogger(__name__)

security = HTTPBearer()


async def get_current_player(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Player:
    """Dependency that resolves the bearer token to an active player."""
    player_id = decode_access_token(credentials.credentials)
    if player_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    player = await get_player_by_id(db, player_id)
    if player is None:
        logger.warning(f"Token presented for unknown player {player_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Player not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not player.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Player account is inactive",
        )

    return player
