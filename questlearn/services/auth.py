from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from questlearn.core.config import settings
from questlearn.models.player import Player

# JWT configuration
ALGORITHM = "HS256"


def create_access_token(player_id: int, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token for a player.

    Tokens are normally issued by the account service; this is kept for
    scripts and tests that need to act as a player.
    """
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode = {
        "sub": str(player_id),
        "exp": expire,
        "iat": datetime.now(timezone.utc),
    }

    return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> int | None:
    """Decode a JWT access token and return the player ID."""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        player_id = payload.get("sub")
        if player_id is None:
            return None
        return int(player_id)
    except (JWTError, ValueError):
        return None


async def get_player_by_id(db: AsyncSession, player_id: int) -> Player | None:
    result = await db.execute(select(Player).where(Player.id == player_id))
    return result.scalar_one_or_none()
