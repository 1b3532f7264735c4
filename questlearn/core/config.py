import secrets
import warnings
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = "postgresql+asyncpg://localhost:5432/questlearn"

    # Auth - SECRET_KEY must be set via environment variable in production
    secret_key: str = ""
    access_token_expire_minutes: int = 60 * 24 * 7  # 1 week

    # App settings
    app_name: str = "QuestLearn"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    # Calendar day boundaries for daily practice and daily tasks
    reference_timezone: str = "UTC"

    # Progression
    daily_practice_reward_limit: int = 20  # Rewarded correct answers per day (practice only)
    base_exp_to_next_level: int = 100

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("reference_timezone")
    @classmethod
    def validate_reference_timezone(cls, value: str) -> str:
        """Reject timezone names the zoneinfo database doesn't know."""
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown reference timezone: {value!r}")
        return value

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Ensure secret_key is properly configured."""
        if not self.secret_key:
            if self.debug:
                # Generate a random key for development
                self.secret_key = secrets.token_urlsafe(32)
                warnings.warn(
                    "SECRET_KEY not set - using random key (tokens won't survive restarts)",
                    stacklevel=2,
                )
            else:
                raise ValueError(
                    "SECRET_KEY environment variable must be set in production. "
                    "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
                )
        return self

    @property
    def timezone(self) -> ZoneInfo:
        return ZoneInfo(self.reference_timezone)


settings = Settings()
