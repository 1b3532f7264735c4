"""Tests for settings, database URL handling and calendar day boundaries."""
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from pydantic import ValidationError

from questlearn.core.clock import local_date, start_of_day, start_of_today
from questlearn.core.config import Settings
from questlearn.core.database import to_async_url

SHANGHAI = ZoneInfo("Asia/Shanghai")


class TestAsyncUrl:
    @pytest.mark.parametrize("url,expected", [
        ("postgres://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("postgresql://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
        ("sqlite:///./dev.db", "sqlite+aiosqlite:///./dev.db"),
        ("postgresql+asyncpg://u:p@db/app", "postgresql+asyncpg://u:p@db/app"),
    ])
    def test_conversion(self, url, expected):
        assert to_async_url(url) == expected


class TestSettings:
    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(secret_key="x", reference_timezone="Mars/Olympus_Mons")

    def test_secret_key_required_outside_debug(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(ValidationError):
            Settings(secret_key="", debug=False)

    def test_debug_generates_secret_key(self, monkeypatch):
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.warns(UserWarning):
            settings = Settings(secret_key="", debug=True)
        assert settings.secret_key


class TestClock:
    def test_local_date_uses_reference_timezone(self):
        # 20:00 UTC is already the next day in Shanghai
        moment = datetime(2026, 3, 14, 20, 0, tzinfo=timezone.utc)

        assert local_date(moment, SHANGHAI) == date(2026, 3, 15)
        assert local_date(moment, ZoneInfo("UTC")) == date(2026, 3, 14)

    def test_naive_moments_are_utc(self):
        assert local_date(datetime(2026, 3, 14, 23, 30), SHANGHAI) == date(2026, 3, 15)

    def test_start_of_day_is_utc(self):
        start = start_of_day(date(2026, 3, 15), SHANGHAI)

        assert start == datetime(2026, 3, 14, 16, 0, tzinfo=timezone.utc)
        assert start.tzinfo == timezone.utc

    def test_start_of_today(self):
        moment = datetime(2026, 3, 14, 12, 34, tzinfo=timezone.utc)

        assert start_of_today(moment, ZoneInfo("UTC")) == datetime(2026, 3, 14, tzinfo=timezone.utc)


class TestServerRunner:
    def test_main_runs_uvicorn_with_settings(self, monkeypatch):
        import uvicorn

        from questlearn import __main__ as runner
        from questlearn.core.config import settings

        calls = []
        monkeypatch.setattr(uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

        runner.main()

        assert calls == [("questlearn.main:app",
                          {"host": settings.host, "port": settings.port, "reload": settings.debug})]
