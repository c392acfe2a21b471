from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from taskhub.core.config import Settings
from taskhub.db.session import Database
from taskhub.errors import ConflictError
from taskhub.services import UserService

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


async def test_create_user_hashes_password_and_rejects_duplicates(database: Database, settings: Settings) -> None:
    async with database.session() as session:
        service = UserService(session, settings)
        user = await service.create_user(email=" Mixed@Example.com ", name="Mixed Case", password="Password123")

        assert user.email == "mixed@example.com"
        assert user.hashed_password != "Password123"
        assert service.verify_password(user, "Password123")
        assert not service.verify_password(user, "Password124")

        with pytest.raises(ConflictError):
            await service.create_user(email="mixed@example.com", name="Again", password="Password123")


async def test_lockout_threshold_and_expiry(database: Database, settings: Settings) -> None:
    clock = FakeClock()
    async with database.session() as session:
        service = UserService(session, settings, clock=clock)
        user = await service.create_user(email="lock@example.com", name="Lock Me", password="Password123")

        for _ in range(settings.max_login_attempts - 1):
            assert await service.record_failed_login(user) is False
        assert user.failed_login_attempts == settings.max_login_attempts - 1
        assert not service.is_locked(user)

        assert await service.record_failed_login(user) is True
        assert user.failed_login_attempts == 0
        assert service.is_locked(user)

        clock.advance(minutes=settings.lock_time_minutes - 1)
        assert service.is_locked(user)

        clock.advance(minutes=1)
        assert not service.is_locked(user)


async def test_reset_login_attempts_clears_counter_and_lock(database: Database, settings: Settings) -> None:
    clock = FakeClock()
    async with database.session() as session:
        service = UserService(session, settings, clock=clock)
        user = await service.create_user(email="reset@example.com", name="Reset Me", password="Password123")
        await service.record_failed_login(user)
        await service.record_failed_login(user)

        await service.reset_login_attempts(user)

        reloaded = await service.get_user(user.id)
        assert reloaded is not None
        assert reloaded.failed_login_attempts == 0
        assert reloaded.lock_until is None
