"""Credential store: user creation, password checks and login lockout."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlmodel.ext.asyncio.session import AsyncSession

from ..core.config import Settings
from ..core.security import get_password_hash, verify_password
from ..errors import ConflictError
from ..models import User, UserRole, ensure_utc, utcnow
from ..repositories import UserRepository

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class UserService:
    """High-level business operations for ``User`` entities."""

    def __init__(self, session: AsyncSession, settings: Settings, *, clock: Clock = utcnow) -> None:
        self._session = session
        self._settings = settings
        self._clock = clock
        self._repository = UserRepository(session)

    @property
    def repository(self) -> UserRepository:
        return self._repository

    async def create_user(
        self,
        *,
        email: str,
        name: str,
        password: str,
        role: UserRole = UserRole.USER,
        is_active: bool = True,
    ) -> User:
        """Persist a new user, refusing duplicate email addresses."""
        normalised_email = email.strip().lower()
        if await self._repository.email_exists(normalised_email):
            raise ConflictError("User with this email already exists")
        user = User(
            email=normalised_email,
            name=name.strip(),
            hashed_password=get_password_hash(password),
            role=role,
            is_active=is_active,
        )
        await self._repository.add(user)
        await self._session.commit()
        await self._repository.refresh(user)
        logger.info("User registered", extra={"user_id": user.id, "email": user.email})
        return user

    async def get_user(self, user_id: str) -> User | None:
        return await self._repository.get(user_id)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._repository.get_by_email(email)

    @staticmethod
    def verify_password(user: User, candidate: str) -> bool:
        return verify_password(candidate, user.hashed_password)

    def is_locked(self, user: User) -> bool:
        """Return ``True`` while the user's lock window is still open."""
        lock_until = ensure_utc(user.lock_until)
        return lock_until is not None and self._clock() < lock_until

    async def record_failed_login(self, user: User) -> bool:
        """Count a failed attempt, locking the account at the threshold.

        Returns ``True`` when this attempt locked the account.
        """
        if user.lock_until is not None and not self.is_locked(user):
            user.lock_until = None

        user.failed_login_attempts += 1
        locked = False
        if user.failed_login_attempts >= self._settings.max_login_attempts:
            user.lock_until = self._clock() + timedelta(minutes=self._settings.lock_time_minutes)
            user.failed_login_attempts = 0
            locked = True
        self._session.add(user)
        await self._session.commit()

        if locked:
            logger.warning(
                "Account locked after repeated failed logins",
                extra={"user_id": user.id, "lock_until": user.lock_until.isoformat()},
            )
        return locked

    async def reset_login_attempts(self, user: User) -> None:
        if user.failed_login_attempts == 0 and user.lock_until is None:
            return
        user.failed_login_attempts = 0
        user.lock_until = None
        self._session.add(user)
        await self._session.commit()


__all__ = ["Clock", "UserService"]
