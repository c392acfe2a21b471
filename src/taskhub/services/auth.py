"""Authentication service encapsulating registration, login and token flows."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlmodel.ext.asyncio.session import AsyncSession

from ..audit import AuditLogService
from ..core.config import Settings
from ..core.security import GeneratedToken, TokenService, TokenType
from ..errors import InvalidTokenError, LockedError, UnauthorizedError
from ..models import User, utcnow
from .users import Clock, UserService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


@dataclass(slots=True)
class TokenPair:
    """Container for access and refresh tokens."""

    access: GeneratedToken
    refresh: GeneratedToken


@dataclass(slots=True)
class AuthResult:
    user: User
    tokens: TokenPair


class AuthService:
    """Registration, credential checks and refresh-token rotation."""

    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        *,
        tokens: TokenService,
        audit: AuditLogService,
        clock: Clock = utcnow,
    ) -> None:
        self._session = session
        self._settings = settings
        self._tokens = tokens
        self._audit = audit
        self._users = UserService(session, settings, clock=clock)

    @property
    def users(self) -> UserService:
        return self._users

    async def _issue_pair(self, user: User) -> TokenPair:
        access = self._tokens.issue_access_token(user.id, user.role.value)
        refresh = self._tokens.issue_refresh_token(user.id)
        # only the newest refresh token is honoured
        user.refresh_token_id = refresh.jti
        self._session.add(user)
        await self._session.commit()
        return TokenPair(access=access, refresh=refresh)

    async def register(self, *, email: str, name: str, password: str) -> AuthResult:
        user = await self._users.create_user(email=email, name=name, password=password)
        await self._audit.record_user_registered(user)
        tokens = await self._issue_pair(user)
        return AuthResult(user=user, tokens=tokens)

    async def login(self, *, email: str, password: str, ip_address: str | None = None) -> AuthResult:
        """Check credentials, applying the failed-attempt lockout."""
        user = await self._users.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info("Login rejected for unknown or inactive account", extra={"email": email})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if self._users.is_locked(user):
            logger.warning("Login attempt on locked account", extra={"user_id": user.id})
            raise LockedError()

        if not self._users.verify_password(user, password):
            # the counter restarts once the account locks
            attempt = user.failed_login_attempts + 1
            locked = await self._users.record_failed_login(user)
            await self._audit.record_login_failure(
                user,
                failed_attempts=attempt,
                reason="account_locked" if locked else "invalid_password",
                ip_address=ip_address,
            )
            logger.info("Failed login", extra={"user_id": user.id, "locked": locked})
            raise UnauthorizedError(INVALID_CREDENTIALS)

        await self._users.reset_login_attempts(user)
        tokens = await self._issue_pair(user)
        await self._audit.record_login(user, ip_address=ip_address)
        logger.info("User logged in", extra={"user_id": user.id})
        return AuthResult(user=user, tokens=tokens)

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange a current refresh token for a new pair, rotating it."""
        payload = self._tokens.verify(refresh_token, TokenType.REFRESH)
        user = await self._users.get_user(payload.user_id)
        if user is None or not user.is_active:
            raise UnauthorizedError("User no longer exists or is inactive.")
        if user.refresh_token_id != payload.jti:
            logger.warning("Stale refresh token presented", extra={"user_id": user.id})
            raise InvalidTokenError("Refresh token has been revoked.")
        return await self._issue_pair(user)


__all__ = ["AuthResult", "AuthService", "TokenPair"]
