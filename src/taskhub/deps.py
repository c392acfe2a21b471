"""Reusable FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from slowapi.util import get_remote_address
from sqlmodel.ext.asyncio.session import AsyncSession

from .audit import AuditLogService
from .core.config import Settings
from .core.context import bind_user_id
from .core.rate_limit import GENERAL, RateLimiter
from .core.security import TokenService, TokenType
from .db.session import Database
from .errors import UnauthorizedError
from .models import User
from .repositories import UserRepository
from .services import AuthService, TaskService

_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


SettingsDependency = Annotated[Settings, Depends(get_app_settings)]


async def get_db_session(database: Annotated[Database, Depends(get_database)]) -> AsyncIterator[AsyncSession]:
    """Yield a request-scoped database session."""

    async with database.session() as session:
        yield session


DatabaseSessionDependency = Annotated[AsyncSession, Depends(get_db_session)]


def get_token_service(settings: SettingsDependency) -> TokenService:
    return TokenService(settings)


def get_audit_service(settings: SettingsDependency) -> AuditLogService:
    return AuditLogService(default_limit=settings.audit_default_limit)


TokenServiceDependency = Annotated[TokenService, Depends(get_token_service)]
AuditServiceDependency = Annotated[AuditLogService, Depends(get_audit_service)]


def get_auth_service(
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    tokens: TokenServiceDependency,
    audit: AuditServiceDependency,
) -> AuthService:
    return AuthService(session, settings, tokens=tokens, audit=audit)


def get_task_service(
    session: DatabaseSessionDependency,
    settings: SettingsDependency,
    audit: AuditServiceDependency,
) -> TaskService:
    return TaskService(session, audit, max_page_size=settings.max_page_size)


AuthServiceDependency = Annotated[AuthService, Depends(get_auth_service)]
TaskServiceDependency = Annotated[TaskService, Depends(get_task_service)]


async def get_current_user(
    token: Annotated[str | None, Depends(_oauth2_scheme)],
    session: DatabaseSessionDependency,
    tokens: TokenServiceDependency,
) -> User:
    """Resolve the bearer access token to an active user."""

    if not token:
        raise UnauthorizedError(
            "Access token is required.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = tokens.verify(token, TokenType.ACCESS)
    user = await UserRepository(session).get(payload.user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError(
            "User no longer exists or is inactive.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    bind_user_id(user.id)
    return user


CurrentUserDependency = Annotated[User, Depends(get_current_user)]


def client_ip(request: Request) -> str:
    """Return the caller's address, honouring only trusted proxy hops.

    Each trusted proxy appends the address it received the request from, so
    the entry ``trusted_proxy_hops`` places from the right is the client as
    seen by the outermost trusted proxy. Anything further left is supplied by
    the client and ignored.
    """

    hops = get_app_settings(request).trusted_proxy_hops
    if hops:
        forwarded = [
            entry.strip() for entry in request.headers.get("x-forwarded-for", "").split(",") if entry.strip()
        ]
        if len(forwarded) >= hops:
            return forwarded[-hops]
    return get_remote_address(request)


def rate_limit_by_ip(rule_name: str) -> Callable[..., Awaitable[None]]:
    """Return a dependency counting requests per client address."""

    async def _dependency(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        limiter.check(rule_name, client_ip(request))

    return _dependency


async def rate_limit_by_user(
    user: CurrentUserDependency,
    limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
) -> None:
    limiter.check(GENERAL, user.id)


__all__ = [
    "AuditServiceDependency",
    "AuthServiceDependency",
    "CurrentUserDependency",
    "DatabaseSessionDependency",
    "SettingsDependency",
    "TaskServiceDependency",
    "TokenServiceDependency",
    "client_ip",
    "get_current_user",
    "get_db_session",
    "rate_limit_by_ip",
    "rate_limit_by_user",
]
