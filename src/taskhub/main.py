"""Entry point for the Taskhub FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import auth, health, tasks
from .audit import AuditStore
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware
from .core.rate_limit import RateLimiter
from .db.session import Database
from .errors import register_exception_handlers

logger = logging.getLogger(__name__)


def _normalise_prefix(raw_prefix: str) -> str:
    router_prefix = raw_prefix.strip()
    if router_prefix and not router_prefix.startswith("/"):
        router_prefix = f"/{router_prefix}"
    router_prefix = router_prefix.rstrip("/")
    return "" if router_prefix == "/" else router_prefix


@asynccontextmanager
async def _lifespan(application: FastAPI) -> AsyncIterator[None]:
    """Open the store handles the app was not given and close them on exit."""

    state = application.state
    settings: Settings = state.settings
    closers: list[Callable[[], Awaitable[None]]] = []

    if state.database is None:
        state.database = Database.from_settings(settings)
        closers.append(state.database.dispose)
    if state.audit_store is None:
        state.audit_store = AuditStore.from_settings(settings)
        closers.append(state.audit_store.close)
    if state.rate_limiter is None:
        state.rate_limiter = RateLimiter.from_settings(settings)

    await state.audit_store.init()
    logger.info("Application started", extra={"environment": settings.environment})
    try:
        yield
    finally:
        for close in reversed(closers):
            await close()
        logger.info("Application stopped")


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    audit_store: AuditStore | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    """Instantiate and configure the FastAPI application.

    Store handles passed in are used as-is and left open on shutdown; any
    handle omitted is created from ``settings`` when the app starts.
    """

    settings = settings or get_settings()
    configure_logging(settings)
    router_prefix = _normalise_prefix(settings.api_prefix)

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Collaborative task management API with sharing and audit history.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=f"{router_prefix}/openapi.json",
        lifespan=_lifespan,
    )

    application.state.settings = settings
    application.state.database = database
    application.state.audit_store = audit_store
    application.state.rate_limiter = rate_limiter

    application.add_middleware(CorrelationIdMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    application.include_router(auth.router, prefix=router_prefix)
    application.include_router(tasks.router, prefix=router_prefix)
    application.include_router(health.router)

    register_exception_handlers(application, expose_internal_errors=not settings.is_production)
    return application


def run() -> None:
    """Convenience entry point for the ``taskhub`` console script."""

    settings: Settings = get_settings()
    uvicorn.run(
        "taskhub.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )


__all__ = ["create_app", "run"]
