from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from itertools import count

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from taskhub.audit import AuditLogService, AuditStore
from taskhub.core.config import Settings
from taskhub.core.rate_limit import RateLimiter
from taskhub.db.session import Database
from taskhub.main import create_app

API = "/api/v1"
DEFAULT_PASSWORD = "Password123"


@dataclass(slots=True)
class AuthenticatedUser:
    id: str
    email: str
    name: str
    password: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


UserFactory = Callable[..., Awaitable[AuthenticatedUser]]


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        environment="test",
        jwt_secret_key="test-access-secret",
        jwt_refresh_secret_key="test-refresh-secret",
        mongo_database="taskhub_test",
        audit_ttl_seconds=3600,
    )


@pytest_asyncio.fixture
async def database() -> AsyncIterator[Database]:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    db = Database(engine)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest_asyncio.fixture
async def audit_store(settings: Settings) -> AsyncIterator[AuditStore]:
    store = AuditStore.from_settings(settings, client=AsyncMongoMockClient())
    await store.init(force=True)
    try:
        yield store
    finally:
        await store.close()


@pytest.fixture()
def audit_service(settings: Settings, audit_store: AuditStore) -> AuditLogService:
    return AuditLogService(default_limit=settings.audit_default_limit)


@pytest.fixture()
def rate_limiter(settings: Settings) -> RateLimiter:
    return RateLimiter.from_settings(settings, storage_uri="memory://")


@pytest.fixture()
def app(
    settings: Settings,
    database: Database,
    audit_store: AuditStore,
    rate_limiter: RateLimiter,
) -> FastAPI:
    return create_app(settings, database=database, audit_store=audit_store, rate_limiter=rate_limiter)


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as http_client:
        yield http_client


@pytest.fixture()
def make_user(client: AsyncClient) -> UserFactory:
    """Register users through the API and keep their issued tokens."""

    counter = count()

    async def _factory(
        *,
        email: str | None = None,
        name: str | None = None,
        password: str = DEFAULT_PASSWORD,
    ) -> AuthenticatedUser:
        index = next(counter)
        actual_email = email or f"user-{index}@example.com"
        actual_name = name or f"User {index}"
        response = await client.post(
            f"{API}/auth/register",
            json={
                "email": actual_email,
                "name": actual_name,
                "password": password,
                "confirmPassword": password,
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()["data"]
        return AuthenticatedUser(
            id=data["user"]["id"],
            email=actual_email,
            name=actual_name,
            password=password,
            access_token=data["accessToken"],
            refresh_token=data["refreshToken"],
        )

    return _factory


@pytest_asyncio.fixture
async def create_task(client: AsyncClient) -> Callable[..., Awaitable[dict]]:
    async def _create(owner: AuthenticatedUser, **fields: object) -> dict:
        payload = {"title": "Write report", **fields}
        response = await client.post(f"{API}/tasks", json=payload, headers=owner.headers)
        assert response.status_code == 201, response.text
        return response.json()["data"]["task"]

    return _create
