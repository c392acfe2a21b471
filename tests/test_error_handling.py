from __future__ import annotations

import logging
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError

from taskhub.audit import AuditStore
from taskhub.core.config import Settings
from taskhub.core.logging import RequestContextFilter
from taskhub.core.rate_limit import RateLimiter
from taskhub.db.session import Database
from taskhub.errors import ApplicationError
from taskhub.main import create_app
from taskhub.schemas import ErrorDetail

pytestmark = pytest.mark.asyncio


class ExamplePayload(BaseModel):
    name: str


@pytest_asyncio.fixture
async def raw_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client


async def test_application_error_uses_envelope(app: FastAPI, client: AsyncClient) -> None:
    @app.get("/error/application")
    async def trigger_application_error() -> None:  # pragma: no cover - defined in test
        raise ApplicationError(
            "Example failure",
            status_code=status.HTTP_418_IM_A_TEAPOT,
            errors=[ErrorDetail(field="title", message="Title is required")],
        )

    response = await client.get("/error/application")

    assert response.status_code == status.HTTP_418_IM_A_TEAPOT
    assert response.json() == {
        "success": False,
        "message": "Example failure",
        "errors": [{"field": "title", "message": "Title is required"}],
    }
    assert response.headers["X-Request-ID"]


async def test_validation_error_returns_400_with_field_list(app: FastAPI, client: AsyncClient) -> None:
    @app.post("/error/validation")
    async def create_item(_: ExamplePayload) -> None:  # pragma: no cover - defined in test
        return None

    response = await client.post("/error/validation", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    payload = response.json()
    assert payload["success"] is False
    assert payload["message"] == "Validation error"
    assert payload["errors"][0]["field"] == "name"


async def test_unknown_route_names_the_path(client: AsyncClient) -> None:
    response = await client.get("/error/not-found")

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json() == {"success": False, "message": "Route /error/not-found not found"}


async def test_integrity_error_maps_to_conflict(app: FastAPI, client: AsyncClient) -> None:
    @app.get("/error/database")
    async def trigger_integrity_error() -> None:  # pragma: no cover - defined in test
        raise IntegrityError("statement", {}, Exception("constraint"))

    response = await client.get("/error/database")

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["message"] == "Resource conflicts with existing data."


async def test_unhandled_error_exposes_detail_outside_production(app: FastAPI, raw_client: AsyncClient) -> None:
    @app.get("/error/unhandled")
    async def trigger_unhandled_error() -> None:  # pragma: no cover - defined in test
        raise RuntimeError("Sensitive detail")

    response = await raw_client.get("/error/unhandled")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    payload = response.json()
    assert payload["message"] == "Internal server error."
    assert payload["errors"] == [{"message": "RuntimeError: Sensitive detail"}]


async def test_unhandled_error_hides_detail_in_production(
    database: Database,
    audit_store: AuditStore,
    rate_limiter: RateLimiter,
) -> None:
    settings = Settings(environment="production", jwt_secret_key="prod-secret", jwt_refresh_secret_key="prod-refresh")
    app = create_app(settings, database=database, audit_store=audit_store, rate_limiter=rate_limiter)

    @app.get("/error/unhandled")
    async def trigger_unhandled_error() -> None:  # pragma: no cover - defined in test
        raise RuntimeError("Sensitive detail")

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        response = await http_client.get("/error/unhandled")

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    assert response.json() == {"success": False, "message": "Internal server error."}
    assert "Sensitive" not in response.text


async def test_incoming_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-from-client"})

    assert response.headers["X-Request-ID"] == "req-from-client"


class _InMemoryHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.INFO)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


async def test_request_id_attached_to_logs(app: FastAPI, client: AsyncClient) -> None:
    logger = logging.getLogger("tests.error_handling")
    handler = _InMemoryHandler()
    handler.addFilter(RequestContextFilter())
    logger.addHandler(handler)
    original_level = logger.level
    logger.setLevel(logging.INFO)

    @app.get("/log")
    async def emit_log() -> dict[str, str]:  # pragma: no cover - defined in test
        logger.info("Log entry")
        return {"status": "ok"}

    try:
        response = await client.get("/log")
    finally:
        logger.removeHandler(handler)
        logger.setLevel(original_level)
        handler.close()

    request_id = response.headers["X-Request-ID"]
    matching = [record for record in handler.records if record.getMessage() == "Log entry"]
    assert matching
    assert getattr(matching[0], "request_id", None) == request_id
