from __future__ import annotations

from datetime import timedelta

import pytest
from httpx import AsyncClient
from jose import jwt

from taskhub.audit import AuditAction, AuditEntityType, AuditEntry
from taskhub.core.config import Settings
from taskhub.core.security import TokenService, TokenType

from .conftest import API, AuthenticatedUser, UserFactory

pytestmark = pytest.mark.asyncio


async def test_register_returns_user_and_tokens(client: AsyncClient, settings: Settings) -> None:
    response = await client.post(
        f"{API}/auth/register",
        json={
            "email": "Jane@Example.com",
            "name": "Jane Example",
            "password": "Password123",
            "confirmPassword": "Password123",
        },
    )

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["email"] == "jane@example.com"
    assert user["name"] == "Jane Example"
    assert user["role"] == "user"
    assert user["isActive"] is True
    assert "hashedPassword" not in user
    assert "password" not in user

    claims = jwt.decode(
        body["data"]["accessToken"],
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
    )
    assert claims["sub"] == user["id"]
    assert claims["type"] == TokenType.ACCESS.value
    assert claims["role"] == "user"

    entries = await AuditEntry.find({"entity_type": AuditEntityType.USER.value}).to_list()
    assert [entry.action for entry in entries] == [AuditAction.CREATE]
    assert entries[0].metadata == {"email": "jane@example.com"}


async def test_register_duplicate_email_conflicts(client: AsyncClient, make_user: UserFactory) -> None:
    await make_user(email="taken@example.com")

    response = await client.post(
        f"{API}/auth/register",
        json={
            "email": "TAKEN@example.com",
            "name": "Someone Else",
            "password": "Password123",
            "confirmPassword": "Password123",
        },
    )

    assert response.status_code == 409
    assert response.json() == {"success": False, "message": "User with this email already exists"}


@pytest.mark.parametrize(
    ("payload", "field"),
    [
        ({"password": "Password123", "confirmPassword": "Password124"}, None),
        ({"password": "letters", "confirmPassword": "letters"}, "password"),
        ({"password": "Pa1", "confirmPassword": "Pa1"}, "password"),
        ({"name": "J"}, "name"),
        ({"email": "not-an-email"}, "email"),
    ],
)
async def test_register_validation_errors(client: AsyncClient, payload: dict, field: str | None) -> None:
    body = {
        "email": "valid@example.com",
        "name": "Valid Name",
        "password": "Password123",
        "confirmPassword": "Password123",
        **payload,
    }

    response = await client.post(f"{API}/auth/register", json=body)

    assert response.status_code == 400
    result = response.json()
    assert result["success"] is False
    assert result["message"] == "Validation error"
    if field is not None:
        assert any(error["field"] == field for error in result["errors"])


async def test_login_success_records_audit_entry(client: AsyncClient, make_user: UserFactory) -> None:
    account = await make_user()

    response = await client.post(
        f"{API}/auth/login",
        json={"email": account.email, "password": account.password},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["id"] == account.id
    assert data["accessToken"] and data["refreshToken"]

    logins = await AuditEntry.find({"action": AuditAction.LOGIN.value}).to_list()
    assert len(logins) == 1
    assert logins[0].user_id == account.id


async def test_login_rejects_unknown_email(client: AsyncClient) -> None:
    response = await client.post(
        f"{API}/auth/login",
        json={"email": "ghost@example.com", "password": "Password123"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_account_locks_after_repeated_failures(client: AsyncClient, make_user: UserFactory) -> None:
    account = await make_user()

    for _ in range(5):
        response = await client.post(
            f"{API}/auth/login",
            json={"email": account.email, "password": "WrongPass1"},
        )
        assert response.status_code == 401

    locked = await client.post(
        f"{API}/auth/login",
        json={"email": account.email, "password": account.password},
    )
    assert locked.status_code == 423
    assert locked.json()["message"].startswith("Account is locked")

    failures = await AuditEntry.find({"action": AuditAction.LOGIN_FAILURE.value}).to_list()
    assert len(failures) == 5
    assert [entry.metadata["failedAttempts"] for entry in failures] == [1, 2, 3, 4, 5]
    assert failures[-1].metadata["reason"] == "account_locked"


async def test_refresh_rotates_and_rejects_stale_token(client: AsyncClient, make_user: UserFactory) -> None:
    account = await make_user()

    refreshed = await client.post(f"{API}/auth/refresh", json={"refreshToken": account.refresh_token})
    assert refreshed.status_code == 200
    pair = refreshed.json()["data"]
    assert pair["refreshToken"] != account.refresh_token

    reused = await client.post(f"{API}/auth/refresh", json={"refreshToken": account.refresh_token})
    assert reused.status_code == 401
    assert reused.json()["message"] == "Refresh token has been revoked."

    profile = await client.get(
        f"{API}/auth/profile",
        headers={"Authorization": f"Bearer {pair['accessToken']}"},
    )
    assert profile.status_code == 200
    assert profile.json()["data"]["user"]["email"] == account.email


async def test_access_token_cannot_be_used_for_refresh(client: AsyncClient, make_user: UserFactory) -> None:
    account = await make_user()

    response = await client.post(f"{API}/auth/refresh", json={"refreshToken": account.access_token})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token."


async def test_profile_requires_token(client: AsyncClient) -> None:
    response = await client.get(f"{API}/auth/profile")

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


async def test_expired_access_token_is_rejected(
    client: AsyncClient,
    make_user: UserFactory,
    settings: Settings,
) -> None:
    account: AuthenticatedUser = await make_user()
    expired = TokenService(settings).issue_access_token(account.id, "user", expires_delta=timedelta(seconds=-5))

    response = await client.get(
        f"{API}/auth/profile",
        headers={"Authorization": f"Bearer {expired.token}"},
    )

    assert response.status_code == 401
    assert response.json()["message"] == "Access token has expired."
