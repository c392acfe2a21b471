"""Password hashing and JWT issuance/verification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from ..errors import ExpiredTokenError, InvalidTokenError
from .config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class TokenType(str, Enum):
    """Kinds of JWT issued by the API."""

    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(slots=True)
class GeneratedToken:
    """A signed token together with its identifier and expiry."""

    token: str
    expires_at: datetime
    jti: str


class TokenPayload(BaseModel):
    """Validated JWT claims."""

    model_config = ConfigDict(extra="ignore")

    sub: str
    exp: datetime
    iat: datetime
    jti: str
    type: TokenType
    role: str | None = None

    @property
    def user_id(self) -> str:
        return self.sub


def get_password_hash(password: str) -> str:
    """Return a salted bcrypt hash of ``password``."""

    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check ``plain_password`` against a stored hash."""

    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (TypeError, ValueError):
        return False


class TokenService:
    """Issue and verify access and refresh tokens.

    Access and refresh tokens are signed with different secrets, so a refresh
    token never validates as an access token and vice versa.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def _secret_for(self, kind: TokenType) -> str:
        if kind is TokenType.ACCESS:
            return self._settings.jwt_secret_key
        return self._settings.jwt_refresh_secret_key

    def _default_lifetime(self, kind: TokenType) -> timedelta:
        if kind is TokenType.ACCESS:
            return timedelta(minutes=self._settings.access_token_expire_minutes)
        return timedelta(minutes=self._settings.refresh_token_expire_minutes)

    def _issue(
        self,
        *,
        kind: TokenType,
        user_id: str,
        extra_claims: dict[str, Any] | None = None,
        expires_delta: timedelta | None = None,
    ) -> GeneratedToken:
        now = datetime.now(timezone.utc)
        expires_at = now + (expires_delta if expires_delta is not None else self._default_lifetime(kind))
        jti = uuid4().hex
        claims: dict[str, Any] = {
            "sub": str(user_id),
            "iat": now,
            "exp": expires_at,
            "type": kind.value,
            "jti": jti,
        }
        if extra_claims:
            claims.update(extra_claims)
        token = jwt.encode(claims, self._secret_for(kind), algorithm=self._settings.jwt_algorithm)
        return GeneratedToken(token=token, expires_at=expires_at, jti=jti)

    def issue_access_token(
        self,
        user_id: str,
        role: str,
        *,
        expires_delta: timedelta | None = None,
    ) -> GeneratedToken:
        return self._issue(
            kind=TokenType.ACCESS,
            user_id=user_id,
            extra_claims={"role": role},
            expires_delta=expires_delta,
        )

    def issue_refresh_token(
        self,
        user_id: str,
        *,
        expires_delta: timedelta | None = None,
    ) -> GeneratedToken:
        return self._issue(kind=TokenType.REFRESH, user_id=user_id, expires_delta=expires_delta)

    def verify(self, token: str, kind: TokenType) -> TokenPayload:
        """Decode ``token`` as a ``kind`` token or raise a 401 error."""

        label = kind.value.capitalize()
        try:
            claims = jwt.decode(
                token,
                self._secret_for(kind),
                algorithms=[self._settings.jwt_algorithm],
            )
        except ExpiredSignatureError as exc:
            raise ExpiredTokenError(f"{label} token has expired.") from exc
        except JWTError as exc:
            raise InvalidTokenError(f"Invalid {kind.value} token.") from exc

        try:
            payload = TokenPayload.model_validate(claims)
        except PydanticValidationError as exc:
            raise InvalidTokenError(f"Invalid {kind.value} token.") from exc

        if payload.type is not kind:
            raise InvalidTokenError("Invalid token type.")
        return payload


__all__ = [
    "GeneratedToken",
    "TokenPayload",
    "TokenService",
    "TokenType",
    "get_password_hash",
    "pwd_context",
    "verify_password",
]
