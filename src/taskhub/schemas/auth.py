"""Schemas describing authentication payloads."""

from __future__ import annotations

import re

from pydantic import EmailStr, Field, field_validator, model_validator

from .common import CamelModel
from .user import UserPublic

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")


class RegisterRequest(CamelModel):
    """Incoming payload for registering a new user."""

    email: EmailStr
    name: str = Field(min_length=2, max_length=100)
    # bcrypt only considers the first 72 bytes
    password: str = Field(min_length=6, max_length=72)
    confirm_password: str

    @field_validator("email", mode="after")
    @classmethod
    def _lowercase_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("password")
    @classmethod
    def _password_strength(cls, value: str) -> str:
        if not _LETTER.search(value) or not _DIGIT.search(value):
            raise ValueError("Password must contain at least one letter and one number")
        return value

    @model_validator(mode="after")
    def _passwords_match(self) -> "RegisterRequest":
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(CamelModel):
    """Request payload for refreshing JWT tokens."""

    refresh_token: str = Field(min_length=1)


class TokenPairPayload(CamelModel):
    access_token: str
    refresh_token: str


class AuthPayload(TokenPairPayload):
    """Issued tokens together with the authenticated user."""

    user: UserPublic


__all__ = [
    "AuthPayload",
    "LoginRequest",
    "RefreshRequest",
    "RegisterRequest",
    "TokenPairPayload",
]
