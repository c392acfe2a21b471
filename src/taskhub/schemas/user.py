"""User-facing schemas."""

from __future__ import annotations

from pydantic import ConfigDict, EmailStr

from ..models import UserRole
from .common import CamelModel, UtcDatetime


class UserSummary(CamelModel):
    """Minimal user details embedded in task payloads."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: EmailStr
    name: str


class UserPublic(UserSummary):
    """Public representation of a user account."""

    role: UserRole
    is_active: bool
    created_at: UtcDatetime


class ProfilePayload(CamelModel):
    user: UserPublic


__all__ = ["ProfilePayload", "UserPublic", "UserSummary"]
