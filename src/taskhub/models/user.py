"""User domain models built with SQLModel."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

import sqlalchemy as sa
from sqlmodel import Field, SQLModel

from .common import TimestampMixin, new_object_id


class UserRole(str, Enum):
    """Roles supported by the authentication system."""

    USER = "user"
    ADMIN = "admin"


class UserBase(SQLModel, table=False):
    """Shared attributes for user models."""

    email: str = Field(
        max_length=320,
        sa_column=sa.Column(
            sa.String(length=320),
            nullable=False,
            unique=True,
        ),
    )
    name: str = Field(
        max_length=100,
        sa_column=sa.Column(sa.String(length=100), nullable=False),
    )
    is_active: bool = Field(
        default=True,
        sa_column=sa.Column(
            sa.Boolean(),
            nullable=False,
            server_default=sa.true(),
        ),
    )
    role: UserRole = Field(
        default=UserRole.USER,
        sa_column=sa.Column(
            sa.Enum(
                UserRole,
                name="user_role",
                native_enum=False,
                values_callable=lambda members: [member.value for member in members],
            ),
            nullable=False,
            server_default=UserRole.USER.value,
        ),
    )


class User(UserBase, TimestampMixin, table=True):
    """Persistent user model, including the login lockout counters."""

    __tablename__ = "users"
    __table_args__ = (sa.Index("ix_users_email", "email"),)

    id: str = Field(
        default_factory=new_object_id,
        sa_column=sa.Column(sa.String(length=24), primary_key=True),
    )
    hashed_password: str = Field(
        max_length=255,
        sa_column=sa.Column(sa.String(length=255), nullable=False),
    )
    failed_login_attempts: int = Field(
        default=0,
        sa_column=sa.Column(sa.Integer(), nullable=False, server_default="0"),
    )
    lock_until: datetime | None = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True),
    )
    # jti of the only refresh token currently accepted for this user
    refresh_token_id: str | None = Field(
        default=None,
        sa_column=sa.Column(sa.String(length=64), nullable=True),
    )


__all__ = ["User", "UserBase", "UserRole"]
