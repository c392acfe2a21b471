from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from beanie import Document
from pydantic import ConfigDict, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditAction(str, Enum):
    """State-changing actions recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGIN_FAILURE = "LOGIN_FAILURE"


class AuditEntityType(str, Enum):
    TASK = "TASK"
    USER = "USER"


class AuditEntry(Document):
    """Beanie document capturing one audited action.

    Entries are immutable once written and are removed by the collection's
    TTL index, never by the application.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    action: AuditAction = Field(description="Identifier describing the action.")
    entity_type: AuditEntityType = Field(description="Kind of entity the action applied to.")
    entity_id: str = Field(description="Identifier of the affected entity.")
    user_id: str | None = Field(default=None, description="Identifier of the actor, if known.")
    user_email: str | None = Field(default=None, description="Email address of the actor.")
    user_name: str | None = Field(default=None, description="Display name of the actor.")
    changes: dict[str, Any] = Field(default_factory=dict, description="Per-field old/new values.")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Structured context for the action.")
    created_at: datetime = Field(default_factory=_utcnow, description="When the action happened.")

    @field_validator("user_email", mode="before")
    @classmethod
    def _normalise_email(cls, value: object) -> str | None:
        if value is None:
            return None
        email = str(value).strip().lower()
        return email or None

    @field_validator("changes", "metadata", mode="before")
    @classmethod
    def _ensure_mapping(cls, value: object) -> dict[str, Any]:
        if value is None:
            return {}
        if isinstance(value, Mapping):
            return {str(key): val for key, val in value.items()}
        return {}

    class Settings:
        name = "audit_entries"


__all__ = ["AuditAction", "AuditEntityType", "AuditEntry"]
