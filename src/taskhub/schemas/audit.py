"""Audit log response schemas."""

from __future__ import annotations

from typing import Any

from ..audit import AuditAction, AuditEntityType, AuditEntry
from .common import CamelModel, UtcDatetime


class AuditEntryRead(CamelModel):
    id: str
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: str
    user_id: str | None = None
    user_email: str | None = None
    user_name: str | None = None
    changes: dict[str, Any]
    metadata: dict[str, Any]
    created_at: UtcDatetime

    @classmethod
    def from_document(cls, entry: AuditEntry) -> "AuditEntryRead":
        return cls(
            id=str(entry.id),
            action=entry.action,
            entity_type=entry.entity_type,
            entity_id=entry.entity_id,
            user_id=entry.user_id,
            user_email=entry.user_email,
            user_name=entry.user_name,
            changes=entry.changes,
            metadata=entry.metadata,
            created_at=entry.created_at,
        )


class AuditLogPayload(CamelModel):
    logs: list[AuditEntryRead]


__all__ = ["AuditEntryRead", "AuditLogPayload"]
