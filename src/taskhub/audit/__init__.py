"""Audit logging backed by a MongoDB collection with a TTL index."""

from __future__ import annotations

from .models import AuditAction, AuditEntityType, AuditEntry
from .service import AuditLogService
from .store import AuditStore

__all__ = [
    "AuditAction",
    "AuditEntityType",
    "AuditEntry",
    "AuditLogService",
    "AuditStore",
]
