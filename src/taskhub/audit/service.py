from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pymongo import DESCENDING

from .models import AuditAction, AuditEntityType, AuditEntry

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..models.task import Task
    from ..models.user import User

logger = logging.getLogger(__name__)

MAX_QUERY_LIMIT = 200


def _ensure_tzaware(timestamp: datetime) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def serialise_value(value: Any) -> Any:
    """Convert enums, timestamps and containers into BSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return _ensure_tzaware(value).isoformat()
    if isinstance(value, Mapping):
        return {str(key): serialise_value(val) for key, val in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [serialise_value(item) for item in value]
    return value


def _normalise(mapping: Mapping[str, Any] | None) -> dict[str, Any]:
    if not mapping:
        return {}
    return {str(key): serialise_value(value) for key, value in mapping.items()}


def shares_snapshot(task: "Task") -> list[dict[str, str]]:
    return [{"userId": share.user_id, "permission": share.permission.value} for share in task.shares]


class AuditLogService:
    """Append and query audit entries.

    Writes are awaited by the caller, but a storage failure is logged and
    swallowed so the audited operation still succeeds.
    """

    def __init__(self, *, default_limit: int = 50) -> None:
        self._default_limit = min(max(default_limit, 1), MAX_QUERY_LIMIT)

    async def append(
        self,
        *,
        action: AuditAction,
        entity_type: AuditEntityType,
        entity_id: str,
        actor: "User" | None = None,
        changes: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> AuditEntry | None:
        entry = AuditEntry(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=getattr(actor, "id", None),
            user_email=getattr(actor, "email", None),
            user_name=getattr(actor, "name", None),
            changes=_normalise(changes),
            metadata=_normalise(metadata),
        )
        try:
            await entry.insert()
        except Exception:
            logger.exception(
                "Failed to write audit entry",
                extra={
                    "action": action.value,
                    "entity_type": entity_type.value,
                    "entity_id": entity_id,
                },
            )
            return None
        return entry

    async def record_user_registered(self, user: "User") -> AuditEntry | None:
        return await self.append(
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.USER,
            entity_id=user.id,
            actor=user,
            metadata={"email": user.email},
        )

    async def record_login(self, user: "User", *, ip_address: str | None = None) -> AuditEntry | None:
        return await self.append(
            action=AuditAction.LOGIN,
            entity_type=AuditEntityType.USER,
            entity_id=user.id,
            actor=user,
            metadata={"ip": ip_address} if ip_address else None,
        )

    async def record_login_failure(
        self,
        user: "User",
        *,
        reason: str,
        failed_attempts: int,
        ip_address: str | None = None,
    ) -> AuditEntry | None:
        metadata: dict[str, Any] = {"reason": reason, "failedAttempts": failed_attempts}
        if ip_address:
            metadata["ip"] = ip_address
        return await self.append(
            action=AuditAction.LOGIN_FAILURE,
            entity_type=AuditEntityType.USER,
            entity_id=user.id,
            actor=user,
            metadata=metadata,
        )

    async def record_task_created(
        self,
        *,
        actor: "User",
        task: "Task",
        fields: Mapping[str, Any],
    ) -> AuditEntry | None:
        return await self.append(
            action=AuditAction.CREATE,
            entity_type=AuditEntityType.TASK,
            entity_id=task.id,
            actor=actor,
            changes=fields,
        )

    async def record_task_updated(
        self,
        *,
        actor: "User",
        task: "Task",
        changes: Mapping[str, Any],
        metadata: Mapping[str, Any] | None = None,
    ) -> AuditEntry | None:
        return await self.append(
            action=AuditAction.UPDATE,
            entity_type=AuditEntityType.TASK,
            entity_id=task.id,
            actor=actor,
            changes=changes,
            metadata=metadata,
        )

    async def record_task_deleted(self, *, actor: "User", task: "Task") -> AuditEntry | None:
        return await self.append(
            action=AuditAction.DELETE,
            entity_type=AuditEntityType.TASK,
            entity_id=task.id,
            actor=actor,
            metadata={"title": task.title},
        )

    async def record_share_change(
        self,
        *,
        actor: "User",
        task: "Task",
        operation: str,
        before: Sequence[Mapping[str, str]],
        after: Sequence[Mapping[str, str]],
    ) -> AuditEntry | None:
        return await self.record_task_updated(
            actor=actor,
            task=task,
            changes={"shares": {"old": list(before), "new": list(after)}},
            metadata={"operation": operation},
        )

    async def query_for_task(self, task_id: str, *, limit: int | None = None) -> list[AuditEntry]:
        """Return the newest entries recorded against ``task_id``."""
        page_size = self._default_limit if limit is None else min(max(int(limit), 1), MAX_QUERY_LIMIT)
        return (
            await AuditEntry.find(
                {"entity_type": AuditEntityType.TASK.value, "entity_id": task_id},
            )
            .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
            .limit(page_size)
            .to_list()
        )


__all__ = ["MAX_QUERY_LIMIT", "AuditLogService", "serialise_value", "shares_snapshot"]
