"""Relational domain models."""

from __future__ import annotations

from .common import TimestampMixin, ensure_utc, new_object_id, utcnow
from .task import Task, TaskBase, TaskPermission, TaskPriority, TaskShare, TaskStatus, TaskTag
from .user import User, UserBase, UserRole

__all__ = [
    "Task",
    "TaskBase",
    "TaskPermission",
    "TaskPriority",
    "TaskShare",
    "TaskStatus",
    "TaskTag",
    "TimestampMixin",
    "User",
    "UserBase",
    "UserRole",
    "ensure_utc",
    "new_object_id",
    "utcnow",
]
