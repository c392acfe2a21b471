"""Ownership and share-permission checks for tasks."""

from __future__ import annotations

from ..errors import ForbiddenError
from ..models import Task, TaskPermission

_EDIT_PERMISSIONS = frozenset({TaskPermission.EDIT, TaskPermission.ADMIN})


def effective_permission(task: Task, user_id: str) -> TaskPermission | None:
    """Owner gets ``admin``; collaborators get their share's permission."""
    if task.owner_id == user_id:
        return TaskPermission.ADMIN
    share = task.share_for(user_id)
    return share.permission if share is not None else None


def is_owner(task: Task, user_id: str) -> bool:
    return task.owner_id == user_id


def can_read(task: Task, user_id: str) -> bool:
    return effective_permission(task, user_id) is not None


def can_update(task: Task, user_id: str) -> bool:
    return effective_permission(task, user_id) in _EDIT_PERMISSIONS


def ensure_can_read(task: Task, user_id: str) -> None:
    if not can_read(task, user_id):
        raise ForbiddenError("You do not have access to this task")


def ensure_can_update(task: Task, user_id: str) -> None:
    if not can_update(task, user_id):
        raise ForbiddenError("You do not have permission to edit this task")


def ensure_can_delete(task: Task, user_id: str) -> None:
    if not is_owner(task, user_id):
        raise ForbiddenError("You do not have permission to delete this task")


def ensure_can_share(task: Task, user_id: str) -> None:
    if not is_owner(task, user_id):
        raise ForbiddenError("You do not have permission to share this task")


def ensure_can_unshare(task: Task, user_id: str) -> None:
    if not is_owner(task, user_id):
        raise ForbiddenError("You do not have permission to modify sharing on this task")


__all__ = [
    "can_read",
    "can_update",
    "effective_permission",
    "ensure_can_delete",
    "ensure_can_read",
    "ensure_can_share",
    "ensure_can_unshare",
    "ensure_can_update",
    "is_owner",
]
