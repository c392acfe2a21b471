"""Repository layer for persistence operations."""

from __future__ import annotations

from .base import BaseRepository
from .tasks import TaskFilters, TaskRepository
from .users import UserRepository

__all__ = ["BaseRepository", "TaskFilters", "TaskRepository", "UserRepository"]
