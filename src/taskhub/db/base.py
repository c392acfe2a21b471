"""Import every table model so ``SQLModel.metadata`` is complete."""

from __future__ import annotations

from sqlmodel import SQLModel

from ..models import Task, TaskShare, TaskTag, User

metadata = SQLModel.metadata

__all__ = ["Task", "TaskShare", "TaskTag", "User", "metadata"]
