"""Service layer orchestrating repositories, access checks and auditing."""

from __future__ import annotations

from .auth import AuthResult, AuthService, TokenPair
from .tasks import TaskPage, TaskService
from .users import UserService

__all__ = ["AuthResult", "AuthService", "TaskPage", "TaskService", "TokenPair", "UserService"]
