"""API routers."""

from __future__ import annotations

from . import auth, health, tasks

__all__ = ["auth", "health", "tasks"]
