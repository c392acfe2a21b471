"""Seed script for populating development data."""

from __future__ import annotations

import asyncio
import logging

from ..audit import AuditLogService, AuditStore
from ..core.config import get_settings
from ..core.logging import configure_logging
from ..models import TaskPermission, TaskPriority, TaskStatus, UserRole
from ..schemas.task import TaskCreate
from ..services import TaskService, UserService
from .session import Database

logger = logging.getLogger(__name__)

DEMO_EMAIL = "demo@example.com"


async def seed(database: Database, audit: AuditLogService) -> bool:
    """Create demo users and tasks; return ``False`` if they already exist."""
    settings = get_settings()
    async with database.session() as session:
        users = UserService(session, settings)
        if await users.get_user_by_email(DEMO_EMAIL) is not None:
            logger.info("Seed data already present; skipping")
            return False

        demo = await users.create_user(email=DEMO_EMAIL, name="Demo User", password="Password123")
        jane = await users.create_user(email="jane@example.com", name="Jane Smith", password="Password123")
        await users.create_user(
            email="admin@example.com",
            name="Admin User",
            password="AdminPass123",
            role=UserRole.ADMIN,
        )

        tasks = TaskService(session, audit)
        roadmap = await tasks.create_task(
            demo,
            TaskCreate(
                title="Plan quarterly roadmap",
                description="Collect input from the team and draft priorities.",
                priority=TaskPriority.HIGH,
                tags=["planning", "team"],
            ),
        )
        await tasks.create_task(
            demo,
            TaskCreate(
                title="Set up local environment",
                description="Install dependencies and run the application.",
                status=TaskStatus.DONE,
                priority=TaskPriority.LOW,
                tags=["setup"],
            ),
        )
        await tasks.create_task(
            jane,
            TaskCreate(
                title="Review pull requests",
                status=TaskStatus.IN_PROGRESS,
                tags=["review"],
            ),
        )
        await tasks.share_task(demo, roadmap.id, user_id=jane.id, permission=TaskPermission.EDIT)
    logger.info("Seed data created")
    return True


async def _main() -> None:
    settings = get_settings()
    configure_logging(settings)
    database = Database.from_settings(settings)
    store = AuditStore.from_settings(settings)
    try:
        await store.init()
        await seed(database, AuditLogService(default_limit=settings.audit_default_limit))
    finally:
        await store.close()
        await database.dispose()


def main() -> None:
    """Entry-point hook for ``python -m`` execution."""
    asyncio.run(_main())


if __name__ == "__main__":  # pragma: no cover - manual execution entry-point
    main()
