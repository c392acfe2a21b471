"""Task workflows: access-checked mutations with audit trail."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic.alias_generators import to_camel
from sqlmodel.ext.asyncio.session import AsyncSession

from ..audit import AuditEntry, AuditLogService
from ..audit.service import shares_snapshot
from ..errors import NotFoundError, ValidationError
from ..models import Task, TaskPermission, TaskShare, TaskTag, User, ensure_utc
from ..repositories import TaskFilters, TaskRepository, UserRepository
from ..schemas.common import ErrorDetail
from ..schemas.task import TaskCreate, TaskUpdate
from . import access

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskPage:
    tasks: list[Task]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _set_tags(task: Task, names: list[str]) -> None:
    # reuse rows for kept names so the (task_id, name) constraint holds on flush
    existing = {link.name: link for link in task.tag_links}
    task.tag_links = [existing.get(name) or TaskTag(name=name) for name in names]


class TaskService:
    """Business operations over tasks, enforcing ownership and share rules."""

    def __init__(
        self,
        session: AsyncSession,
        audit: AuditLogService,
        *,
        max_page_size: int = 100,
    ) -> None:
        self._session = session
        self._audit = audit
        self._max_page_size = max_page_size
        self._repository = TaskRepository(session)
        self._users = UserRepository(session)

    @property
    def repository(self) -> TaskRepository:
        return self._repository

    async def _load(self, task_id: str, *, reload: bool = False) -> Task:
        task = await self._repository.get_active(task_id, reload=reload)
        if task is None:
            raise NotFoundError("Task not found")
        return task

    async def create_task(self, actor: User, payload: TaskCreate) -> Task:
        task = Task(
            title=payload.title,
            description=payload.description,
            status=payload.status,
            priority=payload.priority,
            due_date=payload.due_date,
            owner_id=actor.id,
        )
        task.tag_links = [TaskTag(name=name) for name in payload.tags]
        await self._repository.add(task)
        await self._session.commit()
        task = await self._load(task.id, reload=True)

        await self._audit.record_task_created(
            actor=actor,
            task=task,
            fields=payload.model_dump(mode="json", by_alias=True),
        )
        logger.info("Task created", extra={"task_id": task.id, "owner_id": actor.id})
        return task

    async def get_task(self, actor: User, task_id: str) -> Task:
        task = await self._load(task_id)
        access.ensure_can_read(task, actor.id)
        return task

    async def list_tasks(self, actor: User, filters: TaskFilters) -> TaskPage:
        """Page through tasks the actor owns or that are shared with them."""
        filters.limit = min(max(filters.limit, 1), self._max_page_size)
        filters.page = max(filters.page, 1)
        total = await self._repository.count_for_user(actor.id, filters)
        tasks = await self._repository.list_for_user(actor.id, filters)
        return TaskPage(tasks=tasks, total=total, page=filters.page, limit=filters.limit)

    async def update_task(self, actor: User, task_id: str, payload: TaskUpdate) -> Task:
        """Apply the supplied fields and audit a per-field old/new diff.

        Fields whose value does not change are left out of the diff.
        """
        task = await self._load(task_id)
        access.ensure_can_update(task, actor.id)

        diff: dict[str, dict[str, Any]] = {}
        for field_name, new_value in payload.changes().items():
            old_value = task.tags if field_name == "tags" else getattr(task, field_name)
            if _comparable(old_value) == _comparable(new_value):
                continue
            diff[to_camel(field_name)] = {"old": old_value, "new": new_value}
            if field_name == "tags":
                _set_tags(task, new_value)
            else:
                setattr(task, field_name, new_value)

        if diff:
            self._session.add(task)
            await self._session.commit()
            task = await self._load(task_id, reload=True)
            await self._audit.record_task_updated(actor=actor, task=task, changes=diff)
            logger.info(
                "Task updated",
                extra={"task_id": task.id, "fields": sorted(diff)},
            )
        return task

    async def delete_task(self, actor: User, task_id: str) -> None:
        """Soft-delete the task; the row stays in storage."""
        task = await self._load(task_id)
        access.ensure_can_delete(task, actor.id)
        task.is_deleted = True
        self._session.add(task)
        await self._session.commit()
        await self._audit.record_task_deleted(actor=actor, task=task)
        logger.info("Task deleted", extra={"task_id": task.id})

    async def share_task(
        self,
        actor: User,
        task_id: str,
        *,
        user_id: str,
        permission: TaskPermission,
    ) -> Task:
        """Grant or change a collaborator's permission on a task."""
        task = await self._load(task_id)
        access.ensure_can_share(task, actor.id)
        if user_id == task.owner_id:
            raise ValidationError(
                "Cannot share a task with its owner",
                errors=[ErrorDetail(field="userId", message="The owner already has full access")],
            )
        if await self._users.get(user_id) is None:
            raise NotFoundError("User not found")

        before = shares_snapshot(task)
        share = task.share_for(user_id)
        if share is not None:
            share.permission = permission
        else:
            task.shares.append(TaskShare(user_id=user_id, permission=permission))
        self._session.add(task)
        await self._session.commit()
        task = await self._load(task_id, reload=True)

        await self._audit.record_share_change(
            actor=actor,
            task=task,
            operation="share",
            before=before,
            after=shares_snapshot(task),
        )
        logger.info(
            "Task shared",
            extra={"task_id": task.id, "shared_with": user_id, "permission": permission.value},
        )
        return task

    async def unshare_task(self, actor: User, task_id: str, *, user_id: str) -> Task:
        """Remove a collaborator; removing an absent user is not an error."""
        task = await self._load(task_id)
        access.ensure_can_unshare(task, actor.id)

        before = shares_snapshot(task)
        share = task.share_for(user_id)
        if share is not None:
            task.shares.remove(share)
            self._session.add(task)
            await self._session.commit()
            task = await self._load(task_id, reload=True)

        await self._audit.record_share_change(
            actor=actor,
            task=task,
            operation="unshare",
            before=before,
            after=shares_snapshot(task),
        )
        logger.info("Task unshared", extra={"task_id": task.id, "unshared": user_id})
        return task

    async def audit_log(self, actor: User, task_id: str, *, limit: int | None = None) -> list[AuditEntry]:
        """Return the task's audit entries once read access is confirmed."""
        task = await self._load(task_id)
        access.ensure_can_read(task, actor.id)
        return await self._audit.query_for_task(task.id, limit=limit)


__all__ = ["TaskPage", "TaskService"]
