"""Task persistence: visibility, filtering, sorting and pagination."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Sequence

import sqlalchemy as sa
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from ..models import Task, TaskPriority, TaskShare, TaskStatus, TaskTag
from .base import BaseRepository

SortOrder = Literal["asc", "desc"]

SORT_FIELDS: dict[str, str] = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "updatedAt": "updated_at",
    "updated_at": "updated_at",
    "dueDate": "due_date",
    "due_date": "due_date",
    "title": "title",
    "status": "status",
    "priority": "priority",
}


@dataclass(slots=True)
class TaskFilters:
    """Criteria accepted by :meth:`TaskRepository.list_for_user`."""

    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    tags: Sequence[str] = field(default_factory=tuple)
    search: str | None = None
    sort_by: str = "created_at"
    sort_order: SortOrder = "desc"
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (max(self.page, 1) - 1) * self.limit


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def not_deleted() -> sa.ColumnElement[bool]:
    """Predicate excluding soft-deleted tasks."""
    return Task.is_deleted.is_(False)


def visible_to(user_id: str) -> sa.ColumnElement[bool]:
    """Tasks the user owns or that were shared with them."""
    shared = sa.exists().where(TaskShare.task_id == Task.id, TaskShare.user_id == user_id)
    return sa.or_(Task.owner_id == user_id, shared)


def _sort_expression(sort_by: str) -> Any:
    column_name = SORT_FIELDS.get(sort_by, "created_at")
    if column_name == "priority":
        return sa.case(
            {priority: priority.rank for priority in TaskPriority},
            value=Task.priority,
        )
    return getattr(Task, column_name)


class TaskRepository(BaseRepository[Task]):
    """Queries over tasks that never return soft-deleted rows."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Task)

    async def get_active(self, task_id: str, *, reload: bool = False) -> Task | None:
        """Return the task unless it is missing or soft-deleted.

        ``reload`` overwrites any instance already held by the session so
        relationship collections reflect the latest committed state.
        """
        statement = select(Task).where(Task.id == task_id, not_deleted())
        if reload:
            statement = statement.execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    def _conditions(self, user_id: str, filters: TaskFilters) -> list[sa.ColumnElement[bool]]:
        conditions = [not_deleted(), visible_to(user_id)]
        if filters.status is not None:
            conditions.append(Task.status == filters.status)
        if filters.priority is not None:
            conditions.append(Task.priority == filters.priority)
        if filters.tags:
            conditions.append(
                sa.exists().where(TaskTag.task_id == Task.id, TaskTag.name.in_(list(filters.tags)))
            )
        if filters.search:
            pattern = f"%{_escape_like(filters.search.strip())}%"
            conditions.append(
                sa.or_(
                    Task.title.ilike(pattern, escape="\\"),
                    Task.description.ilike(pattern, escape="\\"),
                )
            )
        return conditions

    async def list_for_user(self, user_id: str, filters: TaskFilters) -> list[Task]:
        sort_expression = _sort_expression(filters.sort_by)
        if filters.sort_order == "asc":
            ordering = (sort_expression.asc(), Task.id.asc())
        else:
            ordering = (sort_expression.desc(), Task.id.desc())
        statement = (
            select(Task)
            .where(*self._conditions(user_id, filters))
            .order_by(*ordering)
            .offset(filters.offset)
            .limit(filters.limit)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def count_for_user(self, user_id: str, filters: TaskFilters) -> int:
        statement = select(sa.func.count()).select_from(Task).where(*self._conditions(user_id, filters))
        result = await self.session.execute(statement)
        return int(result.scalar_one())


__all__ = ["SORT_FIELDS", "SortOrder", "TaskFilters", "TaskRepository", "not_deleted", "visible_to"]
