"""Task-related Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import ConfigDict, Field, StringConstraints, field_validator, model_validator

from ..models import Task, TaskPermission, TaskPriority, TaskShare, TaskStatus, ensure_utc
from .common import CamelModel, ObjectIdStr, UtcDatetime
from .user import UserSummary

TagName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]

TASK_READ_EXAMPLE = {
    "id": "65f1c0ffee0ddba11c0ffee1",
    "title": "Draft product documentation",
    "description": "Outline sections for the public API guide.",
    "status": TaskStatus.IN_PROGRESS.value,
    "priority": TaskPriority.HIGH.value,
    "dueDate": "2024-04-01T12:00:00Z",
    "tags": ["docs"],
    "owner": {"id": "65f1c0ffee0ddba11c0ffee0", "email": "demo@example.com", "name": "Demo User"},
    "sharedWith": [],
    "createdAt": "2024-03-01T12:00:00Z",
    "updatedAt": "2024-03-02T08:30:00Z",
}


def _dedupe(tags: list[str]) -> list[str]:
    seen: dict[str, None] = {}
    for tag in tags:
        seen.setdefault(tag, None)
    return list(seen)


class TaskCreate(CamelModel):
    """Payload for creating a new task."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Draft product documentation",
                "description": "Outline sections for the public API guide.",
                "priority": TaskPriority.HIGH.value,
                "tags": ["docs"],
            }
        }
    )

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(default="", max_length=2000)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: datetime | None = None
    tags: list[TagName] = Field(default_factory=list)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="after")
    @classmethod
    def _unique_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)


class TaskUpdate(CamelModel):
    """Payload for partially updating an existing task.

    Only fields present in the request are applied; ``dueDate`` may be set to
    ``null`` to clear it.
    """

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    due_date: datetime | None = None
    tags: list[TagName] | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("tags", mode="after")
    @classmethod
    def _unique_tags(cls, value: list[str] | None) -> list[str] | None:
        return _dedupe(value) if value is not None else None

    @model_validator(mode="after")
    def _validate_fields(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update.")
        for name in ("title", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def changes(self) -> dict[str, Any]:
        """Return only the fields supplied by the client."""
        values = self.model_dump(exclude_unset=True)
        if "description" in values and values["description"] is None:
            values["description"] = ""
        if "tags" in values and values["tags"] is None:
            values["tags"] = []
        return values


class ShareRequest(CamelModel):
    user_id: ObjectIdStr
    permission: TaskPermission = TaskPermission.VIEW


class ShareRead(CamelModel):
    model_config = ConfigDict(from_attributes=True)

    user: UserSummary
    permission: TaskPermission
    shared_at: UtcDatetime

    @classmethod
    def from_model(cls, share: TaskShare) -> "ShareRead":
        return cls(
            user=UserSummary.model_validate(share.user),
            permission=share.permission,
            shared_at=share.created_at,
        )


class TaskRead(CamelModel):
    """Public representation of a task."""

    model_config = ConfigDict(json_schema_extra={"example": TASK_READ_EXAMPLE})

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    due_date: UtcDatetime | None = None
    tags: list[str]
    owner: UserSummary
    shared_with: list[ShareRead]
    created_at: UtcDatetime
    updated_at: UtcDatetime

    @classmethod
    def from_model(cls, task: Task) -> "TaskRead":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            priority=task.priority,
            due_date=ensure_utc(task.due_date),
            tags=task.tags,
            owner=UserSummary.model_validate(task.owner),
            shared_with=[ShareRead.from_model(share) for share in task.shares],
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskEnvelope(CamelModel):
    task: TaskRead


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    pages: int


class TaskListPayload(CamelModel):
    tasks: list[TaskRead]
    pagination: Pagination


__all__ = [
    "Pagination",
    "ShareRead",
    "ShareRequest",
    "TaskCreate",
    "TaskEnvelope",
    "TaskListPayload",
    "TaskRead",
    "TaskUpdate",
]
