"""Task domain models built with SQLModel."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlmodel import Field, Relationship, SQLModel

from .common import TimestampMixin, new_object_id, object_id_column, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .user import User


def _enum_values(members: type[Enum]) -> list[str]:
    return [member.value for member in members]


class TaskStatus(str, Enum):
    """Enumeration of possible task states."""

    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(str, Enum):
    """Task priorities, ordered from least to most urgent."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {TaskPriority.LOW: 0, TaskPriority.MEDIUM: 1, TaskPriority.HIGH: 2}


class TaskPermission(str, Enum):
    """Permission granted to a collaborator through a share entry."""

    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class TaskBase(SQLModel, table=False):
    """Shared attributes for task models."""

    title: str = Field(
        max_length=200,
        sa_column=sa.Column(sa.String(length=200), nullable=False),
    )
    description: str = Field(
        default="",
        max_length=2000,
        sa_column=sa.Column(sa.Text(), nullable=False, server_default=""),
    )
    status: TaskStatus = Field(
        default=TaskStatus.TODO,
        sa_column=sa.Column(
            sa.Enum(
                TaskStatus,
                name="task_status",
                native_enum=False,
                validate_strings=True,
                values_callable=_enum_values,
            ),
            nullable=False,
            server_default=TaskStatus.TODO.value,
        ),
    )
    priority: TaskPriority = Field(
        default=TaskPriority.MEDIUM,
        sa_column=sa.Column(
            sa.Enum(
                TaskPriority,
                name="task_priority",
                native_enum=False,
                validate_strings=True,
                values_callable=_enum_values,
            ),
            nullable=False,
            server_default=TaskPriority.MEDIUM.value,
        ),
    )
    due_date: datetime | None = Field(
        default=None,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=True),
    )


class Task(TaskBase, TimestampMixin, table=True):
    """Persistent task model with its share entries and tags."""

    __tablename__ = "tasks"
    __table_args__ = (
        sa.CheckConstraint("length(title) > 0", name="ck_tasks_title_length"),
        sa.Index("ix_tasks_owner_id", "owner_id"),
        sa.Index("ix_tasks_owner_id_is_deleted", "owner_id", "is_deleted"),
    )

    id: str = Field(
        default_factory=new_object_id,
        sa_column=sa.Column(sa.String(length=24), primary_key=True),
    )
    owner_id: str = Field(sa_column=object_id_column(foreign_key="users.id"))
    is_deleted: bool = Field(
        default=False,
        sa_column=sa.Column(sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    owner: "User" = Relationship(sa_relationship_kwargs={"lazy": "selectin"})
    shares: list["TaskShare"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "TaskShare.id",
        },
    )
    tag_links: list["TaskTag"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={
            "cascade": "all, delete-orphan",
            "lazy": "selectin",
            "order_by": "TaskTag.id",
        },
    )

    @property
    def tags(self) -> list[str]:
        return [link.name for link in self.tag_links]

    def share_for(self, user_id: str) -> "TaskShare | None":
        """Return the share entry for ``user_id`` if one exists."""
        for share in self.shares:
            if share.user_id == user_id:
                return share
        return None


class TaskShare(SQLModel, table=True):
    """A collaborator's access to a task."""

    __tablename__ = "task_shares"
    __table_args__ = (
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_shares_task_id_user_id"),
        sa.Index("ix_task_shares_user_id", "user_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(sa_column=object_id_column(foreign_key="tasks.id"))
    user_id: str = Field(sa_column=object_id_column(foreign_key="users.id"))
    permission: TaskPermission = Field(
        default=TaskPermission.VIEW,
        sa_column=sa.Column(
            sa.Enum(
                TaskPermission,
                name="task_permission",
                native_enum=False,
                validate_strings=True,
                values_callable=_enum_values,
            ),
            nullable=False,
            server_default=TaskPermission.VIEW.value,
        ),
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=sa.Column(sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    task: Task = Relationship(back_populates="shares")
    user: "User" = Relationship(sa_relationship_kwargs={"lazy": "selectin"})


class TaskTag(SQLModel, table=True):
    """A label attached to a task."""

    __tablename__ = "task_tags"
    __table_args__ = (
        sa.UniqueConstraint("task_id", "name", name="uq_task_tags_task_id_name"),
        sa.Index("ix_task_tags_name", "name"),
    )

    id: int | None = Field(default=None, primary_key=True)
    task_id: str = Field(sa_column=object_id_column(foreign_key="tasks.id"))
    name: str = Field(max_length=50, sa_column=sa.Column(sa.String(length=50), nullable=False))

    task: Task = Relationship(back_populates="tag_links")


__all__ = [
    "Task",
    "TaskBase",
    "TaskPermission",
    "TaskPriority",
    "TaskShare",
    "TaskStatus",
    "TaskTag",
]
