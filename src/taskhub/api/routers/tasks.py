"""Routes handling task CRUD, sharing and audit history."""

from __future__ import annotations

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import AfterValidator

from ...deps import CurrentUserDependency, SettingsDependency, TaskServiceDependency, rate_limit_by_user
from ...errors import ValidationError
from ...models import TaskPriority, TaskStatus
from ...repositories.tasks import SORT_FIELDS, TaskFilters
from ...schemas import (
    ApiResponse,
    AuditEntryRead,
    AuditLogPayload,
    ErrorDetail,
    Pagination,
    ShareRequest,
    TaskCreate,
    TaskEnvelope,
    TaskListPayload,
    TaskRead,
    TaskUpdate,
)
from ...schemas.common import OBJECT_ID_PATTERN

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(rate_limit_by_user)])

TaskIdPath = Annotated[
    str,
    Path(pattern=OBJECT_ID_PATTERN, description="Task identifier."),
    AfterValidator(str.lower),
]
PageQuery = Annotated[int, Query(ge=1, description="1-based page number.")]
LimitQuery = Annotated[
    int | None,
    Query(ge=1, le=100, description="Maximum number of tasks to return in a single response."),
]
StatusQuery = Annotated[
    TaskStatus | None,
    Query(description="Filter results to tasks matching the supplied status."),
]
PriorityQuery = Annotated[
    TaskPriority | None,
    Query(description="Filter results to tasks with the supplied priority."),
]
TagsQuery = Annotated[
    str | None,
    Query(description="Comma separated tags; tasks carrying any of them match."),
]
SearchQuery = Annotated[
    str | None,
    Query(max_length=200, description="Case-insensitive search over title and description."),
]
SortByQuery = Annotated[str, Query(alias="sortBy", description="Field to sort by.")]
SortOrderQuery = Annotated[Literal["asc", "desc"], Query(alias="sortOrder")]
AuditLimitQuery = Annotated[int | None, Query(ge=1, le=200, description="Maximum entries to return.")]
UserIdQuery = Annotated[str, Query(alias="userId", pattern=OBJECT_ID_PATTERN), AfterValidator(str.lower)]


def _envelope(task) -> TaskEnvelope:
    return TaskEnvelope(task=TaskRead.from_model(task))


def _parse_tags(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(dict.fromkeys(tag.strip() for tag in raw.split(",") if tag.strip()))


@router.get(
    "",
    response_model=ApiResponse[TaskListPayload],
    summary="List owned and shared tasks with filtering, sorting and pagination",
)
async def list_tasks(
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
    settings: SettingsDependency,
    page: PageQuery = 1,
    limit: LimitQuery = None,
    status: StatusQuery = None,
    priority: PriorityQuery = None,
    tags: TagsQuery = None,
    search: SearchQuery = None,
    sort_by: SortByQuery = "createdAt",
    sort_order: SortOrderQuery = "desc",
) -> ApiResponse[TaskListPayload]:
    if sort_by not in SORT_FIELDS:
        raise ValidationError(
            errors=[
                ErrorDetail(
                    field="sortBy",
                    message=f"sortBy must be one of: {', '.join(sorted(set(SORT_FIELDS)))}",
                )
            ]
        )
    filters = TaskFilters(
        status=status,
        priority=priority,
        tags=_parse_tags(tags),
        search=search or None,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit or settings.default_page_size,
    )
    result = await service.list_tasks(current_user, filters)
    return ApiResponse(
        message="Tasks retrieved successfully",
        data=TaskListPayload(
            tasks=[TaskRead.from_model(task) for task in result.tasks],
            pagination=Pagination(
                total=result.total,
                page=result.page,
                limit=result.limit,
                pages=result.pages,
            ),
        ),
    )


@router.post(
    "",
    response_model=ApiResponse[TaskEnvelope],
    status_code=status.HTTP_201_CREATED,
    summary="Create a task owned by the caller",
)
async def create_task(
    payload: TaskCreate,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[TaskEnvelope]:
    task = await service.create_task(current_user, payload)
    return ApiResponse(message="Task created successfully", data=_envelope(task))


@router.get(
    "/{task_id}",
    response_model=ApiResponse[TaskEnvelope],
    summary="Retrieve a task by id",
)
async def get_task(
    task_id: TaskIdPath,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[TaskEnvelope]:
    task = await service.get_task(current_user, task_id)
    return ApiResponse(message="Task retrieved successfully", data=_envelope(task))


@router.patch(
    "/{task_id}",
    response_model=ApiResponse[TaskEnvelope],
    summary="Partially update a task",
)
async def update_task(
    task_id: TaskIdPath,
    payload: TaskUpdate,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[TaskEnvelope]:
    task = await service.update_task(current_user, task_id, payload)
    return ApiResponse(message="Task updated successfully", data=_envelope(task))


@router.delete(
    "/{task_id}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
    summary="Soft-delete a task",
)
async def delete_task(
    task_id: TaskIdPath,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[None]:
    await service.delete_task(current_user, task_id)
    return ApiResponse(message="Task deleted successfully")


@router.post(
    "/{task_id}/share",
    response_model=ApiResponse[TaskEnvelope],
    summary="Share a task with another user or change their permission",
)
async def share_task(
    task_id: TaskIdPath,
    payload: ShareRequest,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[TaskEnvelope]:
    task = await service.share_task(
        current_user,
        task_id,
        user_id=payload.user_id,
        permission=payload.permission,
    )
    return ApiResponse(message="Task shared successfully", data=_envelope(task))


@router.delete(
    "/{task_id}/share",
    response_model=ApiResponse[TaskEnvelope],
    summary="Remove a user's access to a task",
)
async def unshare_task(
    task_id: TaskIdPath,
    user_id: UserIdQuery,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
) -> ApiResponse[TaskEnvelope]:
    task = await service.unshare_task(current_user, task_id, user_id=user_id)
    return ApiResponse(message="Task unshared successfully", data=_envelope(task))


@router.get(
    "/{task_id}/audit",
    response_model=ApiResponse[AuditLogPayload],
    summary="List audit entries recorded for a task, newest first",
)
async def task_audit_log(
    task_id: TaskIdPath,
    service: TaskServiceDependency,
    current_user: CurrentUserDependency,
    limit: AuditLimitQuery = None,
) -> ApiResponse[AuditLogPayload]:
    entries = await service.audit_log(current_user, task_id, limit=limit)
    return ApiResponse(
        message="Audit logs retrieved successfully",
        data=AuditLogPayload(logs=[AuditEntryRead.from_document(entry) for entry in entries]),
    )
