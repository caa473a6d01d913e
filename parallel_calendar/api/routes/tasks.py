"""Task Routes — CRUD for tasks.

Invariants:
    - Title validation happens once, in Task.validate() via the repository
    - DELETE never cascades to time slots referencing the task
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from parallel_calendar.api.dependencies import (
    get_acting_user, get_task_repository, page_limit,
)
from parallel_calendar.config import Settings, get_settings
from parallel_calendar.core.domain_types import TaskId, UserId
from parallel_calendar.repositories.tasks import SqlTaskRepository
from parallel_calendar.schemas.task import TaskCreate, TaskResponse, TaskUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


@router.post(
    "", response_model=TaskResponse, status_code=status.HTTP_201_CREATED,
)
async def create_task(
    body: TaskCreate,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTaskRepository = Depends(get_task_repository),
):
    task = await repo.create(body.to_domain(acting_user))
    return TaskResponse.from_domain(task)


@router.get("")
async def list_tasks(
    user_id: UUID,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    repo: SqlTaskRepository = Depends(get_task_repository),
    settings: Settings = Depends(get_settings),
):
    limit = page_limit(limit, settings)
    tasks = await repo.list(UserId(user_id), limit=limit, offset=offset)
    return {
        "tasks": [TaskResponse.from_domain(t) for t in tasks],
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: UUID, repo: SqlTaskRepository = Depends(get_task_repository),
):
    return TaskResponse.from_domain(await repo.get(TaskId(task_id)))


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: UUID,
    body: TaskUpdate,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTaskRepository = Depends(get_task_repository),
):
    stored = await repo.get(TaskId(task_id))
    task = await repo.update(body.apply_to(stored, acting_user))
    return TaskResponse.from_domain(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: UUID,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTaskRepository = Depends(get_task_repository),
):
    await repo.delete(TaskId(task_id))
    logger.info(
        "Task delete requested",
        extra={"task_id": str(task_id), "user_id": str(acting_user)},
    )
