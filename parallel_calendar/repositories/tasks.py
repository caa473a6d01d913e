"""Task Repository — persistence for tasks.

Invariants:
    - A task can only be created for an existing user
    - update() rewrites title, description and update provenance only;
      owner and creation provenance come from the stored row
    - delete() never touches time slots referencing the task
"""

import logging

from sqlalchemy import delete, select

from parallel_calendar.core.domain_types import TaskId, UserId
from parallel_calendar.core.entities import Task
from parallel_calendar.core.errors import ErrorContext, ResourceNotFoundError
from parallel_calendar.infrastructure.database import DatabaseSessionManager
from parallel_calendar.models.task import TaskRow
from parallel_calendar.models.user import UserRow
from parallel_calendar.repositories.conversion import (
    apply_task, row_to_task, task_to_row,
)

logger = logging.getLogger(__name__)


class SqlTaskRepository:
    """TaskRepository backed by SQLAlchemy."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, task: Task) -> Task:
        task.validate()
        async with self._db.transaction("create_task") as db:
            if await db.get(UserRow, task.user_id) is None:
                raise ResourceNotFoundError(
                    "User", task.user_id, ErrorContext(resource_id=task.id),
                )
            row = task_to_row(task)
            db.add(row)
            await db.flush()
            stored = row_to_task(row)
        logger.info(
            "Task created",
            extra={"user_id": str(stored.user_id), "task_id": str(stored.id)},
        )
        return stored

    async def get(self, task_id: TaskId) -> Task:
        async with self._db.session("get_task") as db:
            row = await db.get(TaskRow, task_id)
            if row is None:
                raise ResourceNotFoundError("Task", task_id)
            return row_to_task(row)

    async def list(
        self, user_id: UserId, limit: int | None = None, offset: int = 0,
    ) -> list[Task]:
        query = (
            select(TaskRow)
            .where(TaskRow.user_id == user_id)
            .order_by(TaskRow.created_at, TaskRow.id)
            .offset(offset)
        )
        if limit is not None:
            query = query.limit(limit)
        async with self._db.session("list_tasks") as db:
            result = await db.execute(query)
            return [row_to_task(row) for row in result.scalars().all()]

    async def update(self, task: Task) -> Task:
        task.validate()
        async with self._db.transaction("update_task") as db:
            row = await db.get(TaskRow, task.id)
            if row is None:
                raise ResourceNotFoundError("Task", task.id)
            apply_task(row, task)
            await db.flush()
            stored = row_to_task(row)
        logger.info(
            "Task updated",
            extra={"user_id": str(stored.user_id), "task_id": str(stored.id)},
        )
        return stored

    async def delete(self, task_id: TaskId) -> None:
        async with self._db.transaction("delete_task") as db:
            result = await db.execute(delete(TaskRow).where(TaskRow.id == task_id))
            if result.rowcount == 0:
                raise ResourceNotFoundError("Task", task_id)
        logger.info("Task deleted", extra={"task_id": str(task_id)})
