"""Task Schemas — create/update payloads and the public task shape.

Invariants:
    - description omitted or null -> absent (None); "" stays an empty description
    - An empty title passes the schema and is rejected by Task.validate()
      with TITLE_REQUIRED, so every caller sees the same error code
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from parallel_calendar.core.domain_types import UserId
from parallel_calendar.core.entities import Task


class TaskCreate(BaseModel):
    user_id: UUID
    title: str = Field(max_length=500)
    description: str | None = Field(None, max_length=10_000)

    def to_domain(self, acting_user: UserId) -> Task:
        return Task.new(
            UserId(self.user_id), self.title, self.description, acting_user,
        )


class TaskUpdate(BaseModel):
    """Full replacement of the mutable task fields."""
    title: str = Field(max_length=500)
    description: str | None = Field(None, max_length=10_000)

    def apply_to(self, task: Task, acting_user: UserId) -> Task:
        return task.revise(
            title=self.title, description=self.description, acting_user=acting_user,
        )


class TaskResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    description: str | None
    created_at: datetime
    updated_at: datetime
    created_by: UUID
    updated_by: UUID

    @classmethod
    def from_domain(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id, user_id=task.user_id, title=task.title,
            description=task.description,
            created_at=task.created_at, updated_at=task.updated_at,
            created_by=task.created_by, updated_by=task.updated_by,
        )
