"""Boundary Protocols — contracts between the scheduling core and storage.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - get/update/delete raise ResourceNotFoundError when the id is absent;
      a repeated delete of the same id raises again (never silently succeeds)
    - TimeSlotRepository.create/update run the overlap query and the write as
      one atomic unit; a conflict leaves nothing written
    - TimeSlot listings are ordered by start_at ascending, ties broken by id

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO, the core functions they call are sync
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from parallel_calendar.core.domain_types import (
    UserId, TaskId, TimeSlotId, Allocation,
)
from parallel_calendar.core.entities import User, Task, TimeSlot


@dataclass(frozen=True)
class TimeSlotFilter:
    """Listing filter. start_at/end_at select slots intersecting [start_at, end_at)."""
    user_id: UserId
    start_at: datetime | None = None
    end_at: datetime | None = None
    task_id: TaskId | None = None
    allocation: Allocation | None = None
    limit: int | None = None
    offset: int = 0


class UserRepository(Protocol):
    """Contract for user persistence."""
    async def create(self, user: User) -> User: ...
    async def get(self, user_id: UserId) -> User: ...
    async def list(self, limit: int | None = None, offset: int = 0) -> list[User]: ...


class TaskRepository(Protocol):
    """Contract for task persistence. Deleting a task does not touch its slots."""
    async def create(self, task: Task) -> Task: ...
    async def get(self, task_id: TaskId) -> Task: ...
    async def list(
        self, user_id: UserId, limit: int | None = None, offset: int = 0,
    ) -> list[Task]: ...
    async def update(self, task: Task) -> Task: ...
    async def delete(self, task_id: TaskId) -> None: ...


class TimeSlotRepository(Protocol):
    """Contract for time slot persistence with conflict enforcement."""
    async def create(self, time_slot: TimeSlot) -> TimeSlot: ...
    async def get(self, time_slot_id: TimeSlotId) -> TimeSlot: ...
    async def list(self, slot_filter: TimeSlotFilter) -> list[TimeSlot]: ...
    async def update(self, time_slot: TimeSlot) -> TimeSlot: ...
    async def delete(self, time_slot_id: TimeSlotId) -> None: ...
