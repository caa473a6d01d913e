"""TimeSlot Schemas — create/update payloads and the public time slot shape.

Invariants:
    - start_at/end_at must carry an explicit offset (AwareDatetime); the core
      normalizes them to UTC milliseconds
    - ext_data omitted or null -> absent (None); {} stays an empty map
    - start_at < end_at and allocation vocabulary are NOT checked here:
      TimeSlot.validate() owns those rules

Design Decisions:
    - PUT carries the full set of mutable fields (no partial patch): an omitted
      ext_data therefore clears the map, matching the replace-all update lifecycle
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AwareDatetime, BaseModel, Field

from parallel_calendar.core.domain_types import Allocation, TaskId, UserId
from parallel_calendar.core.entities import TimeSlot


class TimeSlotCreate(BaseModel):
    user_id: UUID
    task_id: UUID
    allocation: str = Field(max_length=50)
    start_at: AwareDatetime
    end_at: AwareDatetime
    ext_data: dict[str, Any] | None = None

    def to_domain(self, acting_user: UserId) -> TimeSlot:
        return TimeSlot.new(
            user_id=UserId(self.user_id),
            task_id=TaskId(self.task_id),
            allocation=Allocation(self.allocation),
            start_at=self.start_at,
            end_at=self.end_at,
            ext_data=self.ext_data,
            acting_user=acting_user,
        )


class TimeSlotUpdate(BaseModel):
    task_id: UUID
    allocation: str = Field(max_length=50)
    start_at: AwareDatetime
    end_at: AwareDatetime
    ext_data: dict[str, Any] | None = None

    def apply_to(self, slot: TimeSlot, acting_user: UserId) -> TimeSlot:
        return slot.revise(
            task_id=TaskId(self.task_id),
            allocation=Allocation(self.allocation),
            start_at=self.start_at,
            end_at=self.end_at,
            ext_data=self.ext_data,
            acting_user=acting_user,
        )


class TimeSlotResponse(BaseModel):
    id: UUID
    user_id: UUID
    task_id: UUID
    allocation: str
    start_at: datetime
    end_at: datetime
    ext_data: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime
    created_by: UUID
    updated_by: UUID

    @classmethod
    def from_domain(cls, slot: TimeSlot) -> "TimeSlotResponse":
        return cls(
            id=slot.id, user_id=slot.user_id, task_id=slot.task_id,
            allocation=slot.allocation,
            start_at=slot.start_at, end_at=slot.end_at,
            ext_data=slot.ext_data,
            created_at=slot.created_at, updated_at=slot.updated_at,
            created_by=slot.created_by, updated_by=slot.updated_by,
        )
