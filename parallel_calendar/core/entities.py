"""Domain Entities — User, Task and TimeSlot value objects with structural validation.

Invariants:
    - validate() checks only intra-entity rules and never performs IO
    - Cross-entity rules (overlap, task ownership) live in core/scheduling.py
    - Optional fields use None for "absent": description="" and ext_data={}
      are present-but-empty and are never conflated with None
    - id, user_id, created_at, created_by are immutable after creation;
      revise() is the only way to derive an updated slot

Design Decisions:
    - Frozen dataclasses: entities are values handed across layers, never
      shared mutable state between concurrent requests
    - Instants normalized in __post_init__ so every constructed entity is canonical
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

from parallel_calendar.core.domain_types import (
    UserId, TaskId, TimeSlotId, Allocation, DEFAULT_ALLOCATIONS,
    new_id, normalize_instant, utc_now,
)
from parallel_calendar.core.errors import (
    NameRequiredError, TitleRequiredError,
    InvalidTimeRangeError, UnknownAllocationError, ErrorContext,
)

_INSTANT_FIELDS = ("created_at", "updated_at")


def _normalize_instants(entity: object, names: tuple[str, ...]) -> None:
    for name in names:
        object.__setattr__(entity, name, normalize_instant(getattr(entity, name)))


@dataclass(frozen=True)
class User:
    id: UserId
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    created_by: UserId
    updated_by: UserId

    def __post_init__(self) -> None:
        _normalize_instants(self, _INSTANT_FIELDS)

    @classmethod
    def new(cls, name: str, email: str, acting_user: UserId | None = None) -> "User":
        """New user; a self-registered user is its own creator."""
        user_id = UserId(new_id())
        actor = acting_user or user_id
        now = utc_now()
        return cls(
            id=user_id, name=name, email=email,
            created_at=now, updated_at=now, created_by=actor, updated_by=actor,
        )

    def validate(self) -> None:
        if not self.name.strip():
            raise NameRequiredError(ErrorContext(resource_id=self.id))


@dataclass(frozen=True)
class Task:
    id: TaskId
    user_id: UserId
    title: str
    description: str | None
    created_at: datetime
    updated_at: datetime
    created_by: UserId
    updated_by: UserId

    def __post_init__(self) -> None:
        _normalize_instants(self, _INSTANT_FIELDS)

    @classmethod
    def new(
        cls, user_id: UserId, title: str, description: str | None,
        acting_user: UserId,
    ) -> "Task":
        now = utc_now()
        return cls(
            id=TaskId(new_id()), user_id=user_id, title=title,
            description=description, created_at=now, updated_at=now,
            created_by=acting_user, updated_by=acting_user,
        )

    def validate(self) -> None:
        """Title must be non-empty (whitespace-only counts as empty)."""
        if not self.title.strip():
            raise TitleRequiredError(
                ErrorContext(user_id=self.user_id, resource_id=self.id),
            )

    def revise(
        self, *, title: str, description: str | None, acting_user: UserId,
    ) -> "Task":
        return replace(
            self, title=title, description=description,
            updated_at=utc_now(), updated_by=acting_user,
        )


@dataclass(frozen=True)
class TimeSlot:
    """A reservation of [start_at, end_at) on a user's calendar for one task."""

    id: TimeSlotId
    user_id: UserId
    task_id: TaskId
    allocation: Allocation
    start_at: datetime
    end_at: datetime
    ext_data: dict[str, Any] | None
    created_at: datetime
    updated_at: datetime
    created_by: UserId
    updated_by: UserId

    def __post_init__(self) -> None:
        _normalize_instants(self, ("start_at", "end_at") + _INSTANT_FIELDS)

    @classmethod
    def new(
        cls,
        user_id: UserId,
        task_id: TaskId,
        allocation: Allocation,
        start_at: datetime,
        end_at: datetime,
        ext_data: dict[str, Any] | None,
        acting_user: UserId,
    ) -> "TimeSlot":
        now = utc_now()
        return cls(
            id=TimeSlotId(new_id()), user_id=user_id, task_id=task_id,
            allocation=allocation, start_at=start_at, end_at=end_at,
            ext_data=ext_data, created_at=now, updated_at=now,
            created_by=acting_user, updated_by=acting_user,
        )

    def validate(self, allocations: frozenset[str] = DEFAULT_ALLOCATIONS) -> None:
        """Structural rules only: positive duration and known allocation."""
        ctx = ErrorContext(user_id=self.user_id, resource_id=self.id)
        if self.start_at >= self.end_at:
            raise InvalidTimeRangeError(self.start_at, self.end_at, ctx)
        if self.allocation not in allocations:
            raise UnknownAllocationError(self.allocation, allocations, ctx)

    def overlaps(self, other: "TimeSlot") -> bool:
        """Half-open intersection: back-to-back windows do not overlap."""
        return self.start_at < other.end_at and other.start_at < self.end_at

    def revise(
        self,
        *,
        task_id: TaskId,
        allocation: Allocation,
        start_at: datetime,
        end_at: datetime,
        ext_data: dict[str, Any] | None,
        acting_user: UserId,
    ) -> "TimeSlot":
        """Copy with every mutable field replaced; identity and creation kept."""
        return replace(
            self, task_id=task_id, allocation=allocation,
            start_at=start_at, end_at=end_at, ext_data=ext_data,
            updated_at=utc_now(), updated_by=acting_user,
        )

