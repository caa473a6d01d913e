"""Scheduling Validation Engine — decides whether a candidate slot may be committed.

Invariants:
    - For a fixed user no two committed slots satisfy
      a.start_at < b.end_at and b.start_at < a.end_at (half-open windows)
    - A slot ending at T and another starting at T are NOT in conflict
    - On update the slot being replaced never conflicts with itself
    - The referenced task must exist and be owned by the slot's user
    - PURE: operates on a read snapshot supplied by the repository; the
      repository must call it inside the transaction that performs the write

Design Decisions:
    - Raises typed errors instead of returning descriptors: repositories abort
      the enclosing transaction simply by letting the exception propagate
    - Ownership checked before overlap: a cross-user reference is rejected
      regardless of what the calendar looks like
    - Neighbours arrive as SlotWindow (id, owner, window): conflict detection
      never depends on decoding their extension data
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from parallel_calendar.core.domain_types import TimeSlotId, UserId
from parallel_calendar.core.entities import Task, TimeSlot
from parallel_calendar.core.errors import (
    ErrorContext, ResourceNotFoundError,
    SchedulingConflictError, TaskOwnershipMismatchError,
)


@dataclass(frozen=True)
class SlotWindow:
    """The part of a committed slot the overlap rule looks at."""
    id: TimeSlotId
    user_id: UserId
    start_at: datetime
    end_at: datetime


def windows_overlap(
    a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime,
) -> bool:
    """Half-open interval intersection test."""
    return a_start < b_end and b_start < a_end


def find_conflicts(
    candidate: TimeSlot,
    existing: Iterable[TimeSlot | SlotWindow],
    replacing: TimeSlotId | None = None,
) -> list[TimeSlotId]:
    """Ids of existing slots of the same user whose window intersects the candidate.

    Result is ordered by start_at then id so diagnostics are deterministic.
    """
    excluded = {candidate.id}
    if replacing is not None:
        excluded.add(replacing)
    hits = [
        slot for slot in existing
        if slot.user_id == candidate.user_id
        and slot.id not in excluded
        and windows_overlap(
            candidate.start_at, candidate.end_at, slot.start_at, slot.end_at,
        )
    ]
    hits.sort(key=lambda s: (s.start_at, s.id))
    return [slot.id for slot in hits]


def check_task_ownership(candidate: TimeSlot, task: Task | None) -> None:
    """Rule 3: the referenced task exists and belongs to the slot's user."""
    ctx = ErrorContext(user_id=candidate.user_id, resource_id=candidate.id)
    if task is None:
        raise ResourceNotFoundError("Task", candidate.task_id, ctx)
    if task.user_id != candidate.user_id:
        raise TaskOwnershipMismatchError(
            task.id, task.user_id, candidate.user_id, ctx,
        )


def check_schedulable(
    candidate: TimeSlot,
    task: Task | None,
    existing: Iterable[TimeSlot | SlotWindow],
    replacing: TimeSlotId | None = None,
) -> None:
    """Rules 2 and 3 together. Raises on the first violated rule."""
    check_task_ownership(candidate, task)
    conflicts = find_conflicts(candidate, existing, replacing)
    if conflicts:
        raise SchedulingConflictError(
            conflicts,
            ErrorContext(user_id=candidate.user_id, resource_id=candidate.id),
        )
