"""TimeSlot Repository — persistence with transactional conflict enforcement.

Invariants:
    - create()/update(): structural validate() first (no IO), then inside ONE
      user_transaction: resolve task, fetch overlapping slots, run
      check_schedulable(), write. Any error aborts the transaction
    - update() keeps id, owner and creation provenance from the stored row
    - Listings ordered by (start_at, id); range filters use half-open intersection
    - delete() of an absent id raises ResourceNotFoundError, every time

Design Decisions:
    - Overlap query pushed to SQL (start_at < end AND end_at > start) so the
      snapshot handed to the engine is only the candidate's neighbourhood;
      it selects window columns only, so a neighbour with corrupt ext_data
      still reports as a conflict
    - Owner looked up before taking the lock: user_id is immutable, so the
      pre-lock read cannot go stale in a way that matters
"""

import logging
from dataclasses import replace
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from parallel_calendar.core.domain_types import (
    DEFAULT_ALLOCATIONS, TimeSlotId, UserId, as_uuid, normalize_instant,
)
from parallel_calendar.core.entities import TimeSlot
from parallel_calendar.core.errors import ResourceNotFoundError, SchedulingConflictError
from parallel_calendar.core.repository_protocols import TimeSlotFilter
from parallel_calendar.core.scheduling import SlotWindow, check_schedulable
from parallel_calendar.infrastructure.database import DatabaseSessionManager
from parallel_calendar.models.task import TaskRow
from parallel_calendar.models.time_slot import TimeSlotRow
from parallel_calendar.repositories.conversion import (
    apply_time_slot, row_to_task, row_to_time_slot, time_slot_to_row,
)

logger = logging.getLogger(__name__)


class SqlTimeSlotRepository:
    """TimeSlotRepository backed by SQLAlchemy."""

    def __init__(
        self,
        db: DatabaseSessionManager,
        allocations: frozenset[str] = DEFAULT_ALLOCATIONS,
    ):
        self._db = db
        self._allocations = allocations

    async def create(self, time_slot: TimeSlot) -> TimeSlot:
        time_slot.validate(self._allocations)
        async with self._db.user_transaction(
            time_slot.user_id, "create_time_slot",
        ) as db:
            await self._check_schedulable(db, time_slot)
            row = time_slot_to_row(time_slot)
            db.add(row)
            await db.flush()
            stored = row_to_time_slot(row)
        logger.info("Time slot created", extra=_log_extra(stored))
        return stored

    async def get(self, time_slot_id: TimeSlotId) -> TimeSlot:
        async with self._db.session("get_time_slot") as db:
            row = await db.get(TimeSlotRow, time_slot_id)
            if row is None:
                raise ResourceNotFoundError("TimeSlot", time_slot_id)
            return row_to_time_slot(row)

    async def list(self, slot_filter: TimeSlotFilter) -> list[TimeSlot]:
        query = select(TimeSlotRow).where(TimeSlotRow.user_id == slot_filter.user_id)
        if slot_filter.start_at is not None:
            query = query.where(
                TimeSlotRow.end_at > normalize_instant(slot_filter.start_at),
            )
        if slot_filter.end_at is not None:
            query = query.where(
                TimeSlotRow.start_at < normalize_instant(slot_filter.end_at),
            )
        if slot_filter.task_id is not None:
            query = query.where(TimeSlotRow.task_id == slot_filter.task_id)
        if slot_filter.allocation is not None:
            query = query.where(TimeSlotRow.allocation == slot_filter.allocation)
        query = query.order_by(TimeSlotRow.start_at, TimeSlotRow.id).offset(
            slot_filter.offset,
        )
        if slot_filter.limit is not None:
            query = query.limit(slot_filter.limit)
        async with self._db.session("list_time_slots") as db:
            result = await db.execute(query)
            return [row_to_time_slot(row) for row in result.scalars().all()]

    async def update(self, time_slot: TimeSlot) -> TimeSlot:
        time_slot.validate(self._allocations)
        owner = await self._owner_of(time_slot.id)
        async with self._db.user_transaction(owner, "update_time_slot") as db:
            row = await db.get(TimeSlotRow, time_slot.id)
            if row is None:
                raise ResourceNotFoundError("TimeSlot", time_slot.id)
            candidate = replace(
                time_slot,
                user_id=UserId(as_uuid(row.user_id)),
                created_at=normalize_instant(row.created_at),
                created_by=UserId(as_uuid(row.created_by)),
            )
            await self._check_schedulable(db, candidate, replacing=candidate.id)
            apply_time_slot(row, candidate)
            await db.flush()
            updated = row_to_time_slot(row)
        logger.info("Time slot updated", extra=_log_extra(updated))
        return updated

    async def delete(self, time_slot_id: TimeSlotId) -> None:
        async with self._db.transaction("delete_time_slot") as db:
            result = await db.execute(
                delete(TimeSlotRow).where(TimeSlotRow.id == time_slot_id),
            )
            if result.rowcount == 0:
                raise ResourceNotFoundError("TimeSlot", time_slot_id)
        logger.info("Time slot deleted", extra={"time_slot_id": str(time_slot_id)})

    # ─── helpers ────────────────────────────────────────────────

    async def _owner_of(self, time_slot_id: TimeSlotId) -> UserId:
        async with self._db.session("get_time_slot_owner") as db:
            result = await db.execute(
                select(TimeSlotRow.user_id).where(TimeSlotRow.id == time_slot_id),
            )
            owner = result.scalar_one_or_none()
        if owner is None:
            raise ResourceNotFoundError("TimeSlot", time_slot_id)
        return UserId(owner)

    async def _check_schedulable(
        self,
        db: AsyncSession,
        candidate: TimeSlot,
        replacing: TimeSlotId | None = None,
    ) -> None:
        task_row = await db.get(TaskRow, candidate.task_id)
        task = row_to_task(task_row) if task_row is not None else None
        existing = await _overlapping(
            db, candidate.user_id, candidate.start_at, candidate.end_at,
        )
        try:
            check_schedulable(candidate, task, existing, replacing)
        except SchedulingConflictError as e:
            logger.warning(
                "Scheduling conflict",
                extra={
                    **_log_extra(candidate),
                    "conflict_count": len(e.conflicting_ids),
                },
            )
            raise


async def _overlapping(
    db: AsyncSession, user_id: UserId, start_at: datetime, end_at: datetime,
) -> list[SlotWindow]:
    """Windows of user_id's slots intersecting [start_at, end_at); ext_data is not read."""
    result = await db.execute(
        select(
            TimeSlotRow.id, TimeSlotRow.user_id,
            TimeSlotRow.start_at, TimeSlotRow.end_at,
        )
        .where(
            TimeSlotRow.user_id == user_id,
            TimeSlotRow.start_at < normalize_instant(end_at),
            TimeSlotRow.end_at > normalize_instant(start_at),
        )
        .order_by(TimeSlotRow.start_at, TimeSlotRow.id),
    )
    return [
        SlotWindow(
            id=TimeSlotId(as_uuid(row.id)),
            user_id=UserId(as_uuid(row.user_id)),
            start_at=normalize_instant(row.start_at),
            end_at=normalize_instant(row.end_at),
        )
        for row in result.all()
    ]


def _log_extra(slot: TimeSlot) -> dict:
    return {
        "user_id": str(slot.user_id),
        "task_id": str(slot.task_id),
        "time_slot_id": str(slot.id),
    }
