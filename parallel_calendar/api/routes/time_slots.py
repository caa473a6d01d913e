"""TimeSlot Routes — scheduling endpoints.

Invariants:
    - Routes build candidate entities and hand them to SqlTimeSlotRepository,
      which validates, checks conflicts and writes atomically
    - Scheduling errors (409 conflict, 422 ownership, 400 validation) reach the
      client through the global CalendarError handler, unchanged
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from pydantic import AwareDatetime

from parallel_calendar.api.dependencies import (
    get_acting_user, get_time_slot_repository, page_limit,
)
from parallel_calendar.config import Settings, get_settings
from parallel_calendar.core.domain_types import (
    Allocation, TaskId, TimeSlotId, UserId,
)
from parallel_calendar.core.repository_protocols import TimeSlotFilter
from parallel_calendar.repositories.time_slots import SqlTimeSlotRepository
from parallel_calendar.schemas.time_slot import (
    TimeSlotCreate, TimeSlotResponse, TimeSlotUpdate,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/time-slots", tags=["time-slots"])


@router.post(
    "", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED,
)
async def create_time_slot(
    body: TimeSlotCreate,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTimeSlotRepository = Depends(get_time_slot_repository),
):
    slot = await repo.create(body.to_domain(acting_user))
    return TimeSlotResponse.from_domain(slot)


@router.get("")
async def list_time_slots(
    user_id: UUID,
    start_at: AwareDatetime | None = None,
    end_at: AwareDatetime | None = None,
    task_id: UUID | None = None,
    allocation: str | None = None,
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    repo: SqlTimeSlotRepository = Depends(get_time_slot_repository),
    settings: Settings = Depends(get_settings),
):
    """Slots of a user ordered by start; start_at/end_at select intersecting slots."""
    limit = page_limit(limit, settings)
    slots = await repo.list(TimeSlotFilter(
        user_id=UserId(user_id),
        start_at=start_at,
        end_at=end_at,
        task_id=TaskId(task_id) if task_id else None,
        allocation=Allocation(allocation) if allocation else None,
        limit=limit,
        offset=offset,
    ))
    return {
        "time_slots": [TimeSlotResponse.from_domain(s) for s in slots],
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/{time_slot_id}", response_model=TimeSlotResponse)
async def get_time_slot(
    time_slot_id: UUID,
    repo: SqlTimeSlotRepository = Depends(get_time_slot_repository),
):
    return TimeSlotResponse.from_domain(await repo.get(TimeSlotId(time_slot_id)))


@router.put("/{time_slot_id}", response_model=TimeSlotResponse)
async def update_time_slot(
    time_slot_id: UUID,
    body: TimeSlotUpdate,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTimeSlotRepository = Depends(get_time_slot_repository),
):
    stored = await repo.get(TimeSlotId(time_slot_id))
    slot = await repo.update(body.apply_to(stored, acting_user))
    return TimeSlotResponse.from_domain(slot)


@router.delete("/{time_slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_time_slot(
    time_slot_id: UUID,
    acting_user: UserId = Depends(get_acting_user),
    repo: SqlTimeSlotRepository = Depends(get_time_slot_repository),
):
    await repo.delete(TimeSlotId(time_slot_id))
    logger.info(
        "Time slot delete requested",
        extra={"time_slot_id": str(time_slot_id), "user_id": str(acting_user)},
    )
