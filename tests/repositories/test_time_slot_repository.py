"""TimeSlot Repository — conflict enforcement against a real store.

Tests:
    - create/get round trip, adjacency allowed, overlap rejected with ids
    - update: self-exclusion, conflicts with others, immutable owner
    - ownership: foreign task rejected, unknown task not found
    - listing order and half-open range filter
    - malformed persisted ext_data fails closed on read, yet never hides a
      conflict with that slot
    - atomicity: concurrent overlapping creates, cancellation before and
      during the transaction leave nothing behind
"""

import asyncio
from dataclasses import replace

import pytest

from parallel_calendar.core.domain_types import BLOCKED, Allocation
from parallel_calendar.core.entities import Task
from parallel_calendar.core.errors import (
    InvalidTimeRangeError, MalformedMetadataError, ResourceNotFoundError,
    SchedulingConflictError, TaskOwnershipMismatchError, UnknownAllocationError,
)
from parallel_calendar.core.repository_protocols import TimeSlotFilter
from parallel_calendar.models.time_slot import TimeSlotRow
from parallel_calendar.repositories import time_slots as time_slots_module
from parallel_calendar.repositories.conversion import time_slot_to_row
from tests.factories import at, make_slot


async def _all_slots(slot_repo, owner):
    return await slot_repo.list(TimeSlotFilter(user_id=owner.id))


# ─── create ──────────────────────────────────────────────────────

async def test_create_then_get_returns_same_slot(slot_repo, owner, task):
    created = await slot_repo.create(
        make_slot(owner, task, at(9), at(10), ext_data={"color": "teal"}),
    )
    assert await slot_repo.get(created.id) == created


async def test_overlapping_create_is_rejected(slot_repo, owner, task):
    first = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    with pytest.raises(SchedulingConflictError) as exc:
        await slot_repo.create(make_slot(owner, task, at(9, 30), at(9, 45)))
    assert exc.value.conflicting_ids == [first.id]
    assert len(await _all_slots(slot_repo, owner)) == 1


async def test_adjacent_create_is_accepted(slot_repo, owner, task):
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    await slot_repo.create(make_slot(owner, task, at(10), at(10, 30)))
    assert len(await _all_slots(slot_repo, owner)) == 2


async def test_conflict_lists_every_overlapped_slot(slot_repo, owner, task):
    early = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    late = await slot_repo.create(make_slot(owner, task, at(11), at(12)))
    with pytest.raises(SchedulingConflictError) as exc:
        await slot_repo.create(make_slot(owner, task, at(8), at(13)))
    assert exc.value.conflicting_ids == [early.id, late.id]


async def test_different_users_may_share_a_window(
    slot_repo, owner, other_owner, task, foreign_task,
):
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    await slot_repo.create(make_slot(other_owner, foreign_task, at(9), at(10)))


async def test_zero_duration_rejected_before_storage(slot_repo, owner, task):
    with pytest.raises(InvalidTimeRangeError):
        await slot_repo.create(make_slot(owner, task, at(9), at(9)))
    assert await _all_slots(slot_repo, owner) == []


async def test_unknown_allocation_rejected(slot_repo, owner, task):
    with pytest.raises(UnknownAllocationError):
        await slot_repo.create(
            make_slot(owner, task, at(9), at(10), allocation=Allocation("napping")),
        )


async def test_foreign_task_is_rejected(slot_repo, owner, foreign_task):
    with pytest.raises(TaskOwnershipMismatchError):
        await slot_repo.create(make_slot(owner, foreign_task, at(9), at(10)))
    assert await _all_slots(slot_repo, owner) == []


async def test_unknown_task_is_not_found(slot_repo, owner):
    unsaved_task = Task.new(owner.id, "Never stored", None, owner.id)
    with pytest.raises(ResourceNotFoundError) as exc:
        await slot_repo.create(make_slot(owner, unsaved_task, at(9), at(10)))
    assert exc.value.resource_type == "Task"


# ─── update ──────────────────────────────────────────────────────

async def test_update_keeping_window_does_not_self_conflict(slot_repo, owner, task):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    updated = await slot_repo.update(slot.revise(
        task_id=task.id, allocation=BLOCKED, start_at=at(9), end_at=at(10),
        ext_data={"note": "moved to blocked"}, acting_user=owner.id,
    ))
    assert updated.allocation == BLOCKED
    assert updated.ext_data == {"note": "moved to blocked"}
    assert await slot_repo.get(slot.id) == updated


async def test_update_into_another_slot_conflicts(slot_repo, owner, task):
    morning = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    noon = await slot_repo.create(make_slot(owner, task, at(11), at(12)))
    with pytest.raises(SchedulingConflictError) as exc:
        await slot_repo.update(noon.revise(
            task_id=task.id, allocation=noon.allocation,
            start_at=at(9, 30), end_at=at(11, 30), ext_data=None,
            acting_user=owner.id,
        ))
    assert exc.value.conflicting_ids == [morning.id]
    assert await slot_repo.get(noon.id) == noon


async def test_update_cannot_change_owner(slot_repo, owner, other_owner, task):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    updated = await slot_repo.update(
        replace(slot, user_id=other_owner.id, created_by=other_owner.id),
    )
    assert updated.user_id == owner.id
    assert updated.created_by == owner.id


async def test_update_of_missing_slot_is_not_found(slot_repo, owner, task):
    with pytest.raises(ResourceNotFoundError):
        await slot_repo.update(make_slot(owner, task, at(9), at(10)))


async def test_update_to_foreign_task_is_rejected(
    slot_repo, owner, task, foreign_task,
):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    with pytest.raises(TaskOwnershipMismatchError):
        await slot_repo.update(replace(slot, task_id=foreign_task.id))


# ─── delete ──────────────────────────────────────────────────────

async def test_delete_twice_reports_not_found(slot_repo, owner, task):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    await slot_repo.delete(slot.id)
    with pytest.raises(ResourceNotFoundError):
        await slot_repo.get(slot.id)
    with pytest.raises(ResourceNotFoundError):
        await slot_repo.delete(slot.id)


async def test_deleted_window_can_be_reused(slot_repo, owner, task):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    await slot_repo.delete(slot.id)
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))


async def test_task_deletion_leaves_slots_in_place(
    slot_repo, task_repo, owner, task,
):
    slot = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    await task_repo.delete(task.id)
    assert await slot_repo.get(slot.id) == slot
    with pytest.raises(ResourceNotFoundError):
        await slot_repo.update(slot.revise(
            task_id=task.id, allocation=slot.allocation, start_at=at(9),
            end_at=at(11), ext_data=None, acting_user=owner.id,
        ))


# ─── list ────────────────────────────────────────────────────────

async def test_list_ordered_by_start(slot_repo, owner, task):
    late = await slot_repo.create(make_slot(owner, task, at(13), at(14)))
    early = await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    middle = await slot_repo.create(make_slot(owner, task, at(11), at(12)))
    assert [s.id for s in await _all_slots(slot_repo, owner)] == [
        early.id, middle.id, late.id,
    ]


async def test_list_range_uses_half_open_intersection(slot_repo, owner, task):
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    middle = await slot_repo.create(make_slot(owner, task, at(11), at(12)))
    await slot_repo.create(make_slot(owner, task, at(13), at(14)))
    slots = await slot_repo.list(
        TimeSlotFilter(user_id=owner.id, start_at=at(10), end_at=at(13)),
    )
    assert [s.id for s in slots] == [middle.id]


async def test_list_paginates(slot_repo, owner, task):
    for hour in (9, 11, 13):
        await slot_repo.create(make_slot(owner, task, at(hour), at(hour + 1)))
    page = await slot_repo.list(TimeSlotFilter(user_id=owner.id, limit=2, offset=1))
    assert [s.start_at for s in page] == [at(11), at(13)]


async def test_list_filters_by_allocation(slot_repo, owner, task):
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))
    blocked = await slot_repo.create(
        make_slot(owner, task, at(11), at(12), allocation=BLOCKED),
    )
    slots = await slot_repo.list(TimeSlotFilter(user_id=owner.id, allocation=BLOCKED))
    assert [s.id for s in slots] == [blocked.id]


async def test_list_excludes_other_users(
    slot_repo, owner, other_owner, task, foreign_task,
):
    await slot_repo.create(make_slot(other_owner, foreign_task, at(9), at(10)))
    assert await _all_slots(slot_repo, owner) == []


# ─── malformed storage ───────────────────────────────────────────

async def test_malformed_ext_data_fails_closed(store, slot_repo, owner, task):
    row = time_slot_to_row(make_slot(owner, task, at(9), at(10)))
    row.ext_data = "{broken"
    async with store.transaction("seed") as db:
        db.add(row)
    with pytest.raises(MalformedMetadataError):
        await slot_repo.get(row.id)
    with pytest.raises(MalformedMetadataError):
        await _all_slots(slot_repo, owner)


async def test_corrupt_neighbour_still_reports_conflict(store, slot_repo, owner, task):
    row = time_slot_to_row(make_slot(owner, task, at(9), at(10)))
    row.ext_data = "{broken"
    async with store.transaction("seed") as db:
        db.add(row)
    with pytest.raises(SchedulingConflictError) as exc:
        await slot_repo.create(make_slot(owner, task, at(9, 30), at(9, 45)))
    assert exc.value.conflicting_ids == [row.id]
    await slot_repo.create(make_slot(owner, task, at(10), at(10, 30)))


# ─── atomicity ───────────────────────────────────────────────────

async def test_concurrent_overlapping_creates_commit_exactly_one(
    slot_repo, owner, task,
):
    results = await asyncio.gather(
        slot_repo.create(make_slot(owner, task, at(9), at(10))),
        slot_repo.create(make_slot(owner, task, at(9, 30), at(10, 30))),
        return_exceptions=True,
    )
    conflicts = [r for r in results if isinstance(r, SchedulingConflictError)]
    created = [r for r in results if not isinstance(r, BaseException)]
    assert len(conflicts) == 1
    assert len(created) == 1
    assert conflicts[0].conflicting_ids == [created[0].id]
    assert [s.id for s in await _all_slots(slot_repo, owner)] == [created[0].id]


async def test_cancel_while_waiting_for_lock_writes_nothing(
    store, slot_repo, owner, task,
):
    async with store.user_transaction(owner.id, "hold"):
        pending = asyncio.create_task(
            slot_repo.create(make_slot(owner, task, at(9), at(10))),
        )
        await asyncio.sleep(0)
        pending.cancel()
        with pytest.raises(asyncio.CancelledError):
            await pending
    assert await _all_slots(slot_repo, owner) == []


async def test_cancel_inside_transaction_rolls_back(
    monkeypatch, slot_repo, owner, task,
):
    def cancelled(row: TimeSlotRow):
        raise asyncio.CancelledError()

    monkeypatch.setattr(time_slots_module, "row_to_time_slot", cancelled)
    slot = make_slot(owner, task, at(9), at(10))
    with pytest.raises(asyncio.CancelledError):
        await slot_repo.create(slot)
    monkeypatch.undo()

    with pytest.raises(ResourceNotFoundError):
        await slot_repo.get(slot.id)
    await slot_repo.create(make_slot(owner, task, at(9), at(10)))
