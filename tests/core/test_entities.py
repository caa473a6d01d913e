"""Entities — structural validation and update lifecycle.

Tests:
    - Task.validate: empty/whitespace title -> TitleRequiredError
    - TimeSlot.validate: start >= end -> InvalidTimeRangeError, unknown allocation
    - revise() keeps identity and creation provenance
    - Optional fields keep None distinct from empty values
"""

import dataclasses
from datetime import timedelta, timezone

import pytest

from parallel_calendar.core.domain_types import Allocation, UserId, new_id
from parallel_calendar.core.entities import Task, User
from parallel_calendar.core.errors import (
    InvalidTimeRangeError, NameRequiredError, TitleRequiredError,
    UnknownAllocationError, ValidationError,
)
from tests.factories import at, make_slot


@pytest.fixture
def user():
    return User.new("Grace Hopper", "grace@example.com")


@pytest.fixture
def plan(user):
    return Task.new(user.id, "Plan sprint", None, user.id)


# ─── User ────────────────────────────────────────────────────────

def test_self_registered_user_is_its_own_creator(user):
    assert user.created_by == user.id
    assert user.updated_by == user.id


def test_user_created_by_another_user_records_actor():
    admin = UserId(new_id())
    user = User.new("Grace Hopper", "grace@example.com", acting_user=admin)
    assert user.created_by == admin


def test_user_with_blank_name_fails():
    with pytest.raises(NameRequiredError):
        User.new("  ", "x@example.com").validate()


# ─── Task ────────────────────────────────────────────────────────

def test_task_with_title_validates(plan):
    plan.validate()


@pytest.mark.parametrize("title", ["", "   "])
def test_task_without_title_fails_with_title_required(user, title):
    with pytest.raises(TitleRequiredError) as exc:
        Task.new(user.id, title, None, user.id).validate()
    assert exc.value.code == "TITLE_REQUIRED"
    assert isinstance(exc.value, ValidationError)


def test_task_description_absent_and_empty_are_distinct(user):
    absent = Task.new(user.id, "A", None, user.id)
    empty = Task.new(user.id, "A", "", user.id)
    assert absent.description is None
    assert empty.description == ""


def test_task_revise_keeps_identity(plan):
    editor = UserId(new_id())
    revised = plan.revise(title="Plan next sprint", description="", acting_user=editor)
    assert revised.id == plan.id
    assert revised.user_id == plan.user_id
    assert revised.created_at == plan.created_at
    assert revised.created_by == plan.created_by
    assert revised.updated_by == editor
    assert revised.title == "Plan next sprint"
    assert revised.description == ""


# ─── TimeSlot ────────────────────────────────────────────────────

def test_slot_with_positive_duration_validates(user, plan):
    make_slot(user, plan, at(9), at(10)).validate()


def test_slot_with_zero_duration_fails(user, plan):
    with pytest.raises(InvalidTimeRangeError) as exc:
        make_slot(user, plan, at(9), at(9)).validate()
    assert exc.value.code == "INVALID_TIME_RANGE"


def test_slot_ending_before_start_fails(user, plan):
    with pytest.raises(InvalidTimeRangeError):
        make_slot(user, plan, at(10), at(9)).validate()


def test_slot_with_unknown_allocation_fails(user, plan):
    slot = make_slot(user, plan, at(9), at(10), allocation=Allocation("napping"))
    with pytest.raises(UnknownAllocationError) as exc:
        slot.validate()
    assert exc.value.details()["allowed"] == ["blocked", "flexible", "focused"]


def test_slot_time_range_checked_before_allocation(user, plan):
    slot = make_slot(user, plan, at(10), at(9), allocation=Allocation("napping"))
    with pytest.raises(InvalidTimeRangeError):
        slot.validate()


def test_slot_allocation_vocabulary_is_configurable(user, plan):
    slot = make_slot(user, plan, at(9), at(10), allocation=Allocation("deep_work"))
    slot.validate(frozenset({"deep_work"}))


def test_slot_instants_are_normalized_on_construction(user, plan):
    plus_two = timezone(timedelta(hours=2))
    start = at(11).astimezone(plus_two).replace(microsecond=999_999)
    slot = make_slot(user, plan, start, at(12))
    assert slot.start_at.tzinfo == timezone.utc
    assert slot.start_at.hour == 11
    assert slot.start_at.microsecond == 999_000


def test_slot_overlap_is_half_open(user, plan):
    first = make_slot(user, plan, at(9), at(10))
    adjacent = make_slot(user, plan, at(10), at(11))
    inside = make_slot(user, plan, at(9, 30), at(9, 45))
    assert not first.overlaps(adjacent)
    assert not adjacent.overlaps(first)
    assert first.overlaps(inside)
    assert inside.overlaps(first)


def test_slot_revise_replaces_mutable_fields_only(user, plan):
    slot = make_slot(user, plan, at(9), at(10), ext_data={"color": "red"})
    other = Task.new(user.id, "Other", None, user.id)
    revised = slot.revise(
        task_id=other.id, allocation=Allocation("blocked"),
        start_at=at(13), end_at=at(14), ext_data=None, acting_user=user.id,
    )
    assert revised.id == slot.id
    assert revised.user_id == slot.user_id
    assert revised.created_at == slot.created_at
    assert revised.created_by == slot.created_by
    assert revised.task_id == other.id
    assert revised.allocation == "blocked"
    assert (revised.start_at, revised.end_at) == (at(13), at(14))
    assert revised.ext_data is None


def test_slot_is_immutable(user, plan):
    slot = make_slot(user, plan, at(9), at(10))
    with pytest.raises(dataclasses.FrozenInstanceError):
        slot.start_at = at(8)  # type: ignore[misc]


def test_slot_new_gets_fresh_id_and_provenance(user, plan):
    a = make_slot(user, plan, at(9), at(10))
    b = make_slot(user, plan, at(9), at(10))
    assert a.id != b.id
    assert a.created_at == a.updated_at
    assert a.created_by == user.id


def test_slot_ext_data_empty_is_not_absent(user, plan):
    slot = make_slot(user, plan, at(9), at(10), ext_data={})
    assert slot != dataclasses.replace(slot, ext_data=None)
