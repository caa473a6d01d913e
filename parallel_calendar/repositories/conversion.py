"""Conversion Layer — lossless mapping between core entities and ORM rows.

Invariants:
    - Total in both directions: every entity field has exactly one row column
    - None <-> NULL for description and ext_data; '' and {} stay present-but-empty
    - Identifiers normalized to UUID, instants to UTC millisecond precision
    - ext_data accepted only when built from native JSON types, so what is
      written reads back equal
    - Fails closed: undecodable or non-object ext_data raises MalformedMetadataError
      instead of dropping data

Design Decisions:
    - ext_data encoded with sorted keys and compact separators: identical maps
      always persist as identical text
    - apply_* helpers mutate a loaded row for updates and leave identity and
      creation provenance columns untouched
"""

import json
from typing import Any

from parallel_calendar.core.domain_types import (
    UserId, TaskId, TimeSlotId, Allocation, as_uuid, normalize_instant,
)
from parallel_calendar.core.entities import User, Task, TimeSlot
from parallel_calendar.core.errors import (
    ErrorContext, MalformedMetadataError, ValidationError,
)
from parallel_calendar.models.user import UserRow
from parallel_calendar.models.task import TaskRow
from parallel_calendar.models.time_slot import TimeSlotRow


# ─── ext_data ────────────────────────────────────────────────────

def encode_ext_data(data: dict[str, Any] | None) -> str | None:
    if data is None:
        return None
    try:
        encoded = json.dumps(
            data, sort_keys=True, separators=(",", ":"), allow_nan=False,
        )
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"ext_data must be JSON-serializable: {e}",
            "INVALID_EXT_DATA", "ext_data",
        )
    # tuples and non-str keys encode, but decode to a different value
    if not _native_json(data):
        raise ValidationError(
            "ext_data must contain only JSON objects, arrays, strings, numbers, "
            "booleans and null",
            "INVALID_EXT_DATA", "ext_data",
        )
    return encoded


def _native_json(value: Any) -> bool:
    if isinstance(value, dict):
        return all(
            isinstance(k, str) and _native_json(v) for k, v in value.items()
        )
    if isinstance(value, list):
        return all(_native_json(v) for v in value)
    return value is None or isinstance(value, (str, int, float, bool))


def decode_ext_data(raw: str | bytes | None, time_slot_id: TimeSlotId) -> dict[str, Any] | None:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as e:
        raise MalformedMetadataError(
            time_slot_id, f"invalid JSON ({e})",
            ErrorContext(resource_id=time_slot_id, operation="decode"),
        )
    if not isinstance(data, dict):
        raise MalformedMetadataError(
            time_slot_id, f"expected an object, got {type(data).__name__}",
            ErrorContext(resource_id=time_slot_id, operation="decode"),
        )
    return data


# ─── User ────────────────────────────────────────────────────────

def user_to_row(user: User) -> UserRow:
    return UserRow(
        id=user.id,
        name=user.name,
        email=user.email,
        created_at=normalize_instant(user.created_at),
        updated_at=normalize_instant(user.updated_at),
        created_by=user.created_by,
        updated_by=user.updated_by,
    )


def row_to_user(row: UserRow) -> User:
    return User(
        id=UserId(as_uuid(row.id)),
        name=row.name,
        email=row.email,
        created_at=normalize_instant(row.created_at),
        updated_at=normalize_instant(row.updated_at),
        created_by=UserId(as_uuid(row.created_by)),
        updated_by=UserId(as_uuid(row.updated_by)),
    )


# ─── Task ────────────────────────────────────────────────────────

def task_to_row(task: Task) -> TaskRow:
    return TaskRow(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        created_at=normalize_instant(task.created_at),
        updated_at=normalize_instant(task.updated_at),
        created_by=task.created_by,
        updated_by=task.updated_by,
    )


def apply_task(row: TaskRow, task: Task) -> None:
    row.title = task.title
    row.description = task.description
    row.updated_at = normalize_instant(task.updated_at)
    row.updated_by = task.updated_by


def row_to_task(row: TaskRow) -> Task:
    return Task(
        id=TaskId(as_uuid(row.id)),
        user_id=UserId(as_uuid(row.user_id)),
        title=row.title,
        description=row.description,
        created_at=normalize_instant(row.created_at),
        updated_at=normalize_instant(row.updated_at),
        created_by=UserId(as_uuid(row.created_by)),
        updated_by=UserId(as_uuid(row.updated_by)),
    )


# ─── TimeSlot ────────────────────────────────────────────────────

def time_slot_to_row(slot: TimeSlot) -> TimeSlotRow:
    return TimeSlotRow(
        id=slot.id,
        user_id=slot.user_id,
        task_id=slot.task_id,
        allocation=slot.allocation,
        start_at=normalize_instant(slot.start_at),
        end_at=normalize_instant(slot.end_at),
        ext_data=encode_ext_data(slot.ext_data),
        created_at=normalize_instant(slot.created_at),
        updated_at=normalize_instant(slot.updated_at),
        created_by=slot.created_by,
        updated_by=slot.updated_by,
    )


def apply_time_slot(row: TimeSlotRow, slot: TimeSlot) -> None:
    row.task_id = slot.task_id
    row.allocation = slot.allocation
    row.start_at = normalize_instant(slot.start_at)
    row.end_at = normalize_instant(slot.end_at)
    row.ext_data = encode_ext_data(slot.ext_data)
    row.updated_at = normalize_instant(slot.updated_at)
    row.updated_by = slot.updated_by


def row_to_time_slot(row: TimeSlotRow) -> TimeSlot:
    slot_id = TimeSlotId(as_uuid(row.id))
    return TimeSlot(
        id=slot_id,
        user_id=UserId(as_uuid(row.user_id)),
        task_id=TaskId(as_uuid(row.task_id)),
        allocation=Allocation(row.allocation),
        start_at=normalize_instant(row.start_at),
        end_at=normalize_instant(row.end_at),
        ext_data=decode_ext_data(row.ext_data, slot_id),
        created_at=normalize_instant(row.created_at),
        updated_at=normalize_instant(row.updated_at),
        created_by=UserId(as_uuid(row.created_by)),
        updated_by=UserId(as_uuid(row.updated_by)),
    )
