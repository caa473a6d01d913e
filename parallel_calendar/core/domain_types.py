"""Domain Types — identifiers, allocation vocabulary, and instant normalization.

Invariants:
    - UserId, TaskId, TimeSlotId wrap UUIDs — never use bare UUID in domain logic
    - new_id() yields UUIDv7 values: sortable by creation order within a process
    - Canonical instants are timezone-aware UTC truncated to milliseconds
    - Allocation is an open str at the type level; the closed vocabulary is
      configuration (DEFAULT_ALLOCATIONS unless Settings.allocation_classes overrides)

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - uuid6.uuid7 for id generation; results rewrapped as stdlib UUID so
      equality, hashing and drivers see one type
    - Millisecond precision: the coarsest precision shared by every supported store
      and by JavaScript clients, so round-trips are exact
"""

from datetime import datetime, timezone
from typing import NewType
from uuid import UUID

from uuid6 import uuid7


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
TaskId = NewType("TaskId", UUID)
TimeSlotId = NewType("TimeSlotId", UUID)


# ─── Allocation Vocabulary ───────────────────────────────────────

Allocation = NewType("Allocation", str)

FOCUSED = Allocation("focused")
FLEXIBLE = Allocation("flexible")
BLOCKED = Allocation("blocked")

DEFAULT_ALLOCATIONS: frozenset[str] = frozenset({FOCUSED, FLEXIBLE, BLOCKED})


# ─── Identifiers ─────────────────────────────────────────────────

def new_id() -> UUID:
    """Generate a UUIDv7 (millisecond timestamp prefix, monotonic per process)."""
    return UUID(int=uuid7().int)


def as_uuid(value: UUID | str | bytes) -> UUID:
    """Normalize an identifier from any accepted representation to UUID."""
    if isinstance(value, UUID):
        return value
    if isinstance(value, bytes):
        if len(value) == 16:
            return UUID(bytes=value)
        return UUID(value.decode("ascii"))
    if isinstance(value, str):
        return UUID(value)
    raise TypeError(f"Unsupported identifier type: {type(value).__name__}")


# ─── Instants ────────────────────────────────────────────────────

def normalize_instant(value: datetime) -> datetime:
    """Canonical instant: UTC offset, millisecond precision.

    Naive values are read as UTC (SQLite drops offsets on the way back).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.replace(microsecond=(value.microsecond // 1000) * 1000)


def utc_now() -> datetime:
    return normalize_instant(datetime.now(timezone.utc))
