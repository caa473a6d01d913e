"""TimeSlot ORM — persists reservations of [start_at, end_at) on a user's calendar.

Invariants:
    - CHECK start_at < end_at enforced by the store as a last line
    - (user_id, start_at) indexed: overlap and range queries are per-user scans
    - ext_data holds JSON text; NULL means absent, '{}' is a present empty map

Design Decisions:
    - task_id has no foreign key: deleting a task leaves its slots in place
      (non-cascading task deletion, see DESIGN.md)
    - ext_data as Text, not JSON: decoding happens in the conversion layer so
      malformed content surfaces as MalformedMetadataError instead of a driver error
"""

import uuid
from datetime import datetime

from sqlalchemy import String, Text, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from parallel_calendar.db.base import Base


class TimeSlotRow(Base):
    """Calendar reservation for a task."""
    __tablename__ = "time_slots"
    __table_args__ = (
        CheckConstraint("start_at < end_at", name="ck_time_slots_positive_duration"),
        Index("ix_time_slots_user_start", "user_id", "start_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=False,
    )
    task_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    allocation: Mapped[str] = mapped_column(String(50), nullable=False)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ext_data: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    created_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    updated_by: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
