"""ORM Models — SQLAlchemy declarative rows for users, tasks and time slots.

Invariants:
    - All models inherit from Base (db/base.py)
    - Rows are persistence shapes only; repositories/conversion.py maps them
      to and from core entities

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete for create_all and alembic
"""

from parallel_calendar.models.user import UserRow  # noqa: F401
from parallel_calendar.models.task import TaskRow  # noqa: F401
from parallel_calendar.models.time_slot import TimeSlotRow  # noqa: F401
