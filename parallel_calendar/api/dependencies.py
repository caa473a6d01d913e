"""Route Dependencies — store handle, acting user, repositories.

Invariants:
    - The store handle is read from app.state (set by the lifespan); routes never
      construct engines or sessions themselves
    - The acting user arrives already authenticated in the X-User-Id header and
      becomes the provenance of every write
"""

from uuid import UUID

from fastapi import Depends, Header, Request

from parallel_calendar.config import Settings, get_settings
from parallel_calendar.core.domain_types import UserId
from parallel_calendar.infrastructure.database import DatabaseSessionManager
from parallel_calendar.repositories.tasks import SqlTaskRepository
from parallel_calendar.repositories.time_slots import SqlTimeSlotRepository
from parallel_calendar.repositories.users import SqlUserRepository


def get_store(request: Request) -> DatabaseSessionManager:
    store = getattr(request.app.state, "db", None)
    if store is None:
        raise RuntimeError("Database not initialized")
    return store


def get_acting_user(x_user_id: UUID = Header()) -> UserId:
    return UserId(x_user_id)


def get_optional_acting_user(x_user_id: UUID | None = Header(None)) -> UserId | None:
    """Self-registration is the one write allowed without an acting user."""
    return UserId(x_user_id) if x_user_id is not None else None


def get_user_repository(
    store: DatabaseSessionManager = Depends(get_store),
) -> SqlUserRepository:
    return SqlUserRepository(store)


def get_task_repository(
    store: DatabaseSessionManager = Depends(get_store),
) -> SqlTaskRepository:
    return SqlTaskRepository(store)


def get_time_slot_repository(
    store: DatabaseSessionManager = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> SqlTimeSlotRepository:
    return SqlTimeSlotRepository(store, settings.allocations)


def page_limit(limit: int | None, settings: Settings) -> int:
    """Clamp a requested page size to the configured bounds."""
    return min(limit or settings.default_list_limit, settings.max_list_limit)
