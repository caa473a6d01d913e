"""User Repository — persistence for calendar owners."""

import logging

from sqlalchemy import select

from parallel_calendar.core.domain_types import UserId
from parallel_calendar.core.entities import User
from parallel_calendar.core.errors import ResourceNotFoundError
from parallel_calendar.infrastructure.database import DatabaseSessionManager
from parallel_calendar.models.user import UserRow
from parallel_calendar.repositories.conversion import row_to_user, user_to_row

logger = logging.getLogger(__name__)


class SqlUserRepository:
    """UserRepository backed by SQLAlchemy."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, user: User) -> User:
        user.validate()
        async with self._db.transaction("create_user") as db:
            row = user_to_row(user)
            db.add(row)
            await db.flush()
            stored = row_to_user(row)
        logger.info("User created", extra={"user_id": str(stored.id)})
        return stored

    async def get(self, user_id: UserId) -> User:
        async with self._db.session("get_user") as db:
            row = await db.get(UserRow, user_id)
            if row is None:
                raise ResourceNotFoundError("User", user_id)
            return row_to_user(row)

    async def list(self, limit: int | None = None, offset: int = 0) -> list[User]:
        query = select(UserRow).order_by(UserRow.created_at, UserRow.id).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        async with self._db.session("list_users") as db:
            result = await db.execute(query)
            return [row_to_user(row) for row in result.scalars().all()]
