"""User Schemas — registration payload and public user shape."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from parallel_calendar.core.domain_types import UserId
from parallel_calendar.core.entities import User


class UserCreate(BaseModel):
    name: str = Field(max_length=200)
    email: str = Field(max_length=320, pattern=r"^[^@\s]+@[^@\s]+$")

    def to_domain(self, acting_user: UserId | None) -> User:
        return User.new(self.name, self.email, acting_user)


class UserResponse(BaseModel):
    id: UUID
    name: str
    email: str
    created_at: datetime
    updated_at: datetime
    created_by: UUID
    updated_by: UUID

    @classmethod
    def from_domain(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id, name=user.name, email=user.email,
            created_at=user.created_at, updated_at=user.updated_at,
            created_by=user.created_by, updated_by=user.updated_by,
        )
