"""User Routes — registration and lookup of calendar owners."""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from parallel_calendar.api.dependencies import (
    get_optional_acting_user, get_user_repository, page_limit,
)
from parallel_calendar.config import Settings, get_settings
from parallel_calendar.core.domain_types import UserId
from parallel_calendar.repositories.users import SqlUserRepository
from parallel_calendar.schemas.user import UserCreate, UserResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.post(
    "", response_model=UserResponse, status_code=status.HTTP_201_CREATED,
)
async def create_user(
    body: UserCreate,
    acting_user: UserId | None = Depends(get_optional_acting_user),
    repo: SqlUserRepository = Depends(get_user_repository),
):
    user = await repo.create(body.to_domain(acting_user))
    return UserResponse.from_domain(user)


@router.get("")
async def list_users(
    limit: int | None = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    repo: SqlUserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_settings),
):
    limit = page_limit(limit, settings)
    users = await repo.list(limit=limit, offset=offset)
    return {
        "users": [UserResponse.from_domain(u) for u in users],
        "pagination": {"limit": limit, "offset": offset},
    }


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: UUID, repo: SqlUserRepository = Depends(get_user_repository),
):
    return UserResponse.from_domain(await repo.get(UserId(user_id)))
