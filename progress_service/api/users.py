from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict

from progress_service.api.dependencies import CurrentUser, Repos, require_role
from progress_service.api.progress import LearningGoalsOut
from progress_service.models.principal import Principal
from progress_service.services import users_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users", tags=["users"])

AdminUser = Annotated[Principal, Depends(require_role("admin"))]


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    is_premium: bool
    is_active: bool
    learning_goals: LearningGoalsOut
    current_streak: int
    longest_streak: int
    last_learning_date: datetime | None
    total_learning_hours: float
    created_at: datetime


class UserUpdateIn(BaseModel):
    role: str | None = None
    is_premium: bool | None = None
    is_active: bool | None = None
    email: str | None = None
    name: str | None = None


@router.get("/me", response_model=UserOut)
async def get_me(principal: CurrentUser, repos: Repos) -> UserOut:
    user = await users_service.get_or_create_user(repos, principal, now=datetime.now(UTC))
    return UserOut.model_validate(user)


@router.get("", response_model=list[UserOut])
async def admin_list_users(principal: AdminUser, repos: Repos) -> list[UserOut]:
    logger.info("Admin user list requested by user=%s", principal.user_id)
    return [UserOut.model_validate(u) for u in await users_service.list_users(repos)]


@router.patch("/{user_id}", response_model=UserOut)
async def admin_update_user(
    user_id: UUID, body: UserUpdateIn, principal: AdminUser, repos: Repos
) -> UserOut:
    user = await users_service.update_user(
        repos,
        principal,
        user_id,
        role=body.role,
        is_premium=body.is_premium,
        is_active=body.is_active,
        email=body.email,
        name=body.name,
    )
    return UserOut.model_validate(user)
