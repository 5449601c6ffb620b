"""Content-level progress inside a module."""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import UUID

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from progress_service.api.dependencies import CurrentUser, Policy, Repos
from progress_service.api.progress import AchievementOut
from progress_service.services import learning

router = APIRouter(prefix="/v1/module-progress", tags=["module-progress"])


class ContentProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    content_id: str
    content_type: str
    is_mandatory: bool
    status: str
    time_spent: int
    score: int | None
    best_score: int
    attempts: int
    started_at: datetime | None
    completed_at: datetime | None


class ModuleProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    module_id: UUID
    status: str
    contents: list[ContentProgressOut]
    completion_percentage: int
    total_time_spent: int
    estimated_duration: int
    started_at: datetime
    last_accessed_at: datetime
    completed_at: datetime | None
    achievements: list[AchievementOut]


class ContentProgressIn(BaseModel):
    status: str
    time_spent: int = 0
    score: int | None = None


@router.post("/{module_id}/start", response_model=ModuleProgressOut)
async def start_module(
    module_id: UUID, principal: CurrentUser, repos: Repos
) -> ModuleProgressOut:
    mp = await learning.start_module(repos, principal, module_id, now=datetime.now(UTC))
    return ModuleProgressOut.model_validate(mp)


@router.put("/{module_id}/content/{content_id}", response_model=ModuleProgressOut)
async def update_content_progress(
    module_id: UUID,
    content_id: str,
    body: ContentProgressIn,
    principal: CurrentUser,
    repos: Repos,
    policy: Policy,
) -> ModuleProgressOut:
    mp = await learning.update_content_progress(
        repos,
        principal,
        module_id,
        content_id,
        status=body.status,
        time_spent=body.time_spent,
        score=body.score,
        policy=policy,
        now=datetime.now(UTC),
    )
    return ModuleProgressOut.model_validate(mp)


@router.get("/course/{course_id}", response_model=list[ModuleProgressOut])
async def list_course_module_progress(
    course_id: UUID, principal: CurrentUser, repos: Repos
) -> list[ModuleProgressOut]:
    records = await learning.list_module_progress(repos, principal.user_id, course_id)
    return [ModuleProgressOut.model_validate(mp) for mp in records]


@router.get("/{module_id}", response_model=ModuleProgressOut)
async def get_module_progress(
    module_id: UUID, principal: CurrentUser, repos: Repos
) -> ModuleProgressOut:
    mp = await learning.get_module_progress(repos, principal.user_id, module_id)
    return ModuleProgressOut.model_validate(mp)
