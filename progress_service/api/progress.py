"""Course progress endpoints for the authenticated learner.

Every route is scoped to the caller: the user id comes from the token,
never from the path or body.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from progress_service.api.dependencies import (
    CurrentUser,
    Policy,
    Repos,
    get_passing_score,
)
from progress_service.services import learning
from progress_service.services.completion import QUIZ_GATED_CAP

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/progress", tags=["progress"])


class AchievementOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: str
    description: str
    unlocked_at: datetime


class ModuleCompletionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module_index: int
    module_id: UUID | None
    completed_at: datetime
    time_spent: int


class CourseProgressOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    last_access_date: datetime
    modules_completed: list[ModuleCompletionOut]
    completion_percentage: int
    total_time_spent: int
    current_module: int
    is_completed: bool
    completion_date: datetime | None
    grade: int | None
    quiz_passed: bool
    achievements: list[AchievementOut]


class ModuleCompletionIn(BaseModel):
    course_id: UUID
    module_id: UUID
    time_spent: int = Field(default=0, description="Minutes spent on the module")


class QuizResultIn(BaseModel):
    score: int


class LearningGoalsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    daily_goal: int
    weekly_goal: int
    monthly_goal: int


class LearningGoalsIn(BaseModel):
    daily_goal: int | None = None
    weekly_goal: int | None = None
    monthly_goal: int | None = None


class StreaksOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    current_streak: int
    longest_streak: int
    last_active_date: datetime | None
    weekly_active_days: int
    learning_goals: LearningGoalsOut


@router.put("/module", response_model=CourseProgressOut)
async def complete_module(
    body: ModuleCompletionIn,
    principal: CurrentUser,
    repos: Repos,
    policy: Policy,
) -> CourseProgressOut:
    progress = await learning.complete_module(
        repos,
        principal,
        course_id=body.course_id,
        module_id=body.module_id,
        time_spent=body.time_spent,
        policy=policy,
        now=datetime.now(UTC),
    )
    return CourseProgressOut.model_validate(progress)


@router.post("/course/{course_id}/quiz", response_model=CourseProgressOut)
async def submit_quiz(
    course_id: UUID,
    body: QuizResultIn,
    principal: CurrentUser,
    repos: Repos,
    policy: Policy,
    passing_score: int = Depends(get_passing_score),
) -> CourseProgressOut:
    progress = await learning.submit_course_quiz(
        repos,
        principal,
        course_id=course_id,
        score=body.score,
        policy=policy,
        passing_score=passing_score,
        now=datetime.now(UTC),
    )
    return CourseProgressOut.model_validate(progress)


@router.get("/course/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: UUID, principal: CurrentUser, repos: Repos
) -> CourseProgressOut:
    progress = await learning.get_course_progress(repos, principal.user_id, course_id)
    return CourseProgressOut.model_validate(progress)


@router.get("", response_model=list[CourseProgressOut])
async def list_my_progress(
    principal: CurrentUser, repos: Repos
) -> list[CourseProgressOut]:
    records = await learning.list_progress(repos, principal.user_id)
    return [CourseProgressOut.model_validate(r) for r in records]


@router.get("/streaks", response_model=StreaksOut)
async def get_streaks(principal: CurrentUser, repos: Repos) -> StreaksOut:
    summary = await learning.get_streaks(repos, principal, now=datetime.now(UTC))
    return StreaksOut.model_validate(summary)


@router.get("/analytics")
async def get_analytics(principal: CurrentUser, repos: Repos) -> dict[str, Any]:
    """Dashboard counters; cached per learner, dropped on every progress write."""
    return await learning.get_analytics(repos, principal, now=datetime.now(UTC))


@router.put("/goals", response_model=LearningGoalsOut)
async def update_goals(
    body: LearningGoalsIn, principal: CurrentUser, repos: Repos
) -> LearningGoalsOut:
    user = await learning.update_learning_goals(
        repos,
        principal,
        daily_goal=body.daily_goal,
        weekly_goal=body.weekly_goal,
        monthly_goal=body.monthly_goal,
        now=datetime.now(UTC),
    )
    logger.info("Learning goals updated user=%s", principal.user_id)
    return LearningGoalsOut.model_validate(user.learning_goals)


@router.get("/policy")
async def get_policy(
    policy: Policy, passing_score: int = Depends(get_passing_score)
) -> dict[str, Any]:
    """The completion policy in force.  Public: clients use it to label progress bars."""
    return {
        "completion_policy": policy.value,
        "quiz_passing_score": passing_score,
        "quiz_gated_cap": QUIZ_GATED_CAP,
    }
