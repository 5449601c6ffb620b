"""Learner-facing progress operations.

Each operation loads state through the repository bundle, runs the pure
rules (completion, achievements, streaks, access gate), writes the result
back and drops the caller's cached analytics.  Domain metrics and audit
logging happen here rather than inside the rules.

Progress writes are read-modify-write: two concurrent updates to the same
record resolve last-write-wins.  Enrollment counts do not go through this
path (see services/enrollment.py).
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, replace
from datetime import datetime
from typing import Any
from uuid import UUID

from progress_service.core.config import SETTINGS
from progress_service.core.errors import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from progress_service.core.metrics import (
    ACHIEVEMENTS_AWARDED,
    COURSE_COMPLETIONS,
    MODULE_COMPLETIONS,
)
from progress_service.models.course import CourseModule
from progress_service.models.principal import Principal
from progress_service.models.progress import Achievement, CourseProgress, ModuleProgress
from progress_service.models.user import LearningGoals, User
from progress_service.repos.registry import Repositories
from progress_service.services import completion
from progress_service.services.access_gate import AccessDecision, can_access
from progress_service.services.achievements import (
    COURSE_RULES,
    MODULE_RULES,
    evaluate_achievements,
    newly_unlocked,
)
from progress_service.services.analytics import summarize
from progress_service.services.cache import analytics_key, cache_service
from progress_service.services.catalog import load_course, load_module
from progress_service.services.completion import CompletionPolicy
from progress_service.services.streaks import (
    apply_streak,
    compute_streak,
    record_learning_activity,
    weekly_active_days,
)
from progress_service.services.users_service import get_or_create_user

logger = logging.getLogger(__name__)

RECENT_PROGRESS_LIMIT = 10


async def _require_progress(
    repos: Repositories, user_id: UUID, course_id: UUID
) -> CourseProgress:
    progress = await repos.progress.get(user_id, course_id)
    if progress is None:
        raise NotFoundError("Progress record not found; enroll in the course first")
    return progress


def _count_unlocked(achievements: list[Achievement], user_id: UUID) -> None:
    for achievement in achievements:
        ACHIEVEMENTS_AWARDED.labels(type=achievement.type).inc()
        logger.info("Achievement unlocked user=%s type=%s", user_id, achievement.type)


def _count_course_completion(before: CourseProgress, after: CourseProgress) -> None:
    if after.is_completed and not before.is_completed:
        COURSE_COMPLETIONS.inc()
        logger.info("Course completed user=%s course=%s", after.user_id, after.course_id)


async def _track_activity(
    repos: Repositories, principal: Principal, minutes: int, now: datetime
) -> None:
    user = await get_or_create_user(repos, principal, now=now)
    await repos.users.update(record_learning_activity(user, minutes, now))


# ---------------------------------------------------------------------------
# Course progress
# ---------------------------------------------------------------------------


async def complete_module(
    repos: Repositories,
    principal: Principal,
    *,
    course_id: UUID,
    module_id: UUID,
    time_spent: int,
    policy: CompletionPolicy,
    now: datetime,
) -> CourseProgress:
    course = await load_course(repos, course_id)
    index = completion.module_index_of(course, module_id)
    before = await _require_progress(repos, principal.user_id, course_id)

    after = completion.record_module_completion(
        before, course, index, time_spent, policy=policy, now=now
    )
    after = evaluate_achievements(after, COURSE_RULES, now=now)
    await repos.progress.save(after)
    await _track_activity(repos, principal, time_spent, now)
    await cache_service.delete(analytics_key(principal.user_id))

    MODULE_COMPLETIONS.labels(policy=policy.value).inc()
    _count_course_completion(before, after)
    _count_unlocked(newly_unlocked(before, after), principal.user_id)
    logger.info(
        "Module completed user=%s course=%s index=%d pct=%d",
        principal.user_id,
        course_id,
        index,
        after.completion_percentage,
    )
    return after


async def submit_course_quiz(
    repos: Repositories,
    principal: Principal,
    *,
    course_id: UUID,
    score: int,
    policy: CompletionPolicy,
    passing_score: int,
    now: datetime,
) -> CourseProgress:
    course = await load_course(repos, course_id)
    before = await _require_progress(repos, principal.user_id, course_id)

    after = completion.record_quiz_result(
        before, course, score, passing_score=passing_score, policy=policy, now=now
    )
    after = evaluate_achievements(after, COURSE_RULES, now=now)
    await repos.progress.save(after)
    await cache_service.delete(analytics_key(principal.user_id))

    _count_course_completion(before, after)
    _count_unlocked(newly_unlocked(before, after), principal.user_id)
    logger.info(
        "Quiz submitted user=%s course=%s score=%d passed=%s",
        principal.user_id,
        course_id,
        score,
        score >= passing_score,
    )
    return after


async def get_course_progress(
    repos: Repositories, user_id: UUID, course_id: UUID
) -> CourseProgress:
    return await _require_progress(repos, user_id, course_id)


async def list_progress(repos: Repositories, user_id: UUID) -> list[CourseProgress]:
    return await repos.progress.list_by_user(user_id)


# ---------------------------------------------------------------------------
# Streaks, analytics, goals
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StreakSummary:
    current_streak: int
    longest_streak: int
    last_active_date: datetime | None
    weekly_active_days: int
    learning_goals: LearningGoals


async def get_streaks(
    repos: Repositories, principal: Principal, *, now: datetime
) -> StreakSummary:
    records = await repos.progress.list_by_user(principal.user_id)
    result = compute_streak(records, now)

    user = apply_streak(await get_or_create_user(repos, principal, now=now), result)
    await repos.users.update(user)

    return StreakSummary(
        current_streak=user.current_streak,
        longest_streak=user.longest_streak,
        last_active_date=result.last_active_date,
        weekly_active_days=weekly_active_days(records, now),
        learning_goals=user.learning_goals,
    )


async def get_analytics(
    repos: Repositories, principal: Principal, *, now: datetime
) -> dict[str, Any]:
    """Dashboard summary for the caller, served read-through from the cache."""
    key = analytics_key(principal.user_id)
    cached = await cache_service.get(key)
    if cached is not None:
        return json.loads(cached)

    records = await repos.progress.list_by_user(principal.user_id)
    courses = {}
    for record in records:
        course = await repos.courses.get(record.course_id)
        if course is not None:
            courses[course.id] = course

    payload = asdict(summarize(records, courses, now=now))
    payload["recent_progress"] = [
        {
            "course_id": str(r.course_id),
            "course_title": courses[r.course_id].title if r.course_id in courses else None,
            "completion_percentage": r.completion_percentage,
            "last_access_date": r.last_access_date.isoformat(),
        }
        for r in records[:RECENT_PROGRESS_LIMIT]
    ]

    await cache_service.set(key, json.dumps(payload), SETTINGS.analytics_cache_ttl)
    return payload


async def update_learning_goals(
    repos: Repositories,
    principal: Principal,
    *,
    daily_goal: int | None = None,
    weekly_goal: int | None = None,
    monthly_goal: int | None = None,
    now: datetime,
) -> User:
    changes = {
        name: value
        for name, value in (
            ("daily_goal", daily_goal),
            ("weekly_goal", weekly_goal),
            ("monthly_goal", monthly_goal),
        )
        if value is not None
    }
    for name, value in changes.items():
        if value <= 0:
            raise ValidationError(f"{name} must be a positive number of minutes")

    user = await get_or_create_user(repos, principal, now=now)
    user = replace(user, learning_goals=replace(user.learning_goals, **changes))
    return await repos.users.update(user)


# ---------------------------------------------------------------------------
# Module access and content-level progress
# ---------------------------------------------------------------------------


async def check_module_access(
    repos: Repositories, principal: Principal, module_id: UUID, *, now: datetime
) -> AccessDecision:
    module = await load_module(repos, module_id)
    progress = await repos.progress.get(principal.user_id, module.course_id)
    return can_access(module, principal, progress, now=now)


async def _open_module(
    repos: Repositories, principal: Principal, module_id: UUID, now: datetime
) -> CourseModule:
    await get_or_create_user(repos, principal, now=now)
    module = await load_module(repos, module_id)
    progress = await repos.progress.get(principal.user_id, module.course_id)
    if progress is None and not principal.is_admin():
        raise AuthorizationError("Enroll in the course to access its modules")

    decision = can_access(module, principal, progress, now=now)
    if not decision.allowed:
        logger.warning(
            "Module access denied user=%s module=%s reason=%s",
            principal.user_id,
            module_id,
            decision.reason,
        )
        raise AuthorizationError(decision.reason or "Access denied")
    return module


async def start_module(
    repos: Repositories, principal: Principal, module_id: UUID, *, now: datetime
) -> ModuleProgress:
    """Open a module for the caller; starting twice returns the existing record."""
    module = await _open_module(repos, principal, module_id, now)

    existing = await repos.module_progress.get(principal.user_id, module_id)
    if existing is not None:
        touched = replace(existing, last_accessed_at=now)
        await repos.module_progress.save(touched)
        return touched

    mp = completion.start_module(user_id=principal.user_id, module=module, now=now)
    await repos.module_progress.save(mp)
    logger.info("Module started user=%s module=%s", principal.user_id, module_id)
    return mp


async def update_content_progress(
    repos: Repositories,
    principal: Principal,
    module_id: UUID,
    content_id: str,
    *,
    status: str,
    time_spent: int = 0,
    score: int | None = None,
    policy: CompletionPolicy,
    now: datetime,
) -> ModuleProgress:
    """Record work on one content item.

    When the module flips to completed, the completion is rolled up into the
    learner's course progress with the module's accumulated time.
    """
    module = await _open_module(repos, principal, module_id, now)
    before = await repos.module_progress.get(principal.user_id, module_id)
    if before is None:
        before = completion.start_module(
            user_id=principal.user_id, module=module, now=now
        )

    after = completion.record_content_progress(
        before,
        module,
        content_id,
        status=status,
        time_spent=time_spent,
        score=score,
        now=now,
    )
    after = evaluate_achievements(after, MODULE_RULES, now=now)
    await repos.module_progress.save(after)
    await _track_activity(repos, principal, time_spent, now)
    _count_unlocked(newly_unlocked(before, after), principal.user_id)

    if after.status == "completed" and before.status != "completed":
        await _roll_up_module(repos, principal, after, policy=policy, now=now)

    await cache_service.delete(analytics_key(principal.user_id))
    return after


async def _roll_up_module(
    repos: Repositories,
    principal: Principal,
    mp: ModuleProgress,
    *,
    policy: CompletionPolicy,
    now: datetime,
) -> None:
    course_progress = await repos.progress.get(principal.user_id, mp.course_id)
    if course_progress is None:
        # admins can work through modules without an enrollment
        return

    course = await load_course(repos, mp.course_id)
    index = completion.module_index_of(course, mp.module_id)
    after = completion.record_module_completion(
        course_progress, course, index, mp.total_time_spent, policy=policy, now=now
    )
    after = evaluate_achievements(after, COURSE_RULES, now=now)
    await repos.progress.save(after)

    MODULE_COMPLETIONS.labels(policy=policy.value).inc()
    _count_course_completion(course_progress, after)
    _count_unlocked(newly_unlocked(course_progress, after), principal.user_id)
    logger.info(
        "Module completion rolled up user=%s course=%s index=%d pct=%d",
        principal.user_id,
        mp.course_id,
        index,
        after.completion_percentage,
    )


async def get_module_progress(
    repos: Repositories, user_id: UUID, module_id: UUID
) -> ModuleProgress:
    mp = await repos.module_progress.get(user_id, module_id)
    if mp is None:
        raise NotFoundError("Module not started")
    return mp


async def list_module_progress(
    repos: Repositories, user_id: UUID, course_id: UUID
) -> list[ModuleProgress]:
    """Started modules of one course for one learner, in module order."""
    course = await load_course(repos, course_id)
    order = {module_id: i for i, module_id in enumerate(course.module_ids)}
    records = await repos.module_progress.list_by_user_course(user_id, course_id)
    return sorted(records, key=lambda mp: order.get(mp.module_id, len(order)))
