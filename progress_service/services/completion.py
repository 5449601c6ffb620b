"""Completion aggregation for course and module progress records.

All functions here are pure: they take frozen records plus the course or
module definition and return a new record.  Callers load and persist.

COMPLETION POLICIES
-------------------
Two policies decide what "100%" means for a course:

  simple_ratio (default)
      percentage = round(100 * completed_modules / total_modules).
      Reaching 100 immediately marks the record completed.

  quiz_gated
      Same ratio, but once every module is done the percentage is held at
      99 until the learner passes the course quiz.  Only a passing quiz
      result can move the record to 100 / completed.

Under both policies the percentage never goes down, `is_completed` is
never unset, and `completion_date` is stamped once.

Rounding is half-up (12.5 -> 13), not Python's banker's rounding.
"""

from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from progress_service.core.errors import NotFoundError, ValidationError
from progress_service.models.course import Course, CourseModule
from progress_service.models.progress import (
    CONTENT_STATUSES,
    ContentProgress,
    CourseProgress,
    ModuleCompletion,
    ModuleProgress,
)

QUIZ_GATED_CAP = 99
DEFAULT_PASSING_SCORE = 70


class CompletionPolicy(StrEnum):
    SIMPLE_RATIO = "simple_ratio"
    QUIZ_GATED = "quiz_gated"


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def ratio_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, round_half_up(100 * completed / total))


def _completed_count(progress: CourseProgress, course: Course) -> int:
    # entries for modules since removed from the course do not count
    return len(progress.completed_module_ids.intersection(course.module_ids))


def _settle_percentage(
    progress: CourseProgress,
    course: Course,
    policy: CompletionPolicy,
    now: datetime,
) -> CourseProgress:
    if progress.is_completed:
        return replace(progress, completion_percentage=100)

    total = course.total_modules
    pct = ratio_percentage(_completed_count(progress, course), total)
    if policy is CompletionPolicy.QUIZ_GATED and pct >= 100 and not progress.quiz_passed:
        pct = QUIZ_GATED_CAP
    pct = max(progress.completion_percentage, pct)

    if pct >= 100:
        return replace(
            progress,
            completion_percentage=100,
            is_completed=True,
            completion_date=progress.completion_date or now,
        )
    return replace(progress, completion_percentage=pct)


def record_module_completion(
    progress: CourseProgress,
    course: Course,
    module_index: int,
    time_spent: int,
    *,
    policy: CompletionPolicy = CompletionPolicy.SIMPLE_RATIO,
    now: datetime,
) -> CourseProgress:
    """Record that the learner finished module `module_index` of `course`.

    Raises ValidationError for negative time and NotFoundError for an index
    outside the course's module list.  Completions are keyed on the module
    id, so renumbering the course's modules never double-counts one; the
    stored index only records where the module sat at the time.  A repeat
    completion on an already completed course only accrues time.
    """
    if time_spent < 0:
        raise ValidationError("time_spent must be zero or positive")

    total = course.total_modules
    if not 0 <= module_index < total:
        raise NotFoundError(
            f"Module index {module_index} not found in course {course.id}"
        )

    module_id = course.module_ids[module_index]
    already_recorded = module_id in progress.completed_module_ids
    total_time = progress.total_time_spent + time_spent

    if progress.is_completed and already_recorded:
        return replace(progress, total_time_spent=total_time, last_access_date=now)

    if already_recorded:
        completions = tuple(
            replace(entry, time_spent=entry.time_spent + time_spent)
            if entry.module_id == module_id
            else entry
            for entry in progress.modules_completed
        )
    else:
        completions = progress.modules_completed + (
            ModuleCompletion(
                module_index=module_index,
                module_id=module_id,
                completed_at=now,
                time_spent=time_spent,
            ),
        )

    updated = replace(
        progress,
        modules_completed=completions,
        total_time_spent=total_time,
        current_module=max(progress.current_module, module_index + 1),
        last_access_date=now,
    )
    return _settle_percentage(updated, course, policy, now)


def record_quiz_result(
    progress: CourseProgress,
    course: Course,
    score: int,
    *,
    passing_score: int = DEFAULT_PASSING_SCORE,
    policy: CompletionPolicy = CompletionPolicy.SIMPLE_RATIO,
    now: datetime,
) -> CourseProgress:
    """Apply a course quiz score.  The quiz opens once every module is done."""
    if not 0 <= score <= 100:
        raise ValidationError("score must be between 0 and 100")

    total = course.total_modules
    if total == 0 or _completed_count(progress, course) < total:
        raise ValidationError(
            "Quiz is only available after completing all course modules"
        )

    passed = score >= passing_score
    updated = replace(
        progress,
        grade=max(progress.grade or 0, score),
        quiz_passed=progress.quiz_passed or passed,
        last_access_date=now,
    )
    return _settle_percentage(updated, course, policy, now)


def module_index_of(course: Course, module_id: UUID) -> int:
    try:
        return course.module_ids.index(module_id)
    except ValueError:
        raise NotFoundError(f"Module {module_id} not found in course {course.id}") from None


# ---------------------------------------------------------------------------
# Module (content-level) progress
# ---------------------------------------------------------------------------

# completed is terminal; every other status may be overwritten
_TERMINAL_STATUS = "completed"


def start_module(
    *, user_id: UUID, module: CourseModule, now: datetime
) -> ModuleProgress:
    contents = tuple(
        ContentProgress(
            content_id=item.content_id,
            content_type=item.type,
            is_mandatory=item.is_required,
        )
        for item in module.contents
    )
    return ModuleProgress.new(
        user_id=user_id,
        course_id=module.course_id,
        module_id=module.id,
        now=now,
        contents=contents,
        estimated_duration=module.estimated_duration,
    )


def module_percentage(contents: tuple[ContentProgress, ...]) -> int:
    """Share of mandatory content completed; all content if none is mandatory."""
    tracked = [c for c in contents if c.is_mandatory] or list(contents)
    done = sum(1 for c in tracked if c.status == _TERMINAL_STATUS)
    return ratio_percentage(done, len(tracked))


def record_content_progress(
    module_progress: ModuleProgress,
    module: CourseModule,
    content_id: str,
    *,
    status: str,
    time_spent: int = 0,
    score: int | None = None,
    now: datetime,
) -> ModuleProgress:
    if status not in CONTENT_STATUSES:
        raise ValidationError(
            f"status must be one of {', '.join(CONTENT_STATUSES)} (got {status!r})"
        )
    if time_spent < 0:
        raise ValidationError("time_spent must be zero or positive")
    if score is not None and not 0 <= score <= 100:
        raise ValidationError("score must be between 0 and 100")

    item = module.content(content_id)
    if item is None:
        raise NotFoundError(f"Content {content_id!r} not found in module {module.id}")
    if status == "skipped" and item.is_required and not module.settings.allow_skip:
        raise ValidationError("Required content cannot be skipped in this module")

    existing = {c.content_id: c for c in module_progress.contents}
    current = existing.get(content_id) or ContentProgress(
        content_id=item.content_id,
        content_type=item.type,
        is_mandatory=item.is_required,
    )

    attempts = current.attempts
    if score is not None:
        if attempts >= module.settings.max_attempts:
            raise ValidationError("Maximum attempts reached for this content")
        attempts += 1

    new_status = current.status if current.status == _TERMINAL_STATUS else status
    entry = replace(
        current,
        status=new_status,
        time_spent=current.time_spent + time_spent,
        score=score if score is not None else current.score,
        best_score=max(current.best_score, score or 0),
        attempts=attempts,
        started_at=current.started_at or now,
        completed_at=current.completed_at
        or (now if new_status == _TERMINAL_STATUS else None),
    )

    if content_id in existing:
        contents = tuple(
            entry if c.content_id == content_id else c for c in module_progress.contents
        )
    else:
        contents = module_progress.contents + (entry,)

    pct = max(module_progress.completion_percentage, module_percentage(contents))
    if pct >= 100:
        module_status = "completed"
    elif pct > 0 or any(c.status != "not-started" for c in contents):
        module_status = "in-progress"
    else:
        module_status = module_progress.status

    return replace(
        module_progress,
        contents=contents,
        completion_percentage=pct,
        status=module_status,
        total_time_spent=module_progress.total_time_spent + time_spent,
        last_accessed_at=now,
        completed_at=module_progress.completed_at
        or (now if module_status == "completed" else None),
    )
