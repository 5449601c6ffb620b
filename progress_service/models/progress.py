from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4

CONTENT_STATUSES = ("not-started", "in-progress", "completed", "skipped", "failed")


@dataclass(frozen=True, slots=True)
class Achievement:
    type: str
    description: str
    unlocked_at: datetime


@dataclass(frozen=True, slots=True)
class ModuleCompletion:
    module_index: int
    completed_at: datetime
    module_id: UUID | None = None
    time_spent: int = 0  # minutes


@dataclass(frozen=True, slots=True)
class CourseProgress:
    """One learner's progress through one course.

    At most one record exists per (user_id, course_id).  Derived fields
    (completion_percentage, current_module, is_completed) are recomputed by
    services/completion.py; they are never written directly by handlers.
    """

    id: UUID
    user_id: UUID
    course_id: UUID
    enrolled_at: datetime
    last_access_date: datetime
    modules_completed: tuple[ModuleCompletion, ...] = ()
    completion_percentage: int = 0
    total_time_spent: int = 0  # minutes
    current_module: int = 0
    is_completed: bool = False
    completion_date: datetime | None = None
    grade: int | None = None
    quiz_passed: bool = False
    achievements: tuple[Achievement, ...] = ()

    @property
    def completed_module_ids(self) -> frozenset[UUID]:
        return frozenset(
            m.module_id for m in self.modules_completed if m.module_id is not None
        )

    @staticmethod
    def new(*, user_id: UUID, course_id: UUID, now: datetime) -> CourseProgress:
        return CourseProgress(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            enrolled_at=now,
            last_access_date=now,
        )


@dataclass(frozen=True, slots=True)
class ContentProgress:
    content_id: str
    content_type: str
    is_mandatory: bool = True
    status: str = "not-started"  # see CONTENT_STATUSES
    time_spent: int = 0  # minutes
    score: int | None = None
    best_score: int = 0
    attempts: int = 0
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class ModuleProgress:
    """Content-level progress for one learner in one module."""

    id: UUID
    user_id: UUID
    course_id: UUID
    module_id: UUID
    started_at: datetime
    last_accessed_at: datetime
    status: str = "not-started"  # not-started|in-progress|completed
    contents: tuple[ContentProgress, ...] = ()
    completion_percentage: int = 0
    total_time_spent: int = 0
    estimated_duration: int = 0
    completed_at: datetime | None = None
    achievements: tuple[Achievement, ...] = ()

    @staticmethod
    def new(
        *,
        user_id: UUID,
        course_id: UUID,
        module_id: UUID,
        now: datetime,
        contents: tuple[ContentProgress, ...] = (),
        estimated_duration: int = 0,
    ) -> ModuleProgress:
        return ModuleProgress(
            id=uuid4(),
            user_id=user_id,
            course_id=course_id,
            module_id=module_id,
            started_at=now,
            last_accessed_at=now,
            contents=contents,
            estimated_duration=estimated_duration,
        )
