from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from uuid import UUID

from progress_service.models.course import Course
from progress_service.models.progress import CourseProgress
from progress_service.services.completion import round_half_up

RECENT_ACTIVITY_WINDOW = timedelta(days=7)
NO_BEST_SUBJECT = "Not available"


@dataclass(frozen=True, slots=True)
class LearningAnalytics:
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    total_time_hours: int
    total_achievements: int
    recent_activity: int
    average_score: int
    best_subject: str


def _best_subject(
    records: Sequence[CourseProgress], courses_by_id: Mapping[UUID, Course]
) -> str:
    grades: dict[str, list[int]] = defaultdict(list)
    for record in records:
        course = courses_by_id.get(record.course_id)
        if course is None or not record.grade:
            continue
        grades[course.category].append(record.grade)

    if not grades:
        return NO_BEST_SUBJECT
    # ties go to the alphabetically first category so the answer is stable
    return max(sorted(grades), key=lambda c: sum(grades[c]) / len(grades[c]))


def summarize(
    records: Sequence[CourseProgress],
    courses_by_id: Mapping[UUID, Course],
    *,
    now: datetime,
) -> LearningAnalytics:
    """Roll a learner's progress records up into dashboard counters."""
    graded = [r.grade for r in records if r.grade]
    total_minutes = sum(r.total_time_spent for r in records)

    return LearningAnalytics(
        total_courses=len(records),
        completed_courses=sum(1 for r in records if r.completion_percentage == 100),
        in_progress_courses=sum(
            1 for r in records if 0 < r.completion_percentage < 100
        ),
        total_time_hours=round_half_up(total_minutes / 60),
        total_achievements=sum(len(r.achievements) for r in records),
        recent_activity=sum(
            1 for r in records if now - r.last_access_date <= RECENT_ACTIVITY_WINDOW
        ),
        average_score=round_half_up(sum(graded) / len(graded)) if graded else 0,
        best_subject=_best_subject(records, courses_by_id),
    )
