"""Enrollment: creating and removing a learner's progress record for a course.

`Course.enrollment_count` tracks the number of progress records for the
course.  The count is moved with `CourseRepo.adjust_enrollment_count`, a
single atomic statement on PostgreSQL, never read-modify-written here.
"""

from __future__ import annotations

import logging
from datetime import datetime
from uuid import UUID

from progress_service.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from progress_service.core.metrics import ENROLLMENTS
from progress_service.models.course import Course
from progress_service.models.principal import Principal
from progress_service.models.progress import CourseProgress
from progress_service.repos.registry import Repositories
from progress_service.services.cache import analytics_key, cache_service

logger = logging.getLogger(__name__)


def ensure_can_manage_course(principal: Principal, course: Course) -> None:
    """Admins manage every course; instructors only the ones they own."""
    if principal.is_admin():
        return
    if principal.has_role("instructor") and course.instructor_id == principal.user_id:
        return
    logger.warning(
        "Access denied: user=%s role=%s cannot manage course=%s",
        principal.user_id,
        principal.role,
        course.id,
    )
    raise AuthorizationError("Not authorized to manage this course")


async def _get_course(repos: Repositories, course_id: UUID) -> Course:
    course = await repos.courses.get(course_id)
    if course is None:
        raise NotFoundError(f"Course {course_id} not found")
    return course


async def enroll(
    repos: Repositories, user_id: UUID, course_id: UUID, *, now: datetime
) -> CourseProgress:
    course = await _get_course(repos, course_id)
    if not course.is_active:
        raise ValidationError("Course is not open for enrollment")
    if await repos.progress.get(user_id, course_id) is not None:
        raise ConflictError("Already enrolled in this course")

    progress = CourseProgress.new(user_id=user_id, course_id=course_id, now=now)
    # the (user, course) unique key turns a concurrent double-enroll into ConflictError
    await repos.progress.add(progress)
    count = await repos.courses.adjust_enrollment_count(course_id, 1)

    await cache_service.delete(analytics_key(user_id))
    ENROLLMENTS.labels(action="enroll").inc()
    logger.info(
        "Enrolled user=%s course=%s enrollment_count=%d", user_id, course_id, count
    )
    return progress


async def unenroll(repos: Repositories, user_id: UUID, course_id: UUID) -> None:
    await _get_course(repos, course_id)
    if not await repos.progress.delete(user_id, course_id):
        raise ValidationError("You are not enrolled in this course")
    count = await repos.courses.adjust_enrollment_count(course_id, -1)

    await cache_service.delete(analytics_key(user_id))
    ENROLLMENTS.labels(action="unenroll").inc()
    logger.info(
        "Unenrolled user=%s course=%s enrollment_count=%d", user_id, course_id, count
    )


async def enroll_student(
    repos: Repositories,
    principal: Principal,
    course_id: UUID,
    student_id: UUID,
    *,
    now: datetime,
) -> CourseProgress:
    """Enroll someone else: the course owner or an admin acting for a student."""
    ensure_can_manage_course(principal, await _get_course(repos, course_id))

    student = await repos.users.get_by_id(student_id)
    if student is None:
        raise NotFoundError(f"User {student_id} not found")
    if student.role != "student":
        raise ValidationError("Only students can be enrolled in a course")
    return await enroll(repos, student_id, course_id, now=now)


async def list_enrollments(
    repos: Repositories, principal: Principal, course_id: UUID
) -> list[CourseProgress]:
    ensure_can_manage_course(principal, await _get_course(repos, course_id))
    return await repos.progress.list_by_course(course_id)
