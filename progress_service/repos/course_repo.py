from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.course import Course


class CourseRepo(Protocol):
    """Course storage.

    `module_ids` is not persisted here; it is derived from the module
    repository's module_number ordering when a course is loaded.
    `enrollment_count` only changes through `adjust_enrollment_count`, so
    `update` never overwrites a concurrent enroll/unenroll.
    """

    async def get(self, course_id: UUID) -> Course | None: ...
    async def list_all(self, *, active_only: bool = False) -> list[Course]: ...
    async def add(self, course: Course) -> None: ...
    async def update(self, course: Course) -> Course: ...
    async def delete(self, course_id: UUID) -> bool: ...
    async def adjust_enrollment_count(self, course_id: UUID, delta: int) -> int: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, Course] = {}

    async def get(self, course_id: UUID) -> Course | None:
        return self._by_id.get(course_id)

    async def list_all(self, *, active_only: bool = False) -> list[Course]:
        courses = sorted(self._by_id.values(), key=lambda c: c.created_at)
        if active_only:
            return [c for c in courses if c.is_active]
        return courses

    async def add(self, course: Course) -> None:
        if course.id in self._by_id:
            raise ConflictError(f"Course {course.id} already exists")
        self._by_id[course.id] = replace(course, module_ids=())

    async def update(self, course: Course) -> Course:
        stored = self._by_id.get(course.id)
        if stored is None:
            raise NotFoundError(f"Course {course.id} not found")
        updated = replace(
            course, module_ids=(), enrollment_count=stored.enrollment_count
        )
        self._by_id[course.id] = updated
        return updated

    async def delete(self, course_id: UUID) -> bool:
        return self._by_id.pop(course_id, None) is not None

    async def adjust_enrollment_count(self, course_id: UUID, delta: int) -> int:
        # no await between read and write, so this is atomic on the event loop
        stored = self._by_id.get(course_id)
        if stored is None:
            raise NotFoundError(f"Course {course_id} not found")
        count = max(0, stored.enrollment_count + delta)
        self._by_id[course_id] = replace(stored, enrollment_count=count)
        return count
