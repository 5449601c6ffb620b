from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError
from progress_service.models.progress import CourseProgress


class CourseProgressRepo(Protocol):
    """At most one CourseProgress per (user_id, course_id).

    `save` overwrites the stored record wholesale: two concurrent
    read-modify-write cycles on the same pair resolve last-write-wins.
    """

    async def get(self, user_id: UUID, course_id: UUID) -> CourseProgress | None: ...
    async def list_by_user(self, user_id: UUID) -> list[CourseProgress]: ...
    async def list_by_course(self, course_id: UUID) -> list[CourseProgress]: ...
    async def count_by_course(self, course_id: UUID) -> int: ...
    async def add(self, progress: CourseProgress) -> None: ...
    async def save(self, progress: CourseProgress) -> None: ...
    async def delete(self, user_id: UUID, course_id: UUID) -> bool: ...
    async def delete_by_course(self, course_id: UUID) -> int: ...


class InMemoryCourseProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], CourseProgress] = {}

    async def get(self, user_id: UUID, course_id: UUID) -> CourseProgress | None:
        return self._store.get((user_id, course_id))

    async def list_by_user(self, user_id: UUID) -> list[CourseProgress]:
        records = [p for (uid, _), p in self._store.items() if uid == user_id]
        return sorted(records, key=lambda p: p.last_access_date, reverse=True)

    async def list_by_course(self, course_id: UUID) -> list[CourseProgress]:
        records = [p for (_, cid), p in self._store.items() if cid == course_id]
        return sorted(records, key=lambda p: p.enrolled_at)

    async def count_by_course(self, course_id: UUID) -> int:
        return sum(1 for (_, cid) in self._store if cid == course_id)

    async def add(self, progress: CourseProgress) -> None:
        key = (progress.user_id, progress.course_id)
        if key in self._store:
            raise ConflictError("Already enrolled in this course")
        self._store[key] = progress

    async def save(self, progress: CourseProgress) -> None:
        self._store[(progress.user_id, progress.course_id)] = progress

    async def delete(self, user_id: UUID, course_id: UUID) -> bool:
        return self._store.pop((user_id, course_id), None) is not None

    async def delete_by_course(self, course_id: UUID) -> int:
        doomed = [key for key in self._store if key[1] == course_id]
        for key in doomed:
            del self._store[key]
        return len(doomed)
