from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.course import CourseModule


class ModuleRepo(Protocol):
    async def get(self, module_id: UUID) -> CourseModule | None: ...
    async def list_by_course(self, course_id: UUID) -> list[CourseModule]: ...
    async def add(self, module: CourseModule) -> None: ...
    async def update(self, module: CourseModule) -> CourseModule: ...
    async def delete(self, module_id: UUID) -> bool: ...
    async def delete_by_course(self, course_id: UUID) -> int: ...


class InMemoryModuleRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, CourseModule] = {}

    def _number_taken(self, module: CourseModule) -> bool:
        return any(
            m.course_id == module.course_id
            and m.module_number == module.module_number
            and m.id != module.id
            for m in self._by_id.values()
        )

    async def get(self, module_id: UUID) -> CourseModule | None:
        return self._by_id.get(module_id)

    async def list_by_course(self, course_id: UUID) -> list[CourseModule]:
        return sorted(
            (m for m in self._by_id.values() if m.course_id == course_id),
            key=lambda m: m.module_number,
        )

    async def add(self, module: CourseModule) -> None:
        if module.id in self._by_id:
            raise ConflictError(f"Module {module.id} already exists")
        if self._number_taken(module):
            raise ConflictError(
                f"Module number {module.module_number} already exists in this course"
            )
        self._by_id[module.id] = module

    async def update(self, module: CourseModule) -> CourseModule:
        if module.id not in self._by_id:
            raise NotFoundError(f"Module {module.id} not found")
        if self._number_taken(module):
            raise ConflictError(
                f"Module number {module.module_number} already exists in this course"
            )
        self._by_id[module.id] = module
        return module

    async def delete(self, module_id: UUID) -> bool:
        return self._by_id.pop(module_id, None) is not None

    async def delete_by_course(self, course_id: UUID) -> int:
        doomed = [m.id for m in self._by_id.values() if m.course_id == course_id]
        for module_id in doomed:
            del self._by_id[module_id]
        return len(doomed)
