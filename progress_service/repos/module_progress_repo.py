from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.models.progress import ModuleProgress


class ModuleProgressRepo(Protocol):
    async def get(self, user_id: UUID, module_id: UUID) -> ModuleProgress | None: ...
    async def list_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]: ...
    async def save(self, progress: ModuleProgress) -> None: ...


class InMemoryModuleProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[UUID, UUID], ModuleProgress] = {}

    async def get(self, user_id: UUID, module_id: UUID) -> ModuleProgress | None:
        return self._store.get((user_id, module_id))

    async def list_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        return [
            p
            for (uid, _), p in self._store.items()
            if uid == user_id and p.course_id == course_id
        ]

    async def save(self, progress: ModuleProgress) -> None:
        self._store[(progress.user_id, progress.module_id)] = progress
