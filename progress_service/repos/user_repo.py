from __future__ import annotations

from typing import Protocol
from uuid import UUID

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.models.user import User


class UserRepo(Protocol):
    async def get_by_id(self, user_id: UUID) -> User | None: ...
    async def list_all(self) -> list[User]: ...
    async def add(self, user: User) -> None: ...
    async def update(self, user: User) -> User: ...


class InMemoryUserRepo:
    def __init__(self) -> None:
        self._by_id: dict[UUID, User] = {}

    async def get_by_id(self, user_id: UUID) -> User | None:
        return self._by_id.get(user_id)

    async def list_all(self) -> list[User]:
        return sorted(self._by_id.values(), key=lambda u: u.created_at)

    async def add(self, user: User) -> None:
        if user.id in self._by_id:
            raise ConflictError(f"User {user.id} already exists")
        self._by_id[user.id] = user

    async def update(self, user: User) -> User:
        if user.id not in self._by_id:
            raise NotFoundError(f"User {user.id} not found")
        self._by_id[user.id] = user
        return user
