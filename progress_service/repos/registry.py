"""The repository bundle handed to services.

Handlers receive a `Repositories` through the `get_repos` dependency
instead of importing storage singletons, so a request works against
either the process-wide in-memory bundle or a set of Pg* repositories
sharing one request-scoped session.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.repos.course_repo import CourseRepo, InMemoryCourseRepo
from progress_service.repos.module_progress_repo import (
    InMemoryModuleProgressRepo,
    ModuleProgressRepo,
)
from progress_service.repos.module_repo import InMemoryModuleRepo, ModuleRepo
from progress_service.repos.pg_course_repo import PgCourseRepo
from progress_service.repos.pg_module_repo import PgModuleRepo
from progress_service.repos.pg_progress_repo import (
    PgCourseProgressRepo,
    PgModuleProgressRepo,
)
from progress_service.repos.pg_user_repo import PgUserRepo
from progress_service.repos.progress_repo import (
    CourseProgressRepo,
    InMemoryCourseProgressRepo,
)
from progress_service.repos.user_repo import InMemoryUserRepo, UserRepo


@dataclass(frozen=True, slots=True)
class Repositories:
    users: UserRepo
    courses: CourseRepo
    modules: ModuleRepo
    progress: CourseProgressRepo
    module_progress: ModuleProgressRepo


def in_memory_repositories() -> Repositories:
    return Repositories(
        users=InMemoryUserRepo(),
        courses=InMemoryCourseRepo(),
        modules=InMemoryModuleRepo(),
        progress=InMemoryCourseProgressRepo(),
        module_progress=InMemoryModuleProgressRepo(),
    )


def pg_repositories(session: AsyncSession) -> Repositories:
    return Repositories(
        users=PgUserRepo(session),
        courses=PgCourseRepo(session),
        modules=PgModuleRepo(session),
        progress=PgCourseProgressRepo(session),
        module_progress=PgModuleProgressRepo(session),
    )
