from __future__ import annotations

import asyncio
from collections.abc import Iterator
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

from progress_service.api.dependencies import get_completion_policy, get_repos
from progress_service.main import app
from progress_service.models.course import ContentItem, Course, CourseModule
from progress_service.models.principal import Principal
from progress_service.models.user import User
from progress_service.repos.registry import Repositories, in_memory_repositories
from progress_service.services import token_service
from progress_service.services.cache import cache_service
from progress_service.services.completion import CompletionPolicy


@pytest.fixture(autouse=True)
def repos() -> Iterator[Repositories]:
    """A fresh in-memory repository bundle, wired into the app for this test."""
    bundle = in_memory_repositories()
    app.dependency_overrides[get_repos] = lambda: bundle
    yield bundle
    app.dependency_overrides.pop(get_repos, None)


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def quiz_gated() -> Iterator[None]:
    """Run the API under the quiz-gated completion policy."""
    app.dependency_overrides[get_completion_policy] = lambda: CompletionPolicy.QUIZ_GATED
    yield
    app.dependency_overrides.pop(get_completion_policy, None)


def mint_token(
    user_id: UUID | str | None = None,
    role: str = "student",
    premium: bool = False,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(
        sub=str(user_id or uuid4()), role=role, premium=premium
    )


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def run(coro):
    """Drive an async repo/service call from a sync test."""
    return asyncio.run(coro)


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


# ---------------------------------------------------------------------------
# Seed helpers
# ---------------------------------------------------------------------------


def seed_user(repos: Repositories, role: str = "student", premium: bool = False) -> User:
    user = User.new(id=uuid4(), now=NOW, role=role, is_premium=premium)
    run(repos.users.add(user))
    return user


def seed_course(
    repos: Repositories,
    *,
    modules: int = 3,
    instructor_id: UUID | None = None,
    category: str = "programming",
    title: str = "Python Basics",
) -> tuple[Course, list[CourseModule]]:
    """Persist a course with `modules` single-video modules; returns both."""
    course = Course.new(
        title=title, now=NOW, category=category, instructor_id=instructor_id
    )
    run(repos.courses.add(course))
    created = []
    for number in range(1, modules + 1):
        module = CourseModule.new(
            course_id=course.id,
            module_number=number,
            title=f"Module {number}",
            contents=(
                ContentItem(content_id=f"m{number}-video", type="video", title="Video", duration=20),
            ),
        )
        run(repos.modules.add(module))
        created.append(module)
    return course, created


def principal_for(user: User) -> Principal:
    return Principal(user_id=user.id, role=user.role, is_premium=user.is_premium)
