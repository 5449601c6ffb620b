"""Course and module management.

Ownership rule: admins may manage any course; an instructor may manage
only the courses whose `instructor_id` is theirs.  Deleting a course is
admin-only and removes its modules and progress records with it.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID

from progress_service.core.errors import AuthorizationError, NotFoundError, ValidationError
from progress_service.models.course import (
    CATEGORIES,
    CONTENT_TYPES,
    DIFFICULTIES,
    ContentItem,
    Course,
    CourseModule,
    ModuleSettings,
    Prerequisites,
)
from progress_service.models.principal import ROLES, Principal
from progress_service.repos.registry import Repositories
from progress_service.services.cache import cache_service
from progress_service.services.enrollment import ensure_can_manage_course
from progress_service.services.users_service import get_or_create_user

logger = logging.getLogger(__name__)


async def load_course(repos: Repositories, course_id: UUID) -> Course:
    """Fetch a course with `module_ids` filled in module_number order."""
    course = await repos.courses.get(course_id)
    if course is None:
        raise NotFoundError(f"Course {course_id} not found")
    modules = await repos.modules.list_by_course(course_id)
    return replace(course, module_ids=tuple(m.id for m in modules))


async def load_module(repos: Repositories, module_id: UUID) -> CourseModule:
    module = await repos.modules.get(module_id)
    if module is None:
        raise NotFoundError(f"Module {module_id} not found")
    return module


async def list_courses(
    repos: Repositories, *, include_inactive: bool = False
) -> list[Course]:
    courses = await repos.courses.list_all(active_only=not include_inactive)
    return [await load_course(repos, c.id) for c in courses]


def _check_course_fields(fields: dict[str, Any]) -> None:
    if "category" in fields and fields["category"] not in CATEGORIES:
        raise ValidationError(f"category must be one of {', '.join(CATEGORIES)}")
    if "difficulty" in fields and fields["difficulty"] not in DIFFICULTIES:
        raise ValidationError(f"difficulty must be one of {', '.join(DIFFICULTIES)}")
    if "title" in fields and not str(fields["title"]).strip():
        raise ValidationError("title must not be empty")


async def create_course(
    repos: Repositories,
    principal: Principal,
    *,
    title: str,
    now: datetime,
    description: str = "",
    category: str = "other",
    difficulty: str = "beginner",
    instructor_id: UUID | None = None,
) -> Course:
    if not principal.has_any_role({"instructor", "admin"}):
        raise AuthorizationError("Only instructors and admins can create courses")
    _check_course_fields(
        {"title": title, "category": category, "difficulty": difficulty}
    )

    await get_or_create_user(repos, principal, now=now)
    # instructors always own what they create; admins may assign an owner
    owner = principal.user_id
    if principal.is_admin() and instructor_id is not None:
        await _check_instructor(repos, instructor_id)
        owner = instructor_id
    course = Course.new(
        title=title.strip(),
        now=now,
        description=description,
        category=category,
        difficulty=difficulty,
        instructor_id=owner,
    )
    await repos.courses.add(course)
    logger.info("Created course id=%s owner=%s", course.id, owner)
    return course


async def _check_instructor(repos: Repositories, user_id: UUID) -> None:
    user = await repos.users.get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    if user.role not in ("instructor", "admin"):
        raise ValidationError("Course owner must be an instructor or admin")


_COURSE_MUTABLE = {"title", "description", "category", "difficulty", "is_active"}


async def update_course(
    repos: Repositories,
    principal: Principal,
    course_id: UUID,
    changes: dict[str, Any],
) -> Course:
    course = await load_course(repos, course_id)
    ensure_can_manage_course(principal, course)

    unknown = set(changes) - _COURSE_MUTABLE - {"instructor_id"}
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if "instructor_id" in changes and not principal.is_admin():
        raise AuthorizationError("Only admins can reassign a course")
    if "instructor_id" in changes:
        await _check_instructor(repos, changes["instructor_id"])
    _check_course_fields(changes)

    updated = await repos.courses.update(replace(course, **changes))
    logger.info("Updated course id=%s fields=%s", course_id, sorted(changes))
    return replace(updated, module_ids=course.module_ids)


async def delete_course(
    repos: Repositories, principal: Principal, course_id: UUID
) -> None:
    if not principal.is_admin():
        raise AuthorizationError("Only admins can delete courses")
    if await repos.courses.get(course_id) is None:
        raise NotFoundError(f"Course {course_id} not found")

    removed_progress = await repos.progress.delete_by_course(course_id)
    removed_modules = await repos.modules.delete_by_course(course_id)
    await repos.courses.delete(course_id)
    await cache_service.delete_pattern("analytics:*")
    logger.info(
        "Deleted course id=%s modules=%d progress_records=%d",
        course_id,
        removed_modules,
        removed_progress,
    )


# ---------------------------------------------------------------------------
# Modules
# ---------------------------------------------------------------------------


def _check_contents(contents: tuple[ContentItem, ...]) -> None:
    seen: set[str] = set()
    for item in contents:
        if item.content_id in seen:
            raise ValidationError(f"Duplicate content_id {item.content_id!r}")
        seen.add(item.content_id)
        if item.type not in CONTENT_TYPES:
            raise ValidationError(
                f"content type must be one of {', '.join(CONTENT_TYPES)} (got {item.type!r})"
            )
        if item.duration < 0:
            raise ValidationError("content duration must be zero or positive")
        role = item.access.required_role
        if role is not None and role not in ROLES:
            raise ValidationError(f"required_role must be one of {', '.join(ROLES)}")


async def _check_prerequisites(
    repos: Repositories, course_id: UUID, module_id: UUID, prereqs: Prerequisites
) -> None:
    siblings = {m.id for m in await repos.modules.list_by_course(course_id)}
    for prereq in prereqs.modules:
        if prereq == module_id:
            raise ValidationError("A module cannot be its own prerequisite")
        if prereq not in siblings:
            raise ValidationError(f"Prerequisite module {prereq} is not in this course")


def _check_settings(settings: ModuleSettings) -> None:
    if settings.max_attempts < 1:
        raise ValidationError("max_attempts must be at least 1")
    start, end = settings.available_from, settings.available_until
    if start is not None and end is not None and end <= start:
        raise ValidationError("available_until must be after available_from")


async def add_module(
    repos: Repositories,
    principal: Principal,
    course_id: UUID,
    *,
    module_number: int,
    title: str,
    description: str = "",
    contents: tuple[ContentItem, ...] = (),
    prerequisites: Prerequisites | None = None,
    settings: ModuleSettings | None = None,
    now: datetime,
) -> CourseModule:
    course = await load_course(repos, course_id)
    ensure_can_manage_course(principal, course)
    await get_or_create_user(repos, principal, now=now)
    if module_number < 1:
        raise ValidationError("module_number must be at least 1")

    module = CourseModule.new(
        course_id=course_id,
        module_number=module_number,
        title=title,
        description=description,
        contents=contents,
        prerequisites=prerequisites,
        settings=settings,
        created_by=principal.user_id,
    )
    _check_contents(module.contents)
    _check_settings(module.settings)
    await _check_prerequisites(repos, course_id, module.id, module.prerequisites)

    await repos.modules.add(module)
    logger.info(
        "Added module id=%s course=%s number=%d", module.id, course_id, module_number
    )
    return module


_MODULE_MUTABLE = {
    "module_number",
    "title",
    "description",
    "contents",
    "prerequisites",
    "settings",
}


async def update_module(
    repos: Repositories,
    principal: Principal,
    module_id: UUID,
    changes: dict[str, Any],
) -> CourseModule:
    module = await load_module(repos, module_id)
    ensure_can_manage_course(principal, await load_course(repos, module.course_id))

    unknown = set(changes) - _MODULE_MUTABLE
    if unknown:
        raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")
    if "contents" in changes:
        changes["contents"] = tuple(sorted(changes["contents"], key=lambda c: c.order))

    updated = replace(module, **changes)
    if updated.module_number < 1:
        raise ValidationError("module_number must be at least 1")
    _check_contents(updated.contents)
    _check_settings(updated.settings)
    await _check_prerequisites(repos, updated.course_id, updated.id, updated.prerequisites)

    await repos.modules.update(updated)
    logger.info("Updated module id=%s fields=%s", module_id, sorted(changes))
    return updated


async def delete_module(
    repos: Repositories, principal: Principal, module_id: UUID
) -> None:
    module = await load_module(repos, module_id)
    ensure_can_manage_course(principal, await load_course(repos, module.course_id))
    await repos.modules.delete(module_id)
    logger.info("Deleted module id=%s course=%s", module_id, module.course_id)
