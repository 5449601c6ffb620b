"""Course catalog and enrollment endpoints."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, ConfigDict

from progress_service.api.dependencies import (
    CurrentUser,
    Repos,
    require_any_role,
)
from progress_service.api.progress import CourseProgressOut
from progress_service.models.course import Course
from progress_service.models.principal import Principal
from progress_service.services import catalog, enrollment, users_service

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    description: str
    category: str
    difficulty: str
    instructor_id: UUID | None
    module_ids: list[UUID]
    total_modules: int
    is_active: bool
    enrollment_count: int
    created_at: datetime


class CourseCreateIn(BaseModel):
    title: str
    description: str = ""
    category: str = "other"
    difficulty: str = "beginner"
    instructor_id: UUID | None = None


class CourseUpdateIn(BaseModel):
    title: str | None = None
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    is_active: bool | None = None
    instructor_id: UUID | None = None


class EnrollStudentIn(BaseModel):
    student_id: UUID


def _course_out(course: Course) -> CourseOut:
    return CourseOut.model_validate(course)


@router.get("", response_model=list[CourseOut])
async def list_courses(
    principal: CurrentUser, repos: Repos, include_inactive: bool = False
) -> list[CourseOut]:
    # inactive courses are only listed for staff
    show_inactive = include_inactive and principal.has_at_least("instructor")
    courses = await catalog.list_courses(repos, include_inactive=show_inactive)
    return [_course_out(c) for c in courses]


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
async def create_course(
    body: CourseCreateIn,
    principal: Annotated[Principal, Depends(require_any_role({"instructor", "admin"}))],
    repos: Repos,
) -> CourseOut:
    course = await catalog.create_course(
        repos,
        principal,
        title=body.title,
        description=body.description,
        category=body.category,
        difficulty=body.difficulty,
        instructor_id=body.instructor_id,
        now=datetime.now(UTC),
    )
    return _course_out(course)


@router.get("/{course_id}", response_model=CourseOut)
async def get_course(course_id: UUID, _principal: CurrentUser, repos: Repos) -> CourseOut:
    return _course_out(await catalog.load_course(repos, course_id))


@router.patch("/{course_id}", response_model=CourseOut)
async def update_course(
    course_id: UUID, body: CourseUpdateIn, principal: CurrentUser, repos: Repos
) -> CourseOut:
    changes = body.model_dump(exclude_none=True)
    course = await catalog.update_course(repos, principal, course_id, changes)
    return _course_out(course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_course(course_id: UUID, principal: CurrentUser, repos: Repos) -> Response:
    await catalog.delete_course(repos, principal, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Enrollment
# ---------------------------------------------------------------------------


@router.post(
    "/{course_id}/enroll",
    response_model=CourseProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: UUID, principal: CurrentUser, repos: Repos
) -> CourseProgressOut:
    now = datetime.now(UTC)
    await users_service.get_or_create_user(repos, principal, now=now)
    progress = await enrollment.enroll(repos, principal.user_id, course_id, now=now)
    return CourseProgressOut.model_validate(progress)


@router.delete("/{course_id}/enroll", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll_from_course(
    course_id: UUID, principal: CurrentUser, repos: Repos
) -> Response:
    await enrollment.unenroll(repos, principal.user_id, course_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{course_id}/enrollments",
    response_model=CourseProgressOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_student(
    course_id: UUID, body: EnrollStudentIn, principal: CurrentUser, repos: Repos
) -> CourseProgressOut:
    progress = await enrollment.enroll_student(
        repos, principal, course_id, body.student_id, now=datetime.now(UTC)
    )
    return CourseProgressOut.model_validate(progress)


@router.get("/{course_id}/enrollments", response_model=list[CourseProgressOut])
async def list_enrollments(
    course_id: UUID, principal: CurrentUser, repos: Repos
) -> list[CourseProgressOut]:
    records = await enrollment.list_enrollments(repos, principal, course_id)
    return [CourseProgressOut.model_validate(r) for r in records]
