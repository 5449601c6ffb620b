"""PostgreSQL implementation of CourseRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import NotFoundError
from progress_service.db.tables import CourseRow
from progress_service.models.course import Course


class PgCourseRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, course_id: UUID) -> Course | None:
        row = await self._session.get(CourseRow, course_id)
        return _row_to_course(row) if row is not None else None

    async def list_all(self, *, active_only: bool = False) -> list[Course]:
        stmt = select(CourseRow).order_by(CourseRow.created_at)
        if active_only:
            stmt = stmt.where(CourseRow.is_active.is_(True))
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_course(r) for r in rows]

    async def add(self, course: Course) -> None:
        self._session.add(
            CourseRow(
                id=course.id,
                title=course.title,
                description=course.description,
                category=course.category,
                difficulty=course.difficulty,
                instructor_id=course.instructor_id,
                is_active=course.is_active,
                enrollment_count=course.enrollment_count,
                created_at=course.created_at,
            )
        )
        await self._session.flush()

    async def update(self, course: Course) -> Course:
        # enrollment_count is deliberately absent: only adjust_enrollment_count moves it
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course.id)
            .values(
                title=course.title,
                description=course.description,
                category=course.category,
                difficulty=course.difficulty,
                instructor_id=course.instructor_id,
                is_active=course.is_active,
            )
            .returning(CourseRow)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Course {course.id} not found")
        return _row_to_course(row)

    async def delete(self, course_id: UUID) -> bool:
        result = await self._session.execute(
            delete(CourseRow).where(CourseRow.id == course_id)
        )
        return result.rowcount > 0

    async def adjust_enrollment_count(self, course_id: UUID, delta: int) -> int:
        # single UPDATE so concurrent enrollments cannot lose an increment
        stmt = (
            update(CourseRow)
            .where(CourseRow.id == course_id)
            .values(enrollment_count=func.greatest(CourseRow.enrollment_count + delta, 0))
            .returning(CourseRow.enrollment_count)
        )
        count = (await self._session.execute(stmt)).scalar_one_or_none()
        if count is None:
            raise NotFoundError(f"Course {course_id} not found")
        return count


def _row_to_course(row: CourseRow) -> Course:
    return Course(
        id=row.id,
        title=row.title,
        created_at=row.created_at,
        description=row.description or "",
        category=row.category,
        difficulty=row.difficulty,
        instructor_id=row.instructor_id,
        is_active=row.is_active,
        enrollment_count=row.enrollment_count,
    )
