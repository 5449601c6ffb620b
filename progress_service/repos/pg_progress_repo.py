"""PostgreSQL implementations of CourseProgressRepo and ModuleProgressRepo."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import ConflictError
from progress_service.db import codec
from progress_service.db.tables import CourseProgressRow, ModuleProgressRow
from progress_service.models.progress import CourseProgress, ModuleProgress


class PgCourseProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, course_id: UUID) -> CourseProgress | None:
        stmt = select(CourseProgressRow).where(
            CourseProgressRow.user_id == user_id,
            CourseProgressRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_progress(row) if row is not None else None

    async def list_by_user(self, user_id: UUID) -> list[CourseProgress]:
        stmt = (
            select(CourseProgressRow)
            .where(CourseProgressRow.user_id == user_id)
            .order_by(CourseProgressRow.last_access_date.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def list_by_course(self, course_id: UUID) -> list[CourseProgress]:
        stmt = (
            select(CourseProgressRow)
            .where(CourseProgressRow.course_id == course_id)
            .order_by(CourseProgressRow.enrolled_at)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def count_by_course(self, course_id: UUID) -> int:
        stmt = select(func.count()).where(CourseProgressRow.course_id == course_id)
        return (await self._session.execute(stmt)).scalar_one()

    async def add(self, progress: CourseProgress) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(CourseProgressRow(**_progress_values(progress)))
        except IntegrityError:
            raise ConflictError("Already enrolled in this course") from None

    async def save(self, progress: CourseProgress) -> None:
        values = _progress_values(progress)
        stmt = pg_insert(CourseProgressRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "course_id"],
            set_={k: v for k, v in values.items() if k not in ("id", "user_id", "course_id")},
        )
        await self._session.execute(stmt)

    async def delete(self, user_id: UUID, course_id: UUID) -> bool:
        result = await self._session.execute(
            delete(CourseProgressRow).where(
                CourseProgressRow.user_id == user_id,
                CourseProgressRow.course_id == course_id,
            )
        )
        return result.rowcount > 0

    async def delete_by_course(self, course_id: UUID) -> int:
        result = await self._session.execute(
            delete(CourseProgressRow).where(CourseProgressRow.course_id == course_id)
        )
        return result.rowcount


class PgModuleProgressRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, user_id: UUID, module_id: UUID) -> ModuleProgress | None:
        stmt = select(ModuleProgressRow).where(
            ModuleProgressRow.user_id == user_id,
            ModuleProgressRow.module_id == module_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_module_progress(row) if row is not None else None

    async def list_by_user_course(
        self, user_id: UUID, course_id: UUID
    ) -> list[ModuleProgress]:
        stmt = select(ModuleProgressRow).where(
            ModuleProgressRow.user_id == user_id,
            ModuleProgressRow.course_id == course_id,
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module_progress(r) for r in rows]

    async def save(self, progress: ModuleProgress) -> None:
        values = _module_progress_values(progress)
        stmt = pg_insert(ModuleProgressRow).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "module_id"],
            set_={k: v for k, v in values.items() if k not in ("id", "user_id", "module_id")},
        )
        await self._session.execute(stmt)


def _progress_values(p: CourseProgress) -> dict[str, Any]:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "course_id": p.course_id,
        "enrolled_at": p.enrolled_at,
        "last_access_date": p.last_access_date,
        "modules_completed": codec.dump_completions(p.modules_completed),
        "completion_percentage": p.completion_percentage,
        "total_time_spent": p.total_time_spent,
        "current_module": p.current_module,
        "is_completed": p.is_completed,
        "completion_date": p.completion_date,
        "grade": p.grade,
        "quiz_passed": p.quiz_passed,
        "achievements": codec.dump_achievements(p.achievements),
    }


def _row_to_progress(row: CourseProgressRow) -> CourseProgress:
    return CourseProgress(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        enrolled_at=row.enrolled_at,
        last_access_date=row.last_access_date,
        modules_completed=codec.load_completions(row.modules_completed),
        completion_percentage=row.completion_percentage,
        total_time_spent=row.total_time_spent,
        current_module=row.current_module,
        is_completed=row.is_completed,
        completion_date=row.completion_date,
        grade=row.grade,
        quiz_passed=row.quiz_passed,
        achievements=codec.load_achievements(row.achievements),
    )


def _module_progress_values(p: ModuleProgress) -> dict[str, Any]:
    return {
        "id": p.id,
        "user_id": p.user_id,
        "course_id": p.course_id,
        "module_id": p.module_id,
        "status": p.status,
        "contents": codec.dump_content_progress(p.contents),
        "completion_percentage": p.completion_percentage,
        "total_time_spent": p.total_time_spent,
        "estimated_duration": p.estimated_duration,
        "started_at": p.started_at,
        "last_accessed_at": p.last_accessed_at,
        "completed_at": p.completed_at,
        "achievements": codec.dump_achievements(p.achievements),
    }


def _row_to_module_progress(row: ModuleProgressRow) -> ModuleProgress:
    return ModuleProgress(
        id=row.id,
        user_id=row.user_id,
        course_id=row.course_id,
        module_id=row.module_id,
        started_at=row.started_at,
        last_accessed_at=row.last_accessed_at,
        status=row.status,
        contents=codec.load_content_progress(row.contents),
        completion_percentage=row.completion_percentage,
        total_time_spent=row.total_time_spent,
        estimated_duration=row.estimated_duration,
        completed_at=row.completed_at,
        achievements=codec.load_achievements(row.achievements),
    )
