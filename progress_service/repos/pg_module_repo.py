"""PostgreSQL implementation of ModuleRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.db import codec
from progress_service.db.tables import ModuleRow
from progress_service.models.course import CourseModule, Prerequisites


class PgModuleRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, module_id: UUID) -> CourseModule | None:
        row = await self._session.get(ModuleRow, module_id)
        return _row_to_module(row) if row is not None else None

    async def list_by_course(self, course_id: UUID) -> list[CourseModule]:
        stmt = (
            select(ModuleRow)
            .where(ModuleRow.course_id == course_id)
            .order_by(ModuleRow.module_number)
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_module(r) for r in rows]

    async def add(self, module: CourseModule) -> None:
        await self._write(module, _module_to_row(module, ModuleRow()))

    async def update(self, module: CourseModule) -> CourseModule:
        row = await self._session.get(ModuleRow, module.id)
        if row is None:
            raise NotFoundError(f"Module {module.id} not found")
        await self._write(module, row)
        return module

    async def delete(self, module_id: UUID) -> bool:
        result = await self._session.execute(
            delete(ModuleRow).where(ModuleRow.id == module_id)
        )
        return result.rowcount > 0

    async def delete_by_course(self, course_id: UUID) -> int:
        result = await self._session.execute(
            delete(ModuleRow).where(ModuleRow.course_id == course_id)
        )
        return result.rowcount

    async def _write(self, module: CourseModule, row: ModuleRow) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(_module_to_row(module, row))
        except IntegrityError:
            raise ConflictError(
                f"Module number {module.module_number} already exists in this course"
            ) from None


def _module_to_row(module: CourseModule, row: ModuleRow) -> ModuleRow:
    row.id = module.id
    row.course_id = module.course_id
    row.module_number = module.module_number
    row.title = module.title
    row.description = module.description
    row.contents = codec.dump_contents(module.contents)
    row.prerequisite_modules = list(module.prerequisites.modules)
    row.prerequisite_skills = list(module.prerequisites.skills)
    row.prerequisite_courses = list(module.prerequisites.courses)
    row.settings = codec.dump_settings(module.settings)
    row.created_by = module.created_by
    return row


def _row_to_module(row: ModuleRow) -> CourseModule:
    return CourseModule(
        id=row.id,
        course_id=row.course_id,
        module_number=row.module_number,
        title=row.title,
        description=row.description or "",
        contents=codec.load_contents(row.contents),
        prerequisites=Prerequisites(
            modules=tuple(row.prerequisite_modules or ()),
            skills=tuple(row.prerequisite_skills or ()),
            courses=tuple(row.prerequisite_courses or ()),
        ),
        settings=codec.load_settings(row.settings),
        created_by=row.created_by,
    )
