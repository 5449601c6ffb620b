"""PostgreSQL implementation of UserRepo."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from progress_service.core.errors import ConflictError, NotFoundError
from progress_service.db.tables import UserRow
from progress_service.models.user import LearningGoals, User


class PgUserRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, user_id: UUID) -> User | None:
        row = await self._session.get(UserRow, user_id)
        return _row_to_user(row) if row is not None else None

    async def list_all(self) -> list[User]:
        stmt = select(UserRow).order_by(UserRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_user(r) for r in rows]

    async def add(self, user: User) -> None:
        try:
            async with self._session.begin_nested():
                self._session.add(_user_to_row(user, UserRow()))
        except IntegrityError:
            raise ConflictError(f"User {user.id} already exists") from None

    async def update(self, user: User) -> User:
        row = await self._session.get(UserRow, user.id)
        if row is None:
            raise NotFoundError(f"User {user.id} not found")
        _user_to_row(user, row)
        await self._session.flush()
        return user


def _user_to_row(user: User, row: UserRow) -> UserRow:
    row.id = user.id
    row.email = user.email
    row.name = user.name
    row.role = user.role
    row.is_premium = user.is_premium
    row.is_active = user.is_active
    row.daily_goal = user.learning_goals.daily_goal
    row.weekly_goal = user.learning_goals.weekly_goal
    row.monthly_goal = user.learning_goals.monthly_goal
    row.current_streak = user.current_streak
    row.longest_streak = user.longest_streak
    row.last_learning_date = user.last_learning_date
    row.total_learning_hours = user.total_learning_hours
    row.created_at = user.created_at
    return row


def _row_to_user(row: UserRow) -> User:
    return User(
        id=row.id,
        created_at=row.created_at,
        email=row.email or "",
        name=row.name or "",
        role=row.role,
        is_premium=row.is_premium,
        is_active=row.is_active,
        learning_goals=LearningGoals(
            daily_goal=row.daily_goal,
            weekly_goal=row.weekly_goal,
            monthly_goal=row.monthly_goal,
        ),
        current_streak=row.current_streak,
        longest_streak=row.longest_streak,
        last_learning_date=row.last_learning_date,
        total_learning_hours=row.total_learning_hours,
    )
