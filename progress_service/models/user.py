from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class LearningGoals:
    """Target minutes of study per period."""

    daily_goal: int = 30
    weekly_goal: int = 300
    monthly_goal: int = 1200


@dataclass(frozen=True, slots=True)
class User:
    """Learner profile.

    Identity (id, role, premium flag) is owned by the token issuer; this
    record holds what the progress service derives about the learner.
    """

    id: UUID
    created_at: datetime
    email: str = ""
    name: str = ""
    role: str = "student"  # student|instructor|admin
    is_premium: bool = False
    is_active: bool = True
    learning_goals: LearningGoals = field(default_factory=LearningGoals)
    current_streak: int = 0
    longest_streak: int = 0
    last_learning_date: datetime | None = None
    total_learning_hours: float = 0.0

    @staticmethod
    def new(
        *,
        id: UUID,
        now: datetime,
        role: str = "student",
        is_premium: bool = False,
        email: str = "",
        name: str = "",
    ) -> User:
        return User(
            id=id,
            created_at=now,
            email=email,
            name=name,
            role=role,
            is_premium=is_premium,
        )
