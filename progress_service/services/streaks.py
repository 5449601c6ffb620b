"""Learning streaks.

A streak is the number of consecutive calendar days, ending today, on which
at least one of the learner's progress records was last accessed.  Days are
UTC calendar days: "today" and every `last_access_date` are converted to
UTC before taking the date, so the result does not depend on the server's
local timezone or DST transitions.

The backward walk stops after STREAK_LOOKBACK_DAYS, so a streak longer than
a year is reported as exactly 365.

compute_streak() is pure.  apply_streak() is the separate step that folds
the result into the User (current_streak, longest_streak); the caller
persists the returned User.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import UTC, date, datetime, timedelta

from progress_service.models.progress import CourseProgress
from progress_service.models.user import User

STREAK_LOOKBACK_DAYS = 365
WEEK_DAYS = 7


@dataclass(frozen=True, slots=True)
class StreakResult:
    current_streak: int
    last_active_date: datetime | None


def utc_day(moment: datetime | date) -> date:
    if isinstance(moment, datetime):
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
        return moment.astimezone(UTC).date()
    return moment


def activity_days(records: Iterable[CourseProgress]) -> set[date]:
    return {utc_day(r.last_access_date) for r in records}


def compute_streak(
    records: Iterable[CourseProgress], today: datetime | date
) -> StreakResult:
    records = list(records)
    days = activity_days(records)
    last_active = max((r.last_access_date for r in records), default=None)

    streak = 0
    day = utc_day(today)
    for _ in range(STREAK_LOOKBACK_DAYS):
        if day not in days:
            break
        streak += 1
        day -= timedelta(days=1)

    return StreakResult(current_streak=streak, last_active_date=last_active)


def weekly_active_days(
    records: Iterable[CourseProgress], today: datetime | date
) -> int:
    end = utc_day(today)
    start = end - timedelta(days=WEEK_DAYS - 1)
    return sum(1 for d in activity_days(records) if start <= d <= end)


def apply_streak(user: User, result: StreakResult) -> User:
    return replace(
        user,
        current_streak=result.current_streak,
        longest_streak=max(user.longest_streak, result.current_streak),
    )


def record_learning_activity(user: User, minutes: int, now: datetime) -> User:
    return replace(
        user,
        last_learning_date=now,
        total_learning_hours=round(user.total_learning_hours + minutes / 60, 2),
    )
