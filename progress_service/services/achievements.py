"""Achievement rule engine.

A rule is a `type` string, a human description, and a predicate over a
progress record.  `evaluate_achievements` appends an Achievement for every
rule whose predicate holds and whose type the record does not already
carry, so it is safe to run after every mutation.

The engine works on any frozen record with an `achievements` tuple:
COURSE_RULES target CourseProgress, MODULE_RULES target ModuleProgress.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, TypeVar

from progress_service.models.progress import (
    Achievement,
    CourseProgress,
    ModuleProgress,
)

STUDY_WARRIOR_MINUTES = 600
QUICK_LEARNER_RATIO = 0.75

R = TypeVar("R", CourseProgress, ModuleProgress)


@dataclass(frozen=True, slots=True)
class AchievementRule:
    type: str
    description: str
    predicate: Callable[[Any], bool]


COURSE_RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        type="course_completed",
        description="Completed the course",
        predicate=lambda p: p.is_completed,
    ),
    AchievementRule(
        type="study_warrior",
        description="Spent 10+ hours learning",
        predicate=lambda p: p.total_time_spent >= STUDY_WARRIOR_MINUTES,
    ),
)


def _finished_quickly(p: ModuleProgress) -> bool:
    return (
        p.status == "completed"
        and p.estimated_duration > 0
        and p.total_time_spent <= p.estimated_duration * QUICK_LEARNER_RATIO
    )


MODULE_RULES: tuple[AchievementRule, ...] = (
    AchievementRule(
        type="first-content",
        description="Completed your first content item",
        predicate=lambda p: any(c.status == "completed" for c in p.contents),
    ),
    AchievementRule(
        type="module-completion",
        description="Completed the module",
        predicate=lambda p: p.status == "completed",
    ),
    AchievementRule(
        type="perfect-score",
        description="Scored 100% on an assessment",
        predicate=lambda p: any(c.best_score == 100 for c in p.contents),
    ),
    AchievementRule(
        type="quick-learner",
        description="Completed the module faster than expected",
        predicate=_finished_quickly,
    ),
)


def evaluate_achievements(
    record: R,
    rules: Sequence[AchievementRule] = COURSE_RULES,
    *,
    now: datetime,
) -> R:
    earned = {a.type for a in record.achievements}
    unlocked: list[Achievement] = []

    for rule in rules:
        if rule.type in earned or not rule.predicate(record):
            continue
        earned.add(rule.type)
        unlocked.append(
            Achievement(type=rule.type, description=rule.description, unlocked_at=now)
        )

    if not unlocked:
        return record
    return replace(record, achievements=record.achievements + tuple(unlocked))


def newly_unlocked(before: R, after: R) -> list[Achievement]:
    known = {a.type for a in before.achievements}
    return [a for a in after.achievements if a.type not in known]
