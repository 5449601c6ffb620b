"""Table-driven access gate tests.

Each row: module shape, viewer (role, premium), expected decision.  The
gate checks role, then premium, then the availability window, then
prerequisites, and reports the first failure only.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from progress_service.models.course import (
    AccessControl,
    ContentItem,
    CourseModule,
    ModuleSettings,
    Prerequisites,
)
from progress_service.models.principal import Principal
from progress_service.models.progress import CourseProgress, ModuleCompletion
from progress_service.services.access_gate import (
    REASON_EXPIRED,
    REASON_NOT_YET_AVAILABLE,
    REASON_PREMIUM,
    REASON_PREREQUISITES,
    REASON_ROLE,
    can_access,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
PREREQ = uuid4()


def _module(
    *,
    premium: bool = False,
    role: str | None = None,
    available_from: datetime | None = None,
    available_until: datetime | None = None,
    prerequisites: tuple = (),
) -> CourseModule:
    return CourseModule.new(
        course_id=uuid4(),
        module_number=2,
        title="Advanced topics",
        contents=(
            ContentItem(
                content_id="lesson",
                type="video",
                title="Lesson",
                access=AccessControl(requires_premium=premium, required_role=role),
            ),
        ),
        prerequisites=Prerequisites(modules=prerequisites),
        settings=ModuleSettings(
            available_from=available_from, available_until=available_until
        ),
    )


def _viewer(role: str = "student", premium: bool = False) -> Principal:
    return Principal(user_id=uuid4(), role=role, is_premium=premium)


_CASES = [
    # (module kwargs, viewer kwargs, allowed, reason)
    ({}, {}, True, None),
    ({"role": "instructor"}, {}, False, REASON_ROLE),
    ({"role": "instructor"}, {"role": "instructor"}, True, None),
    ({"role": "instructor"}, {"role": "admin"}, True, None),
    ({"role": "admin"}, {"role": "instructor"}, False, REASON_ROLE),
    ({"premium": True}, {}, False, REASON_PREMIUM),
    ({"premium": True}, {"premium": True}, True, None),
    ({"premium": True}, {"role": "admin"}, True, None),
    ({"available_from": NOW + timedelta(days=1)}, {}, False, REASON_NOT_YET_AVAILABLE),
    ({"available_until": NOW - timedelta(days=1)}, {}, False, REASON_EXPIRED),
    (
        {"available_from": NOW - timedelta(days=1), "available_until": NOW + timedelta(days=1)},
        {},
        True,
        None,
    ),
    # first failure wins
    ({"role": "admin", "premium": True}, {}, False, REASON_ROLE),
    (
        {"premium": True, "available_until": NOW - timedelta(days=1)},
        {},
        False,
        REASON_PREMIUM,
    ),
]


def _case_id(case: tuple) -> str:
    module_kwargs, viewer_kwargs, allowed, _ = case
    module_label = ",".join(sorted(module_kwargs)) or "open"
    viewer_label = ",".join(f"{k}={v}" for k, v in viewer_kwargs.items()) or "student"
    return f"{module_label} [{viewer_label}] -> {'allow' if allowed else 'deny'}"


@pytest.mark.parametrize(
    "module_kwargs,viewer_kwargs,allowed,reason",
    _CASES,
    ids=[_case_id(c) for c in _CASES],
)
def test_access_matrix(module_kwargs, viewer_kwargs, allowed, reason) -> None:
    decision = can_access(_module(**module_kwargs), _viewer(**viewer_kwargs), now=NOW)
    assert decision.allowed is allowed
    assert decision.reason == reason


@pytest.mark.parametrize("role", ["student", "instructor", "admin"])
def test_required_role_is_a_minimum_rank(role: str) -> None:
    # student-only content stays open to higher roles; no exact-match check
    decision = can_access(_module(role="student"), _viewer(role=role), now=NOW)
    assert decision.allowed


def _progress_with(*module_ids) -> CourseProgress:
    record = CourseProgress.new(user_id=uuid4(), course_id=uuid4(), now=NOW)
    return replace(
        record,
        modules_completed=tuple(
            ModuleCompletion(module_index=i, module_id=m, completed_at=NOW)
            for i, m in enumerate(module_ids)
        ),
    )


def test_prerequisites_block_until_completed() -> None:
    module = _module(prerequisites=(PREREQ,))

    blocked = can_access(module, _viewer(), _progress_with(), now=NOW)
    assert (blocked.allowed, blocked.reason) == (False, REASON_PREREQUISITES)

    opened = can_access(module, _viewer(), _progress_with(PREREQ), now=NOW)
    assert opened.allowed


def test_prerequisites_ignored_without_progress() -> None:
    module = _module(prerequisites=(PREREQ,))
    assert can_access(module, _viewer(), None, now=NOW).allowed


def test_window_checked_before_prerequisites() -> None:
    module = _module(prerequisites=(PREREQ,), available_from=NOW + timedelta(hours=1))
    decision = can_access(module, _viewer(), _progress_with(), now=NOW)
    assert decision.reason == REASON_NOT_YET_AVAILABLE


def test_stored_user_can_be_the_viewer() -> None:
    from progress_service.models.user import User

    user = User.new(id=uuid4(), now=NOW, is_premium=True)
    assert can_access(_module(premium=True), user, now=NOW).allowed
