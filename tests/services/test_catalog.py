from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

import pytest

from progress_service.core.errors import AuthorizationError, NotFoundError, ValidationError
from progress_service.models.course import (
    AccessControl,
    ContentItem,
    ModuleSettings,
    Prerequisites,
)
from progress_service.models.principal import Principal
from progress_service.services import catalog
from progress_service.services.cache import cache_service
from progress_service.services.enrollment import enroll
from tests.conftest import NOW, principal_for, run, seed_course, seed_user


def _instructor(repos) -> Principal:
    return principal_for(seed_user(repos, role="instructor"))


def _admin() -> Principal:
    return Principal(user_id=uuid4(), role="admin")


def test_load_course_derives_module_order(repos) -> None:
    course, modules = seed_course(repos, modules=3)
    loaded = run(catalog.load_course(repos, course.id))
    assert loaded.module_ids == tuple(m.id for m in modules)
    assert loaded.total_modules == 3


def test_load_missing_course(repos) -> None:
    with pytest.raises(NotFoundError):
        run(catalog.load_course(repos, uuid4()))


def test_list_courses_hides_inactive(repos) -> None:
    active, _ = seed_course(repos, title="Active")
    hidden, _ = seed_course(repos, title="Hidden")
    run(catalog.update_course(repos, _admin(), hidden.id, {"is_active": False}))

    assert [c.id for c in run(catalog.list_courses(repos))] == [active.id]
    assert len(run(catalog.list_courses(repos, include_inactive=True))) == 2


def test_instructor_owns_created_course(repos) -> None:
    instructor = _instructor(repos)
    course = run(
        catalog.create_course(
            repos, instructor, title="  SQL  ", category="data-science", now=NOW
        )
    )
    assert course.instructor_id == instructor.user_id
    assert course.title == "SQL"


def test_instructor_cannot_assign_owner(repos) -> None:
    instructor = _instructor(repos)
    course = run(
        catalog.create_course(
            repos, instructor, title="SQL", instructor_id=uuid4(), now=NOW
        )
    )
    assert course.instructor_id == instructor.user_id


def test_admin_assigns_owner(repos) -> None:
    owner = seed_user(repos, role="instructor")
    course = run(
        catalog.create_course(repos, _admin(), title="SQL", instructor_id=owner.id, now=NOW)
    )
    assert course.instructor_id == owner.id


def test_admin_cannot_assign_student_as_owner(repos) -> None:
    student = seed_user(repos)
    with pytest.raises(ValidationError, match="instructor or admin"):
        run(
            catalog.create_course(
                repos, _admin(), title="SQL", instructor_id=student.id, now=NOW
            )
        )


def test_student_cannot_create_course(repos) -> None:
    with pytest.raises(AuthorizationError):
        run(catalog.create_course(repos, principal_for(seed_user(repos)), title="x", now=NOW))


@pytest.mark.parametrize(
    "fields",
    [
        {"title": "   "},
        {"title": "ok", "category": "cooking"},
        {"title": "ok", "difficulty": "expert"},
    ],
    ids=["blank-title", "bad-category", "bad-difficulty"],
)
def test_create_course_validation(repos, fields) -> None:
    with pytest.raises(ValidationError):
        run(catalog.create_course(repos, _admin(), now=NOW, **fields))


def test_other_instructor_cannot_update(repos) -> None:
    course, _ = seed_course(repos, instructor_id=uuid4())
    with pytest.raises(AuthorizationError):
        run(catalog.update_course(repos, _instructor(repos), course.id, {"title": "x"}))


def test_update_keeps_enrollment_count_and_modules(repos) -> None:
    instructor = _instructor(repos)
    course, modules = seed_course(repos, instructor_id=instructor.user_id)
    run(enroll(repos, uuid4(), course.id, now=NOW))

    updated = run(
        catalog.update_course(repos, instructor, course.id, {"title": "Renamed"})
    )

    assert updated.title == "Renamed"
    assert updated.enrollment_count == 1
    assert updated.module_ids == tuple(m.id for m in modules)


def test_only_admin_reassigns_course(repos) -> None:
    instructor = _instructor(repos)
    course, _ = seed_course(repos, instructor_id=instructor.user_id)
    with pytest.raises(AuthorizationError, match="reassign"):
        run(
            catalog.update_course(
                repos, instructor, course.id, {"instructor_id": uuid4()}
            )
        )


def test_update_rejects_unknown_fields(repos) -> None:
    course, _ = seed_course(repos)
    with pytest.raises(ValidationError, match="enrollment_count"):
        run(catalog.update_course(repos, _admin(), course.id, {"enrollment_count": 9}))


def test_delete_course_cascades(repos) -> None:
    course, modules = seed_course(repos)
    run(enroll(repos, uuid4(), course.id, now=NOW))
    run(cache_service.set("analytics:someone", "{}", 60))

    run(catalog.delete_course(repos, _admin(), course.id))

    assert run(repos.courses.get(course.id)) is None
    assert run(repos.modules.list_by_course(course.id)) == []
    assert run(repos.progress.count_by_course(course.id)) == 0
    assert run(cache_service.get("analytics:someone")) is None


def test_delete_course_is_admin_only(repos) -> None:
    instructor = _instructor(repos)
    course, _ = seed_course(repos, instructor_id=instructor.user_id)
    with pytest.raises(AuthorizationError):
        run(catalog.delete_course(repos, instructor, course.id))


# ---- modules ----


def _add(repos, principal, course, **kwargs):
    kwargs.setdefault("module_number", 10)
    kwargs.setdefault("title", "Extra")
    return run(catalog.add_module(repos, principal, course.id, now=NOW, **kwargs))


def test_add_module_sorts_contents(repos) -> None:
    instructor = _instructor(repos)
    course, _ = seed_course(repos, instructor_id=instructor.user_id)
    module = _add(
        repos,
        instructor,
        course,
        contents=(
            ContentItem(content_id="b", type="quiz", title="B", order=2, duration=5),
            ContentItem(content_id="a", type="video", title="A", order=1, duration=10),
        ),
    )
    assert [c.content_id for c in module.contents] == ["a", "b"]
    assert module.estimated_duration == 15
    assert module.created_by == instructor.user_id
    assert run(catalog.load_course(repos, course.id)).module_ids[-1] == module.id


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"module_number": 0}, "module_number"),
        (
            {
                "contents": (
                    ContentItem(content_id="x", type="video", title="X"),
                    ContentItem(content_id="x", type="text", title="Y"),
                )
            },
            "Duplicate",
        ),
        ({"contents": (ContentItem(content_id="x", type="podcast", title="X"),)}, "type"),
        (
            {"contents": (ContentItem(content_id="x", type="video", title="X", duration=-1),)},
            "duration",
        ),
        (
            {
                "contents": (
                    ContentItem(
                        content_id="x",
                        type="video",
                        title="X",
                        access=AccessControl(required_role="guest"),
                    ),
                )
            },
            "required_role",
        ),
        ({"settings": ModuleSettings(max_attempts=0)}, "max_attempts"),
        (
            {
                "settings": ModuleSettings(
                    available_from=NOW, available_until=NOW - timedelta(days=1)
                )
            },
            "available_until",
        ),
        ({"prerequisites": Prerequisites(modules=(uuid4(),))}, "not in this course"),
    ],
    ids=[
        "number",
        "duplicate-content",
        "content-type",
        "duration",
        "role",
        "attempts",
        "window",
        "foreign-prereq",
    ],
)
def test_add_module_validation(repos, kwargs, message) -> None:
    course, _ = seed_course(repos)
    with pytest.raises(ValidationError, match=message):
        _add(repos, _admin(), course, **kwargs)


def test_add_module_requires_ownership(repos) -> None:
    course, _ = seed_course(repos, instructor_id=uuid4())
    with pytest.raises(AuthorizationError):
        _add(repos, _instructor(repos), course)


def test_update_module_rejects_self_prerequisite(repos) -> None:
    course, modules = seed_course(repos)
    target = modules[1]
    with pytest.raises(ValidationError, match="own prerequisite"):
        run(
            catalog.update_module(
                repos,
                _admin(),
                target.id,
                {"prerequisites": Prerequisites(modules=(target.id,))},
            )
        )


def test_update_module_accepts_sibling_prerequisite(repos) -> None:
    course, modules = seed_course(repos)
    updated = run(
        catalog.update_module(
            repos,
            _admin(),
            modules[1].id,
            {"title": "Loops", "prerequisites": Prerequisites(modules=(modules[0].id,))},
        )
    )
    assert updated.title == "Loops"
    assert run(repos.modules.get(modules[1].id)).prerequisites.modules == (modules[0].id,)


def test_delete_module_shrinks_course(repos) -> None:
    course, modules = seed_course(repos)
    run(catalog.delete_module(repos, _admin(), modules[0].id))
    assert run(catalog.load_course(repos, course.id)).module_ids == (
        modules[1].id,
        modules[2].id,
    )
