from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

from progress_service.core.errors import NotFoundError, ValidationError
from progress_service.models.course import ContentItem, Course, CourseModule, ModuleSettings
from progress_service.models.progress import CourseProgress
from progress_service.services.completion import (
    QUIZ_GATED_CAP,
    CompletionPolicy,
    module_index_of,
    module_percentage,
    ratio_percentage,
    record_content_progress,
    record_module_completion,
    record_quiz_result,
    round_half_up,
    start_module,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
A = CompletionPolicy.SIMPLE_RATIO
B = CompletionPolicy.QUIZ_GATED


def _course(modules: int) -> Course:
    course = Course.new(title="Data Structures", now=NOW)
    return replace(course, module_ids=tuple(uuid4() for _ in range(modules)))


def _progress(course: Course) -> CourseProgress:
    return CourseProgress.new(user_id=uuid4(), course_id=course.id, now=NOW)


def _complete(progress, course, indexes, policy=A, minutes=10):
    for i, index in enumerate(indexes):
        progress = record_module_completion(
            progress,
            course,
            index,
            minutes,
            policy=policy,
            now=NOW + timedelta(minutes=i),
        )
    return progress


# ---- rounding ----


@pytest.mark.parametrize(
    "completed,total,expected",
    [
        (0, 3, 0),
        (1, 3, 33),
        (2, 3, 67),
        (3, 3, 100),
        (1, 8, 13),  # 12.5 rounds half-up, not to even
        (3, 8, 38),  # 37.5
        (0, 0, 0),
    ],
    ids=["none", "third", "two-thirds", "all", "eighth", "three-eighths", "empty"],
)
def test_ratio_percentage(completed: int, total: int, expected: int) -> None:
    assert ratio_percentage(completed, total) == expected


def test_round_half_up_differs_from_bankers_rounding() -> None:
    assert round_half_up(2.5) == 3
    assert round(2.5) == 2


# ---- simple_ratio (Policy A) ----


def test_first_module_of_three_is_33_percent() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0])

    assert progress.completion_percentage == 33
    assert progress.current_module == 1
    assert progress.total_time_spent == 10
    assert not progress.is_completed
    assert progress.modules_completed[0].module_id == course.module_ids[0]


def test_all_modules_complete_the_course_under_simple_ratio() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0, 1, 2])

    assert progress.completion_percentage == 100
    assert progress.is_completed
    assert progress.completion_date is not None
    assert progress.current_module == 3


def test_completion_date_is_stamped_once() -> None:
    course = _course(1)
    progress = _complete(_progress(course), course, [0])
    first_date = progress.completion_date

    later = record_module_completion(
        progress, course, 0, 5, policy=A, now=NOW + timedelta(days=3)
    )
    assert later.completion_date == first_date


def test_repeat_completion_on_completed_course_only_accrues_time() -> None:
    course = _course(2)
    progress = _complete(_progress(course), course, [0, 1])

    again = record_module_completion(
        progress, course, 1, 15, policy=A, now=NOW + timedelta(hours=1)
    )
    assert again.modules_completed == progress.modules_completed
    assert again.total_time_spent == progress.total_time_spent + 15
    assert again.last_access_date == NOW + timedelta(hours=1)
    assert again.completion_percentage == 100


def test_repeat_completion_adds_time_to_existing_entry() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0, 0])

    assert len(progress.modules_completed) == 1
    assert progress.modules_completed[0].time_spent == 20
    assert progress.completion_percentage == 33


def test_percentage_never_decreases_when_course_grows() -> None:
    course = _course(2)
    progress = _complete(_progress(course), course, [0])
    assert progress.completion_percentage == 50

    grown = replace(course, module_ids=course.module_ids + (uuid4(), uuid4()))
    after = record_module_completion(progress, grown, 0, 5, policy=A, now=NOW)
    assert after.completion_percentage == 50


def test_completions_follow_module_ids_when_course_is_reordered() -> None:
    course = _course(2)
    progress = _complete(_progress(course), course, [0])

    reordered = replace(course, module_ids=(uuid4(),) + course.module_ids)
    progress = _complete(progress, reordered, [2, 1])

    assert len(progress.modules_completed) == 2
    assert progress.modules_completed[0].time_spent == 20
    assert progress.completion_percentage == 67
    assert not progress.is_completed


def test_completions_for_removed_modules_are_not_counted() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0, 1])

    shrunk = replace(course, module_ids=course.module_ids[1:])
    with pytest.raises(ValidationError):
        record_quiz_result(progress, shrunk, 80, policy=B, now=NOW)

    progress = _complete(progress, shrunk, [1], policy=B)
    assert progress.completion_percentage == QUIZ_GATED_CAP


@pytest.mark.parametrize(
    "index,time_spent,error",
    [
        (0, -1, ValidationError),
        (3, 10, NotFoundError),
        (-1, 10, NotFoundError),
    ],
    ids=["negative-time", "index-past-end", "negative-index"],
)
def test_record_module_completion_rejects_bad_input(index, time_spent, error) -> None:
    course = _course(3)
    with pytest.raises(error):
        record_module_completion(
            _progress(course), course, index, time_spent, policy=A, now=NOW
        )


def test_module_index_of_unknown_module_raises() -> None:
    course = _course(2)
    assert module_index_of(course, course.module_ids[1]) == 1
    with pytest.raises(NotFoundError):
        module_index_of(course, uuid4())


# ---- quiz_gated (Policy B) ----


def test_quiz_gated_caps_at_99_until_quiz_passed() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0, 1, 2], policy=B)

    assert progress.completion_percentage == QUIZ_GATED_CAP
    assert not progress.is_completed
    assert progress.completion_date is None


def test_quiz_gated_passing_quiz_completes_course() -> None:
    course = _course(2)
    progress = _complete(_progress(course), course, [0, 1], policy=B)

    passed = record_quiz_result(progress, course, 85, passing_score=70, policy=B, now=NOW)
    assert passed.completion_percentage == 100
    assert passed.is_completed
    assert passed.quiz_passed
    assert passed.grade == 85
    assert passed.completion_date == NOW


def test_quiz_gated_failing_quiz_keeps_cap_and_records_grade() -> None:
    course = _course(2)
    progress = _complete(_progress(course), course, [0, 1], policy=B)

    failed = record_quiz_result(progress, course, 50, passing_score=70, policy=B, now=NOW)
    assert failed.completion_percentage == QUIZ_GATED_CAP
    assert not failed.is_completed
    assert not failed.quiz_passed
    assert failed.grade == 50


def test_quiz_grade_keeps_best_score() -> None:
    course = _course(1)
    progress = _complete(_progress(course), course, [0], policy=B)

    progress = record_quiz_result(progress, course, 90, policy=B, now=NOW)
    progress = record_quiz_result(progress, course, 60, policy=B, now=NOW)
    assert progress.grade == 90
    assert progress.quiz_passed


def test_quiz_under_simple_ratio_records_grade_on_completed_course() -> None:
    course = _course(1)
    progress = _complete(_progress(course), course, [0])

    graded = record_quiz_result(progress, course, 40, policy=A, now=NOW)
    assert graded.is_completed
    assert graded.grade == 40
    assert not graded.quiz_passed


def test_quiz_before_all_modules_done_is_rejected() -> None:
    course = _course(3)
    progress = _complete(_progress(course), course, [0], policy=B)

    with pytest.raises(ValidationError, match="Quiz is only available"):
        record_quiz_result(progress, course, 90, policy=B, now=NOW)


@pytest.mark.parametrize("score", [-1, 101], ids=["below-zero", "above-hundred"])
def test_quiz_score_out_of_range(score: int) -> None:
    course = _course(1)
    progress = _complete(_progress(course), course, [0], policy=B)
    with pytest.raises(ValidationError, match="score must be between 0 and 100"):
        record_quiz_result(progress, course, score, policy=B, now=NOW)


# ---- module (content-level) progress ----


def _module(**settings) -> CourseModule:
    return CourseModule.new(
        course_id=uuid4(),
        module_number=1,
        title="Intro",
        contents=(
            ContentItem(content_id="quiz", type="quiz", title="Check", duration=10, order=2),
            ContentItem(content_id="video", type="video", title="Watch", duration=20, order=1),
            ContentItem(
                content_id="extra",
                type="resource",
                title="Reading",
                duration=5,
                order=3,
                is_required=False,
            ),
        ),
        settings=ModuleSettings(**settings),
    )


def _started(module: CourseModule):
    return start_module(user_id=uuid4(), module=module, now=NOW)


def test_start_module_seeds_content_in_order() -> None:
    module = _module()
    mp = _started(module)

    assert [c.content_id for c in mp.contents] == ["video", "quiz", "extra"]
    assert all(c.status == "not-started" for c in mp.contents)
    assert mp.estimated_duration == 35
    assert mp.status == "not-started"


def test_completing_required_content_drives_module_percentage() -> None:
    module = _module()
    mp = record_content_progress(
        _started(module), module, "video", status="completed", time_spent=18, now=NOW
    )
    assert mp.completion_percentage == 50
    assert mp.status == "in-progress"

    mp = record_content_progress(
        mp, module, "quiz", status="completed", time_spent=5, score=90, now=NOW
    )
    assert mp.completion_percentage == 100
    assert mp.status == "completed"
    assert mp.completed_at == NOW
    assert mp.total_time_spent == 23


def test_optional_content_does_not_count_toward_percentage() -> None:
    module = _module()
    mp = record_content_progress(
        _started(module), module, "extra", status="completed", now=NOW
    )
    assert mp.completion_percentage == 0
    assert mp.status == "in-progress"


def test_module_without_required_content_counts_everything() -> None:
    mp = _started(_module())
    optional = tuple(replace(c, is_mandatory=False) for c in mp.contents)
    done = (replace(optional[0], status="completed"),) + optional[1:]
    assert module_percentage(done) == 33


def test_completed_content_is_terminal() -> None:
    module = _module()
    mp = record_content_progress(
        _started(module), module, "video", status="completed", now=NOW
    )
    mp = record_content_progress(mp, module, "video", status="in-progress", now=NOW)

    video = next(c for c in mp.contents if c.content_id == "video")
    assert video.status == "completed"
    assert mp.completion_percentage == 50


def test_required_content_cannot_be_skipped_by_default() -> None:
    module = _module()
    with pytest.raises(ValidationError, match="cannot be skipped"):
        record_content_progress(_started(module), module, "video", status="skipped", now=NOW)


def test_skip_allowed_when_module_permits() -> None:
    module = _module(allow_skip=True)
    mp = record_content_progress(_started(module), module, "video", status="skipped", now=NOW)
    assert mp.contents[0].status == "skipped"


def test_scored_attempts_are_capped() -> None:
    module = _module(max_attempts=2)
    mp = _started(module)
    mp = record_content_progress(mp, module, "quiz", status="failed", score=40, now=NOW)
    mp = record_content_progress(mp, module, "quiz", status="failed", score=55, now=NOW)

    quiz = next(c for c in mp.contents if c.content_id == "quiz")
    assert quiz.attempts == 2
    assert quiz.best_score == 55

    with pytest.raises(ValidationError, match="Maximum attempts"):
        record_content_progress(mp, module, "quiz", status="completed", score=90, now=NOW)


@pytest.mark.parametrize(
    "content_id,status,time_spent,score,error",
    [
        ("missing", "completed", 0, None, NotFoundError),
        ("video", "done", 0, None, ValidationError),
        ("video", "completed", -5, None, ValidationError),
        ("quiz", "completed", 0, 120, ValidationError),
    ],
    ids=["unknown-content", "bad-status", "negative-time", "score-too-high"],
)
def test_record_content_progress_rejects_bad_input(
    content_id, status, time_spent, score, error
) -> None:
    module = _module()
    with pytest.raises(error):
        record_content_progress(
            _started(module),
            module,
            content_id,
            status=status,
            time_spent=time_spent,
            score=score,
            now=NOW,
        )
