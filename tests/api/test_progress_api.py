from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token, seed_course


def _enroll(client: TestClient, course_id, token: str) -> None:
    resp = client.post(f"/v1/courses/{course_id}/enroll", headers=auth(token))
    assert resp.status_code == 201


def _complete(client: TestClient, course, module, token: str, minutes: int = 20):
    return client.put(
        "/v1/progress/module",
        json={"course_id": str(course.id), "module_id": str(module.id), "time_spent": minutes},
        headers=auth(token),
    )


def test_enroll_then_complete_module(client: TestClient, repos) -> None:
    course, modules = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)

    resp = _complete(client, course, modules[0], token)

    assert resp.status_code == 200
    body = resp.json()
    assert body["completion_percentage"] == 33
    assert body["current_module"] == 1
    assert body["modules_completed"][0]["module_id"] == str(modules[0].id)
    assert body["is_completed"] is False


def test_finishing_every_module_completes_course(client: TestClient, repos) -> None:
    course, modules = seed_course(repos, modules=2)
    token = mint_token()
    _enroll(client, course.id, token)

    for module in modules:
        resp = _complete(client, course, module, token)

    body = resp.json()
    assert body["completion_percentage"] == 100
    assert body["is_completed"] is True
    assert body["completion_date"] is not None
    assert [a["type"] for a in body["achievements"]] == ["course_completed"]


def test_complete_module_without_enrollment(client: TestClient, repos) -> None:
    course, modules = seed_course(repos)
    resp = _complete(client, course, modules[0], mint_token())
    assert resp.status_code == 404


def test_complete_module_rejects_negative_time(client: TestClient, repos) -> None:
    course, modules = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)
    resp = _complete(client, course, modules[0], token, minutes=-5)
    assert resp.status_code == 400
    assert "time_spent" in resp.json()["detail"]


def test_complete_unknown_module(client: TestClient, repos) -> None:
    course, _ = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)
    resp = client.put(
        "/v1/progress/module",
        json={"course_id": str(course.id), "module_id": str(uuid4())},
        headers=auth(token),
    )
    assert resp.status_code == 404


def test_progress_requires_token(client: TestClient) -> None:
    resp = client.get("/v1/progress")
    assert resp.status_code == 401


def test_get_course_progress(client: TestClient, repos) -> None:
    course, _ = seed_course(repos)
    token = mint_token()
    assert client.get(f"/v1/progress/course/{course.id}", headers=auth(token)).status_code == 404

    _enroll(client, course.id, token)
    resp = client.get(f"/v1/progress/course/{course.id}", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json()["completion_percentage"] == 0


def test_list_progress_is_scoped_to_caller(client: TestClient, repos) -> None:
    course, _ = seed_course(repos)
    mine, theirs = mint_token(), mint_token()
    _enroll(client, course.id, mine)
    _enroll(client, course.id, theirs)

    resp = client.get("/v1/progress", headers=auth(mine))
    assert resp.status_code == 200
    assert len(resp.json()) == 1


def test_quiz_gated_course_waits_for_quiz(client: TestClient, repos, quiz_gated) -> None:
    course, modules = seed_course(repos, modules=2)
    token = mint_token()
    _enroll(client, course.id, token)
    for module in modules:
        resp = _complete(client, course, module, token)
    assert resp.json()["completion_percentage"] == 99
    assert resp.json()["is_completed"] is False

    url = f"/v1/progress/course/{course.id}/quiz"
    failed = client.post(url, json={"score": 40}, headers=auth(token)).json()
    assert failed["completion_percentage"] == 99
    assert failed["grade"] == 40

    passed = client.post(url, json={"score": 85}, headers=auth(token)).json()
    assert passed["completion_percentage"] == 100
    assert passed["quiz_passed"] is True
    assert passed["grade"] == 85


def test_quiz_before_modules_done(client: TestClient, repos) -> None:
    course, _ = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)
    resp = client.post(
        f"/v1/progress/course/{course.id}/quiz", json={"score": 90}, headers=auth(token)
    )
    assert resp.status_code == 400


def test_streaks_after_activity(client: TestClient, repos) -> None:
    course, modules = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)
    _complete(client, course, modules[0], token)

    body = client.get("/v1/progress/streaks", headers=auth(token)).json()
    assert body["current_streak"] == 1
    assert body["longest_streak"] == 1
    assert body["weekly_active_days"] == 1
    assert body["learning_goals"]["daily_goal"] == 30


def test_analytics_counts(client: TestClient, repos) -> None:
    course, modules = seed_course(repos)
    token = mint_token()
    _enroll(client, course.id, token)
    _complete(client, course, modules[0], token, minutes=90)

    body = client.get("/v1/progress/analytics", headers=auth(token)).json()
    assert body["total_courses"] == 1
    assert body["in_progress_courses"] == 1
    assert body["completed_courses"] == 0
    assert body["total_time_hours"] == 2
    assert body["best_subject"] == "Not available"
    assert body["recent_progress"][0]["course_title"] == "Python Basics"


def test_update_goals(client: TestClient) -> None:
    token = mint_token()
    resp = client.put("/v1/progress/goals", json={"daily_goal": 45}, headers=auth(token))
    assert resp.status_code == 200
    assert resp.json() == {"daily_goal": 45, "weekly_goal": 300, "monthly_goal": 1200}

    bad = client.put("/v1/progress/goals", json={"weekly_goal": -1}, headers=auth(token))
    assert bad.status_code == 400


def test_policy_is_public(client: TestClient) -> None:
    resp = client.get("/v1/progress/policy")
    assert resp.status_code == 200
    assert resp.json()["quiz_gated_cap"] == 99


def test_policy_reflects_override(client: TestClient, quiz_gated) -> None:
    assert client.get("/v1/progress/policy").json()["completion_policy"] == "quiz_gated"
