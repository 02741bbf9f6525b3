import time

import pytest

from quiz_portal.config import get_settings


def start(client, headers, quiz_id):
    return client.post("/api/attempt-sessions", json={"quizId": quiz_id}, headers=headers)


def wait_for_outcome(client, headers, session_id, timeout=10.0):
    """Poll until the expired session has an attempt or a message"""
    # A 60 second quiz at 0.01s a tick
    time.sleep(1.0)
    deadline = time.monotonic() + timeout
    while True:
        session = client.get(f"/api/attempt-sessions/{session_id}", headers=headers).json()
        if session["attempt"] or session["message"] or time.monotonic() > deadline:
            return session
        time.sleep(0.25)


@pytest.fixture
def fast_clock(monkeypatch):
    monkeypatch.setattr(get_settings(), "COUNTDOWN_TICK_SECONDS", 0.01)


def test_timed_attempt_submitted_by_student(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, time_limit=10)
    headers, student = create_student()

    response = start(client, headers, quiz["id"])
    assert response.status_code == 201
    session = response.json()
    assert session["quizId"] == quiz["id"]
    assert session["status"] == "running"
    assert 590 <= session["remainingSeconds"] <= 600
    assert session["attempt"] is None

    # Starting again resumes the same session
    assert start(client, headers, quiz["id"]).json()["id"] == session["id"]

    for question_id, answer_id in [("q1", "a"), ("q2", "d"), ("q2", "b")]:
        response = client.put(
            f"/api/attempt-sessions/{session['id']}/answers",
            json={"questionId": question_id, "answerId": answer_id},
            headers=headers
        )
        assert response.status_code == 200
    assert response.json()["answers"] == {"q1": "a", "q2": "b"}

    response = client.post(f"/api/attempt-sessions/{session['id']}/submit", headers=headers)
    assert response.status_code == 201
    attempt = response.json()
    assert attempt["score"] == 2
    assert attempt["studentId"] == student["id"]

    finished = client.get(f"/api/attempt-sessions/{session['id']}", headers=headers).json()
    assert finished["status"] == "submitted"
    assert finished["attempt"]["id"] == attempt["id"]

    again = client.post(f"/api/attempt-sessions/{session['id']}/submit", headers=headers)
    assert again.status_code == 409

    dashboard = client.get("/api/students/dashboard", headers=headers).json()
    assert [a["quizId"] for a in dashboard["attemptedQuizzes"]] == [quiz["id"]]


def test_answers_are_submitted_when_time_runs_out(
    client, fast_clock, create_teacher, create_student, create_quiz
):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, time_limit=1)
    headers, _ = create_student()

    session = start(client, headers, quiz["id"]).json()
    client.put(
        f"/api/attempt-sessions/{session['id']}/answers",
        json={"questionId": "q1", "answerId": "a"},
        headers=headers
    )

    finished = wait_for_outcome(client, headers, session["id"])

    assert finished["status"] == "expired"
    assert finished["remaining"] == "00:00"
    assert finished["attempt"]["score"] == 1
    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=teacher_headers).json()
    assert results["statistics"]["count"] == 1

    late = client.put(
        f"/api/attempt-sessions/{session['id']}/answers",
        json={"questionId": "q2", "answerId": "b"},
        headers=headers
    )
    assert late.status_code == 409


def test_unanswered_session_expires_without_attempt(
    client, fast_clock, create_teacher, create_student, create_quiz
):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, time_limit=1)
    headers, _ = create_student()

    session = start(client, headers, quiz["id"]).json()
    finished = wait_for_outcome(client, headers, session["id"])

    assert finished["status"] == "expired"
    assert finished["attempt"] is None
    assert finished["message"] == "Please answer at least one question before submitting"
    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=teacher_headers).json()
    assert results["attempts"] == []


def test_abandoned_session(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student()
    session = start(client, headers, quiz["id"]).json()

    response = client.delete(f"/api/attempt-sessions/{session['id']}", headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    submit = client.post(f"/api/attempt-sessions/{session['id']}/submit", headers=headers)
    assert submit.status_code == 409


def test_session_needs_eligible_student(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    other_grade = create_quiz(teacher_headers, grade="12")
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student(grade="9")
    incomplete_headers, _ = create_student(name="Ivy Incomplete", complete=False)

    assert start(client, headers, other_grade["id"]).status_code == 403
    assert start(client, headers, "missing").status_code == 404
    assert start(client, teacher_headers, quiz["id"]).status_code == 403

    response = start(client, incomplete_headers, quiz["id"])
    assert response.status_code == 422
    assert response.json()["message"] == "Please complete your profile first"


def test_sessions_are_private(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student(name="Ann Able")
    other_headers, _ = create_student(name="Bo Best")
    session = start(client, headers, quiz["id"]).json()

    assert client.get(f"/api/attempt-sessions/{session['id']}", headers=other_headers).status_code == 403
    assert client.get("/api/attempt-sessions/missing", headers=headers).status_code == 404

    response = client.put(
        f"/api/attempt-sessions/{session['id']}/answers",
        json={"questionId": "q42", "answerId": "a"},
        headers=headers
    )
    assert response.status_code == 422
