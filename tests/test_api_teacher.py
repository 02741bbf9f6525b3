import pytest

from conftest import make_questions


def quiz_payload(**overrides):
    payload = {
        "title": "Geometry",
        "targetGrade": "7",
        "timeLimit": 15,
        "questions": make_questions()
    }
    payload.update(overrides)
    return payload


@pytest.mark.parametrize("overrides, message", [
    ({"title": "   "}, "Quiz title is required"),
    ({"targetGrade": None}, "Target grade is required"),
    ({"targetGrade": "13"}, "Invalid targetGrade: must be one of 6, 7, 8, 9, 10, 11, 12"),
    ({"timeLimit": None}, "Time limit must be at least 1 minute"),
    ({"timeLimit": 0}, "Value for timeLimit is out of range (allowed range: 1 - 120)"),
    ({"timeLimit": 121}, "Value for timeLimit is out of range (allowed range: 1 - 120)"),
    ({"questions": []}, "A quiz needs at least one question"),
    (
        {"questions": [{"text": "", "answers": [{"text": "A"}, {"text": "B"}], "correctAnswerId": "x"}]},
        "Question 1 text is required"
    ),
    (
        {"questions": [{"text": "Pick", "answers": [{"id": "a", "text": "A"}], "correctAnswerId": "a"}]},
        "Question 1 needs at least 2 answers"
    ),
    (
        {"questions": [{"text": "Pick", "answers": [{"id": "a", "text": "A"}, {"id": "b", "text": " "}],
                        "correctAnswerId": "a"}]},
        "Answer 2 for question 1 is required"
    ),
    (
        {"questions": [{"text": "Pick", "answers": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}]}]},
        "Question 1 needs a correct answer selected"
    ),
    (
        {"questions": [{"text": "Pick", "answers": [{"id": "a", "text": "A"}, {"id": "b", "text": "B"}],
                        "correctAnswerId": "z"}]},
        "Question 1's correct answer must be one of its answers"
    ),
])
def test_quiz_definition_is_validated(client, create_teacher, overrides, message):
    headers, _ = create_teacher()

    response = client.post("/api/quizzes", json=quiz_payload(**overrides), headers=headers)

    assert response.status_code == 422
    assert response.json()["message"] == message


def test_create_quiz_generates_missing_ids(client, create_teacher):
    headers, teacher = create_teacher()
    questions = [{
        "text": " What is 2 + 2? ",
        "answers": [{"id": "three", "text": "3"}, {"id": "four", "text": "4"}],
        "correctAnswerId": "four"
    }]

    response = client.post("/api/quizzes", json=quiz_payload(questions=questions), headers=headers)

    assert response.status_code == 201
    quiz = response.json()
    assert quiz["teacherId"] == teacher["id"]
    assert quiz["targetGrade"] == "7"
    [question] = quiz["questions"]
    assert question["id"]
    assert question["text"] == "What is 2 + 2?"
    assert question["correctAnswerId"] == "four"


def test_student_cannot_create_quiz(client, create_student):
    headers, _ = create_student()

    response = client.post("/api/quizzes", json=quiz_payload(), headers=headers)

    assert response.status_code == 403


def test_teacher_sees_own_quiz_with_answers(client, create_teacher, create_quiz):
    headers, _ = create_teacher()
    other_headers, _ = create_teacher(email="other@quiz.com")
    quiz = create_quiz(headers)

    own = client.get(f"/api/quizzes/{quiz['id']}", headers=headers)
    assert own.status_code == 200
    assert own.json()["questions"][0]["correctAnswerId"] == "a"

    assert client.get(f"/api/quizzes/{quiz['id']}", headers=other_headers).status_code == 403


def test_teacher_dashboard_averages(client, create_teacher, create_student, create_quiz):
    headers, teacher = create_teacher()
    other_headers, _ = create_teacher(email="other@quiz.com")
    quiz = create_quiz(headers, title="Fractions")
    create_quiz(other_headers, title="Not mine")

    dashboard = client.get("/api/teachers/dashboard", headers=headers).json()
    assert dashboard["teacher"]["id"] == teacher["id"]
    [row] = dashboard["quizzes"]
    assert row["title"] == "Fractions"
    assert row["attemptCount"] == 0
    assert row["averageScore"] == "N/A"

    for name, answers in [("Ann Able", {"q1": "a"}), ("Bo Best", {"q1": "a", "q2": "b", "q3": "c"})]:
        student_headers, _ = create_student(name=name)
        response = client.post(
            f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=student_headers
        )
        assert response.status_code == 201

    [row] = client.get("/api/teachers/dashboard", headers=headers).json()["quizzes"]
    assert row["attemptCount"] == 2
    assert row["averageScore"] == "2.0"


def test_quiz_results(client, admin_headers, create_teacher, create_student, create_quiz):
    headers, _ = create_teacher()
    other_headers, _ = create_teacher(email="other@quiz.com")
    quiz = create_quiz(headers)

    for name, answers in [("Ann Able", {"q1": "a"}), ("Bo Best", {"q1": "a", "q2": "b", "q3": "c"})]:
        student_headers, _ = create_student(name=name)
        client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": answers}, headers=student_headers)

    response = client.get(f"/api/quizzes/{quiz['id']}/results", headers=headers)
    assert response.status_code == 200
    results = response.json()
    assert results["quiz"]["questionCount"] == 3
    assert results["statistics"] == {"count": 2, "average": 2.0, "max": 3, "min": 1}
    assert sorted(a["percentage"] for a in results["attempts"]) == [33, 100]
    assert {a["studentName"] for a in results["attempts"]} == {"Ann Able", "Bo Best"}

    assert client.get(f"/api/quizzes/{quiz['id']}/results", headers=other_headers).status_code == 403
    assert client.get(f"/api/quizzes/{quiz['id']}/results", headers=admin_headers).status_code == 200
    assert client.get("/api/quizzes/missing/results", headers=headers).status_code == 404


def test_results_without_attempts(client, create_teacher, create_quiz):
    headers, _ = create_teacher()
    quiz = create_quiz(headers)

    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=headers).json()

    assert results["statistics"] == {"count": 0, "average": None, "max": None, "min": None}
    assert results["attempts"] == []


def test_time_limit_defaults_when_omitted(client, create_teacher):
    headers, _ = create_teacher()
    payload = quiz_payload()
    del payload["timeLimit"]

    response = client.post("/api/quizzes", json=payload, headers=headers)

    assert response.status_code == 201
    assert response.json()["timeLimit"] == 15
