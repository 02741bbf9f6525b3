import pytest


@pytest.mark.parametrize("payload, message", [
    ({"name": "  ", "grade": "9"}, "Please enter your name"),
    ({"name": "Sam"}, "Please select your grade"),
    ({"name": "Sam", "grade": "5"}, "Invalid grade: must be one of 6, 7, 8, 9, 10, 11, 12"),
])
def test_profile_validation(client, create_student, payload, message):
    headers, _ = create_student(complete=False)

    response = client.put("/api/students/profile", json=payload, headers=headers)

    assert response.status_code == 422
    assert response.json()["message"] == message


def test_profile_completion(client, create_student):
    headers, user = create_student(name="Rita Reader", grade="11")

    assert user["profileComplete"] is True
    assert user["grade"] == "11"
    assert user["name"] == "Rita Reader"
    assert user["updatedAt"] is not None


def test_dashboard_requires_complete_profile(client, create_student):
    headers, _ = create_student(complete=False)

    response = client.get("/api/students/dashboard", headers=headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Please complete your profile first"
    assert response.json()["details"]["action"] == "complete_profile"


def test_teacher_cannot_use_student_routes(client, create_teacher):
    headers, _ = create_teacher()

    response = client.get("/api/students/dashboard", headers=headers)

    assert response.status_code == 403
    assert response.json()["details"]["required_role"] == "student"


def test_take_quiz_flow(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, title="Fractions", grade="9", time_limit=10)
    create_quiz(teacher_headers, title="Algebra", grade="8")
    headers, student = create_student(grade="9")

    dashboard = client.get("/api/students/dashboard", headers=headers).json()
    assert [q["title"] for q in dashboard["availableQuizzes"]] == ["Fractions"]
    assert dashboard["availableQuizzes"][0]["questionCount"] == 3
    assert dashboard["attemptedQuizzes"] == []

    view = client.get(f"/api/quizzes/{quiz['id']}", headers=headers).json()
    assert view["timeLimitSeconds"] == 600
    assert len(view["questions"]) == 3
    assert all("correctAnswerId" not in q for q in view["questions"])

    response = client.post(
        f"/api/quizzes/{quiz['id']}/attempts",
        json={"answers": {"q1": "a", "q2": "x", "q3": "c"}},
        headers=headers
    )
    assert response.status_code == 201
    attempt = response.json()
    assert attempt["score"] == 2
    assert attempt["totalQuestions"] == 3
    assert attempt["studentId"] == student["id"]
    assert attempt["studentGrade"] == "9"
    assert attempt["quizTitle"] == "Fractions"

    dashboard = client.get("/api/students/dashboard", headers=headers).json()
    assert dashboard["availableQuizzes"] == []
    [attempted] = dashboard["attemptedQuizzes"]
    assert attempted["quizId"] == quiz["id"]
    assert attempted["percentage"] == 67


def test_empty_submission_is_rejected(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student()

    response = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": {}}, headers=headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Please answer at least one question before submitting"

    dashboard = client.get("/api/students/dashboard", headers=headers).json()
    assert len(dashboard["availableQuizzes"]) == 1


def test_submission_for_unknown_quiz(client, create_student):
    headers, _ = create_student()

    response = client.post("/api/quizzes/missing/attempts", json={"answers": {"q1": "a"}}, headers=headers)

    assert response.status_code == 404
    assert response.json()["message"] == "Quiz not found"


def test_student_cannot_open_quiz_for_other_grade(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, grade="12")
    headers, _ = create_student(grade="9")

    response = client.get(f"/api/quizzes/{quiz['id']}", headers=headers)

    assert response.status_code == 403


def test_student_cannot_view_results(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student()

    assert client.get(f"/api/quizzes/{quiz['id']}/results", headers=headers).status_code == 403


def test_student_cannot_submit_quiz_for_other_grade(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers, grade="12")
    headers, _ = create_student(grade="9")

    response = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": {"q1": "a"}}, headers=headers)

    assert response.status_code == 403
    results = client.get(f"/api/quizzes/{quiz['id']}/results", headers=teacher_headers).json()
    assert results["attempts"] == []


def test_incomplete_profile_cannot_submit(client, create_teacher, create_student, create_quiz):
    teacher_headers, _ = create_teacher()
    quiz = create_quiz(teacher_headers)
    headers, _ = create_student(complete=False)

    response = client.post(f"/api/quizzes/{quiz['id']}/attempts", json={"answers": {"q1": "a"}}, headers=headers)

    assert response.status_code == 422
    assert response.json()["message"] == "Please complete your profile first"
    assert response.json()["details"]["action"] == "complete_profile"
