import pytest

from tests.conftest import register


@pytest.fixture
def quiz(teacher, classroom):
    response = teacher.post(f"/classrooms/{classroom['id']}/quizzes", json={
        "title": "Heat engines",
        "description": "Carnot cycle basics",
        "due_date": "2030-01-01T12:00:00",
        "time_limit_minutes": "20",
    })
    assert response.status_code == 201
    quiz = response.get_json()
    q1 = teacher.post(f"/quizzes/{quiz['id']}/questions", json={
        "question_text": "Which is the most efficient cycle?",
        "question_type": "mcq",
        "options": ["A", "B", "C"],
        "correct_answer": "B",
        "points": 10,
    }).get_json()
    q2 = teacher.post(f"/quizzes/{quiz['id']}/questions", json={
        "question_text": "Explain entropy in your own words.",
        "question_type": "short_answer",
        "points": 5,
    }).get_json()
    return quiz, q1, q2


def test_quiz_defaults(quiz):
    quiz, _, _ = quiz
    assert quiz["max_score"] == 100
    assert quiz["time_limit_minutes"] == 20
    assert quiz["due_date"] == "2030-01-01T12:00:00"


def test_student_cannot_create_quizzes_or_questions(student, classroom, quiz):
    quiz, _, _ = quiz
    assert student.post(f"/classrooms/{classroom['id']}/quizzes", json={"title": "Mine"}).status_code == 403
    response = student.post(f"/quizzes/{quiz['id']}/questions",
                            json={"question_text": "Q", "question_type": "short_answer"})
    assert response.status_code == 403
    assert student.get(f"/quizzes/{quiz['id']}/results").status_code == 403


def test_other_teacher_cannot_manage_quiz(app, quiz):
    quiz, _, _ = quiz
    stranger = register(app, "newton@school.edu", role="teacher")
    assert stranger.get(f"/quizzes/{quiz['id']}/results").status_code == 403
    assert stranger.delete(f"/quizzes/{quiz['id']}").status_code == 403


def test_missing_title_is_a_validation_error(teacher, classroom):
    response = teacher.post(f"/classrooms/{classroom['id']}/quizzes", json={"title": "  "})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Title is required."}


def test_mcq_without_enough_options_is_rejected(teacher, quiz):
    quiz, _, _ = quiz
    response = teacher.post(f"/quizzes/{quiz['id']}/questions", json={
        "question_text": "Pick one", "question_type": "mcq", "options": ["only", ""], "correct_answer": "only",
    })
    assert response.status_code == 400
    assert response.get_json()["error"] == "MCQ needs at least 2 options"


def test_teacher_sees_answer_key_student_does_not(teacher, student, quiz):
    quiz, _, _ = quiz
    teacher_view = teacher.get(f"/quizzes/{quiz['id']}/questions").get_json()
    assert teacher_view[0]["correct_answer"] == "B"

    sheet = student.get(f"/quizzes/{quiz['id']}/take").get_json()
    assert [q["question_type"] for q in sheet["questions"]] == ["mcq", "short_answer"]
    assert all("correct_answer" not in q for q in sheet["questions"])


def test_submit_grades_and_closes_the_quiz(student, quiz):
    quiz, q1, q2 = quiz
    assert student.get(f"/quizzes/{quiz['id']}/status").get_json()["status"] == "not_submitted"

    response = student.post(f"/quizzes/{quiz['id']}/submit",
                            json={"answers": {str(q1["id"]): " b ", str(q2["id"]): "anything"}})

    assert response.status_code == 201
    body = response.get_json()
    assert body["submission"]["total_score"] == 10
    assert body["score_display"] == "10/100"

    status = student.get(f"/quizzes/{quiz['id']}/status").get_json()
    assert status == {"quiz_id": quiz["id"], "status": "graded", "already_submitted": True}

    listed = student.get(f"/classrooms/{quiz['classroom_id']}/quizzes").get_json()
    assert listed[0]["already_submitted"] is True

    reopened = student.get(f"/quizzes/{quiz['id']}/take")
    assert reopened.status_code == 409
    assert reopened.get_json() == {"error": "Already Submitted"}

    again = student.post(f"/quizzes/{quiz['id']}/submit", json={"answers": {str(q1["id"]): "B"}})
    assert again.status_code == 409


def test_unenrolled_student_cannot_take_quiz(app, quiz):
    quiz, _, _ = quiz
    outsider = register(app, "outsider@school.edu")
    assert outsider.get(f"/quizzes/{quiz['id']}/take").status_code == 403
    assert outsider.post(f"/quizzes/{quiz['id']}/submit", json={"answers": {}}).status_code == 403


def test_teacher_results(teacher, student, other_student, classroom, quiz):
    quiz, q1, q2 = quiz
    teacher_results = teacher.get(f"/quizzes/{quiz['id']}/results").get_json()
    assert teacher_results["results"] == []

    other_student.post("/classrooms/join", json={"class_code": classroom["class_code"]})
    student.post(f"/quizzes/{quiz['id']}/submit", json={"answers": {str(q1["id"]): "b"}})
    other_student.post(f"/quizzes/{quiz['id']}/submit", json={"answers": {str(q1["id"]): "C", str(q2["id"]): ""}})

    results = teacher.get(f"/quizzes/{quiz['id']}/results").get_json()["results"]

    assert [r["student"]["display_name"] for r in results] == ["Ada", "Alan"]
    assert [r["score_display"] for r in results] == ["10/100", "0/100"]
    assert results[1]["answers"][0]["is_correct"] is False
    assert "is_correct" not in results[1]["answers"][1]


def test_delete_question_and_quiz(teacher, quiz):
    quiz, q1, _ = quiz
    assert teacher.delete(f"/questions/{q1['id']}").status_code == 200
    assert len(teacher.get(f"/quizzes/{quiz['id']}/questions").get_json()) == 1

    assert teacher.delete(f"/quizzes/{quiz['id']}").status_code == 200
    assert teacher.get(f"/quizzes/{quiz['id']}/results").status_code == 404


def test_anonymous_requests_need_login(app, quiz):
    quiz, _, _ = quiz
    response = app.test_client().get(f"/quizzes/{quiz['id']}/take")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Login required."}


def test_question_delete_is_refused_once_submitted(teacher, student, quiz):
    quiz, q1, _ = quiz
    assert student.post(f"/quizzes/{quiz['id']}/submit", json={"answers": {str(q1['id']): "B"}}).status_code == 201

    response = teacher.delete(f"/questions/{q1['id']}")

    assert response.status_code == 400
    assert len(teacher.get(f"/quizzes/{quiz['id']}/questions").get_json()) == 2
