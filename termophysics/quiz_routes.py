from flask import Blueprint, request, jsonify

from termophysics import quizzes
from termophysics.auth import current_user, login_required, student_required, teacher_required
from termophysics.classrooms import ensure_enrolled_student, ensure_owner, get_member_classroom, get_owned_classroom
from termophysics.models import Quiz, QuizQuestion
from termophysics.persistence import get_or_404

quiz_routes = Blueprint('quiz_routes', __name__)


def _owned_quiz(quiz_id):
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    ensure_owner(quiz.classroom, current_user())
    return quiz


def _student_quiz(quiz_id):
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    ensure_enrolled_student(quiz.classroom, current_user())
    return quiz


# --- QUIZZES ---
@quiz_routes.route('/classrooms/<int:classroom_id>/quizzes', methods=['GET'])
@login_required
def list_quizzes(classroom_id):
    user = current_user()
    classroom = get_member_classroom(classroom_id, user)
    student_id = None if user.is_teacher else user.id
    return jsonify(quizzes.list_quizzes(classroom.id, student_id=student_id))


@quiz_routes.route('/classrooms/<int:classroom_id>/quizzes', methods=['POST'])
@teacher_required
def create_quiz(classroom_id):
    user = current_user()
    classroom = get_owned_classroom(classroom_id, user)
    data = request.get_json(silent=True) or {}
    quiz = quizzes.create_quiz(
        classroom_id=classroom.id,
        teacher_id=user.id,
        title=data.get('title'),
        description=data.get('description'),
        due_date=data.get('due_date'),
        time_limit_minutes=data.get('time_limit_minutes'),
        max_score=data.get('max_score'),
    )
    return jsonify(quiz.to_dict()), 201


@quiz_routes.route('/quizzes/<int:quiz_id>', methods=['DELETE'])
@teacher_required
def delete_quiz(quiz_id):
    quiz = _owned_quiz(quiz_id)
    quizzes.delete_quiz(quiz.id)
    return jsonify({"message": "Quiz deleted."})


# --- QUESTIONS (TEACHER) ---
@quiz_routes.route('/quizzes/<int:quiz_id>/questions', methods=['GET'])
@teacher_required
def list_questions(quiz_id):
    quiz = _owned_quiz(quiz_id)
    return jsonify(quizzes.list_questions(quiz.id, include_answer_key=True))


@quiz_routes.route('/quizzes/<int:quiz_id>/questions', methods=['POST'])
@teacher_required
def add_question(quiz_id):
    quiz = _owned_quiz(quiz_id)
    data = request.get_json(silent=True) or {}
    question = quizzes.add_question(
        quiz.id,
        question_text=data.get('question_text'),
        question_type=data.get('question_type', 'mcq'),
        options=data.get('options'),
        correct_answer=data.get('correct_answer'),
        points=data.get('points'),
    )
    return jsonify(question.to_dict()), 201


@quiz_routes.route('/questions/<int:question_id>', methods=['DELETE'])
@teacher_required
def delete_question(question_id):
    question = get_or_404(QuizQuestion, question_id, "Question not found.")
    ensure_owner(question.quiz.classroom, current_user())
    quizzes.delete_question(question.id)
    return jsonify({"message": "Question deleted."})


# --- TAKING A QUIZ (STUDENT) ---
@quiz_routes.route('/quizzes/<int:quiz_id>/take', methods=['GET'])
@student_required
def take_quiz(quiz_id):
    quiz = _student_quiz(quiz_id)
    return jsonify(quizzes.take_quiz(quiz.id, current_user().id))


@quiz_routes.route('/quizzes/<int:quiz_id>/submit', methods=['POST'])
@student_required
def submit_quiz(quiz_id):
    quiz = _student_quiz(quiz_id)
    data = request.get_json(silent=True) or {}
    submission = quizzes.submit_quiz(quiz.id, current_user().id, data.get('answers'))
    return jsonify({
        "message": "Quiz submitted successfully!",
        "submission": submission.to_dict(),
        "score_display": quizzes.score_label(submission.total_score, quiz.max_score),
    }), 201


@quiz_routes.route('/quizzes/<int:quiz_id>/status', methods=['GET'])
@student_required
def quiz_status(quiz_id):
    quiz = _student_quiz(quiz_id)
    status = quizzes.submission_status(quiz.id, current_user().id)
    return jsonify({"quiz_id": quiz.id, "status": status,
                    "already_submitted": status != quizzes.STATUS_NOT_SUBMITTED})


# --- RESULTS (TEACHER) ---
@quiz_routes.route('/quizzes/<int:quiz_id>/results', methods=['GET'])
@teacher_required
def quiz_results(quiz_id):
    quiz = _owned_quiz(quiz_id)
    return jsonify({"quiz": quiz.to_dict(), "results": quizzes.list_results(quiz.id)})
