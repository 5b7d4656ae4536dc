"""Quiz authoring, submission tracking and results for classroom quizzes.

Every function takes the acting ids explicitly; nothing reads the request or
the session. The routes in ``quiz_routes`` resolve identity and permissions
and then call in here.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from termophysics import db
from termophysics.errors import DuplicateSubmissionError, PersistenceError, ValidationError
from termophysics.grading import grade_submission, is_gradable
from termophysics.models import QUESTION_TYPES, Quiz, QuizAnswer, QuizQuestion, QuizSubmission
from termophysics.persistence import commit, delete, get_or_404
from termophysics.validators import optional_text, parse_datetime, parse_int, require_text

logger = logging.getLogger(__name__)

STATUS_NOT_SUBMITTED = "not_submitted"
STATUS_SUBMITTED = "submitted"
STATUS_GRADED = "graded"

PENDING_SCORE_LABEL = "Pending"
DEFAULT_MAX_SCORE = 100
DEFAULT_POINTS = 10


# --- AUTHORING ---
def create_quiz(classroom_id: int, teacher_id: int, title: str, description: str | None = None,
                due_date=None, time_limit_minutes=None, max_score=None) -> Quiz:
    quiz = Quiz(
        classroom_id=classroom_id,
        teacher_id=teacher_id,
        title=require_text(title, "Title"),
        description=optional_text(description),
        due_date=parse_datetime(due_date, "Due date"),
        time_limit_minutes=parse_int(time_limit_minutes, "Time limit", minimum=1),
        max_score=parse_int(max_score, "Max score", default=DEFAULT_MAX_SCORE, minimum=0),
    )
    db.session.add(quiz)
    commit("create a quiz")
    logger.info("Quiz %s created in classroom %s", quiz.id, classroom_id)
    return quiz


def add_question(quiz_id: int, question_text: str, question_type: str, options=None,
                 correct_answer: str | None = None, points=None) -> QuizQuestion:
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    text = require_text(question_text, "Question text")
    if question_type not in QUESTION_TYPES:
        raise ValidationError(f"Question type must be one of: {', '.join(QUESTION_TYPES)}.")

    stored_options = None
    stored_answer = None
    if question_type == "mcq":
        stored_options = [str(option).strip() for option in (options or []) if str(option).strip()]
        if len(stored_options) < 2:
            raise ValidationError("MCQ needs at least 2 options")
        stored_answer = optional_text(correct_answer)
        if stored_answer is None:
            raise ValidationError("Select the correct answer")
        if stored_answer not in stored_options:
            raise ValidationError("The correct answer must be one of the options.")
    elif question_type == "short_answer":
        stored_answer = optional_text(correct_answer)

    question = QuizQuestion(
        quiz_id=quiz.id,
        question_text=text,
        question_type=question_type,
        options=stored_options,
        correct_answer=stored_answer,
        points=parse_int(points, "Points", default=DEFAULT_POINTS, minimum=0),
        sort_order=QuizQuestion.query.filter_by(quiz_id=quiz.id).count(),
    )
    db.session.add(question)
    commit("add a question")
    logger.info("Question %s (%s) added to quiz %s", question.id, question_type, quiz.id)
    return question


def delete_question(question_id: int) -> None:
    question = get_or_404(QuizQuestion, question_id, "Question not found.")
    # Graded totals are computed from the answer key at submit time
    if QuizSubmission.query.filter_by(quiz_id=question.quiz_id).first() is not None:
        raise ValidationError("Questions cannot be deleted once students have submitted this quiz.")
    delete(question, "delete a question")


def delete_quiz(quiz_id: int) -> None:
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    delete(quiz, "delete a quiz")
    logger.info("Quiz %s deleted", quiz_id)


def list_questions(quiz_id: int, include_answer_key: bool) -> list[dict]:
    questions = (QuizQuestion.query.filter_by(quiz_id=quiz_id)
                 .order_by(QuizQuestion.sort_order.asc(), QuizQuestion.id.asc()).all())
    return [question.to_dict(include_answer_key=include_answer_key) for question in questions]


def list_quizzes(classroom_id: int, student_id: int | None = None) -> list[dict]:
    """Newest quizzes first; for a student each quiz also carries its submission status."""
    quizzes = (Quiz.query.filter_by(classroom_id=classroom_id)
               .order_by(Quiz.created_at.desc(), Quiz.id.desc()).all())
    if student_id is None:
        return [quiz.to_dict() for quiz in quizzes]

    submissions = {
        submission.quiz_id: submission
        for submission in QuizSubmission.query.filter_by(student_id=student_id).all()
    }
    rows = []
    for quiz in quizzes:
        row = quiz.to_dict()
        row["status"] = _status_of(submissions.get(quiz.id))
        row["already_submitted"] = row["status"] != STATUS_NOT_SUBMITTED
        rows.append(row)
    return rows


# --- SUBMISSION TRACKING ---
def find_submission(quiz_id: int, student_id: int) -> QuizSubmission | None:
    return QuizSubmission.query.filter_by(quiz_id=quiz_id, student_id=student_id).first()


def has_submitted(quiz_id: int, student_id: int) -> bool:
    return find_submission(quiz_id, student_id) is not None


def _status_of(submission: QuizSubmission | None) -> str:
    if submission is None:
        return STATUS_NOT_SUBMITTED
    if submission.graded_at is None:
        return STATUS_SUBMITTED
    return STATUS_GRADED


def submission_status(quiz_id: int, student_id: int) -> str:
    return _status_of(find_submission(quiz_id, student_id))


def take_quiz(quiz_id: int, student_id: int) -> dict:
    """Question sheet for a student; never reopened once they have submitted."""
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    if has_submitted(quiz.id, student_id):
        raise DuplicateSubmissionError()
    return {
        "quiz": quiz.to_dict(),
        "questions": list_questions(quiz.id, include_answer_key=False),
    }


def submit_quiz(quiz_id: int, student_id: int, answers: dict | None) -> QuizSubmission:
    """
    Grade and store a student's quiz attempt:
    1. Refuse early if the student already has a submission.
    2. Refuse a quiz without questions before writing anything.
    3. Grade every question, defaulting missing answers to "".
    4. Write the submission and all its answers in one transaction.
    """
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    if has_submitted(quiz.id, student_id):
        logger.info("Rejected repeat submission of quiz %s by student %s", quiz.id, student_id)
        raise DuplicateSubmissionError()

    questions = (QuizQuestion.query.filter_by(quiz_id=quiz.id)
                 .order_by(QuizQuestion.sort_order.asc(), QuizQuestion.id.asc()).all())
    if not questions:
        raise ValidationError("This quiz has no questions yet.")
    if answers is not None and not isinstance(answers, dict):
        raise ValidationError("Answers must map question ids to answer text.")

    graded = grade_submission(questions, answers or {})
    now = datetime.utcnow()
    submission = QuizSubmission(
        quiz_id=quiz.id,
        student_id=student_id,
        submitted_at=now,
        total_score=graded.total_score,
        graded_at=now if graded.total_score is not None else None,
    )
    for answer in graded.answers:
        submission.answers.append(QuizAnswer(
            question_id=answer.question_id,
            answer_text=answer.answer_text,
            is_correct=answer.is_correct,
            score=answer.score,
        ))

    db.session.add(submission)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        if has_submitted(quiz.id, student_id):
            logger.info("Unique constraint rejected repeat submission of quiz %s by student %s",
                        quiz.id, student_id)
            raise DuplicateSubmissionError() from exc
        logger.exception("Storage failure while submitting quiz %s", quiz.id)
        raise PersistenceError() from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Storage failure while submitting quiz %s", quiz.id)
        raise PersistenceError() from exc

    logger.info("Student %s submitted quiz %s, total score %s", student_id, quiz.id, graded.total_score)
    return submission


# --- RESULTS ---
def score_label(total_score: int | None, max_score: int) -> str:
    if total_score is None:
        return PENDING_SCORE_LABEL
    return f"{total_score}/{max_score}"


def _answer_row(answer: QuizAnswer) -> dict:
    question = answer.question
    row = {
        "question_id": question.id,
        "question_text": question.question_text,
        "question_type": question.question_type,
        "points": question.points,
        "answer_text": answer.answer_text,
    }
    if is_gradable(question.question_type, question.correct_answer):
        row["is_correct"] = answer.is_correct
        row["score"] = answer.score
    return row


def list_results(quiz_id: int) -> list[dict]:
    """One row per submission, each shown on its own; no class statistics."""
    quiz = get_or_404(Quiz, quiz_id, "Quiz not found.")
    submissions = (QuizSubmission.query.filter_by(quiz_id=quiz.id)
                   .order_by(QuizSubmission.submitted_at.asc(), QuizSubmission.id.asc()).all())
    results = []
    for submission in submissions:
        student = submission.student
        answers = sorted(submission.answers, key=lambda a: (a.question.sort_order, a.question_id))
        results.append({
            "submission_id": submission.id,
            "student": {
                "id": submission.student_id,
                "display_name": student.display_name if student else None,
                "email": student.email if student else None,
            },
            "submitted_at": submission.submitted_at.isoformat() if submission.submitted_at else None,
            "total_score": submission.total_score,
            "max_score": quiz.max_score,
            "score_display": score_label(submission.total_score, quiz.max_score),
            "status": _status_of(submission),
            "answers": [_answer_row(answer) for answer in answers],
        })
    return results
