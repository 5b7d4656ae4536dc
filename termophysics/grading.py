"""Auto-grading of quiz answers against the stored answer key."""

from __future__ import annotations

from dataclasses import dataclass

GRADABLE_TYPES = frozenset({"mcq", "short_answer"})


@dataclass(slots=True)
class GradedAnswer:
    """Outcome of grading one question of a submission."""

    question_id: int
    answer_text: str
    is_correct: bool | None
    score: int | None


@dataclass(slots=True)
class GradedSubmission:
    answers: list[GradedAnswer]
    total_score: int | None


def _normalize(text: str | None) -> str:
    return (text or "").strip().lower()


def is_gradable(question_type: str, correct_answer: str | None) -> bool:
    return question_type in GRADABLE_TYPES and correct_answer is not None


def grade_answer(
    question_type: str,
    correct_answer: str | None,
    points: int,
    answer_text: str | None,
) -> tuple[bool | None, int | None]:
    """
    Grading Logic:
    1. file_upload questions, or questions without a key, are left ungraded (None, None).
    2. Otherwise the trimmed, lower-cased answer must equal the trimmed, lower-cased key.
    3. A blank answer is an ordinary wrong answer.
    """
    if not is_gradable(question_type, correct_answer):
        return None, None
    if _normalize(answer_text) == _normalize(correct_answer):
        return True, points
    return False, 0


def total_score(scores) -> int | None:
    """Sum the graded scores; None when nothing was auto-gradable (pending, not zero)."""
    graded = [score for score in scores if score is not None]
    if not graded:
        return None
    return sum(graded)


def grade_submission(questions, answers: dict) -> GradedSubmission:
    """Grade every question of a quiz; questions the student skipped count as blank answers."""
    graded: list[GradedAnswer] = []
    for question in questions:
        answer_text = answers.get(question.id)
        if answer_text is None:
            answer_text = answers.get(str(question.id), "")
        answer_text = "" if answer_text is None else str(answer_text)
        is_correct, score = grade_answer(
            question.question_type,
            question.correct_answer,
            question.points,
            answer_text,
        )
        graded.append(
            GradedAnswer(
                question_id=question.id,
                answer_text=answer_text,
                is_correct=is_correct,
                score=score,
            )
        )
    return GradedSubmission(answers=graded, total_score=total_score(a.score for a in graded))
