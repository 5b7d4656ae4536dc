"""Classroom ownership, membership and enrollment by class code."""

from __future__ import annotations

import logging
import secrets
import string

from sqlalchemy.exc import IntegrityError

from termophysics import db
from termophysics.errors import (
    DuplicateEnrollmentError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from termophysics.models import Classroom, Enrollment
from termophysics.persistence import commit, delete, get_or_404

logger = logging.getLogger(__name__)

CLASS_CODE_LENGTH = 6
_CLASS_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_class_code() -> str:
    while True:
        code = "".join(secrets.choice(_CLASS_CODE_ALPHABET) for _ in range(CLASS_CODE_LENGTH))
        if not Classroom.query.filter_by(class_code=code).first():
            return code


def create_classroom(teacher_id: int, name: str, description: str | None = None,
                     subject: str | None = None) -> Classroom:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Classroom name is required.")
    classroom = Classroom(
        teacher_id=teacher_id,
        name=name,
        description=(description or "").strip() or None,
        subject=(subject or "").strip() or None,
        class_code=generate_class_code(),
    )
    db.session.add(classroom)
    commit("create a classroom")
    logger.info("Teacher %s created classroom %s (%s)", teacher_id, classroom.id, classroom.class_code)
    return classroom


def list_teacher_classrooms(teacher_id: int) -> list[Classroom]:
    return (Classroom.query.filter_by(teacher_id=teacher_id)
            .order_by(Classroom.created_at.desc(), Classroom.id.desc()).all())


def list_student_classrooms(student_id: int) -> list[Classroom]:
    return (Classroom.query.join(Enrollment, Enrollment.classroom_id == Classroom.id)
            .filter(Enrollment.student_id == student_id)
            .order_by(Enrollment.enrolled_at.desc(), Enrollment.id.desc()).all())


def is_enrolled(classroom_id: int, student_id: int) -> bool:
    return Enrollment.query.filter_by(classroom_id=classroom_id, student_id=student_id).first() is not None


def join_classroom(student_id: int, class_code: str) -> Enrollment:
    """Enroll a student using a class code; the unique constraint is the only duplicate check."""
    code = (class_code or "").strip().upper()
    if not code:
        raise ValidationError("Class code is required.")
    classroom = Classroom.query.filter_by(class_code=code).first()
    if classroom is None:
        raise NotFoundError("No classroom found with that code. Please check the code and try again.")

    enrollment = Enrollment(classroom_id=classroom.id, student_id=student_id)
    db.session.add(enrollment)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise DuplicateEnrollmentError() from exc
    logger.info("Student %s joined classroom %s", student_id, classroom.id)
    return enrollment


def get_member_classroom(classroom_id: int, user) -> Classroom:
    """Return the classroom if the user owns it or is enrolled in it."""
    classroom = get_or_404(Classroom, classroom_id, "Classroom not found.")
    if classroom.teacher_id == user.id:
        return classroom
    if not user.is_teacher and is_enrolled(classroom.id, user.id):
        return classroom
    raise PermissionDeniedError("You are not a member of this classroom.")


def get_owned_classroom(classroom_id: int, user) -> Classroom:
    classroom = get_or_404(Classroom, classroom_id, "Classroom not found.")
    ensure_owner(classroom, user)
    return classroom


def ensure_owner(classroom: Classroom, user) -> None:
    if classroom.teacher_id != user.id:
        raise PermissionDeniedError("Only the classroom teacher can do that.")


def ensure_enrolled_student(classroom: Classroom, user) -> None:
    if user.is_teacher or not is_enrolled(classroom.id, user.id):
        raise PermissionDeniedError("Only enrolled students can do that.")


def list_enrollments(classroom_id: int) -> list[Enrollment]:
    return (Enrollment.query.filter_by(classroom_id=classroom_id)
            .order_by(Enrollment.enrolled_at.asc(), Enrollment.id.asc()).all())


def remove_enrollment(enrollment_id: int, user) -> None:
    enrollment = get_or_404(Enrollment, enrollment_id, "Enrollment not found.")
    ensure_owner(enrollment.classroom, user)
    classroom_id = enrollment.classroom_id
    delete(enrollment, "remove a student")
    logger.info("Removed enrollment %s from classroom %s", enrollment_id, classroom_id)
