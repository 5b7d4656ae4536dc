import logging
from datetime import datetime
from io import BytesIO

from flask import Blueprint, request, jsonify, send_file
from werkzeug.utils import secure_filename

from termophysics import db
from termophysics.auth import current_user, login_required, student_required, teacher_required
from termophysics.classrooms import (
    create_classroom,
    ensure_enrolled_student,
    ensure_owner,
    get_member_classroom,
    get_owned_classroom,
    join_classroom,
    list_enrollments,
    list_student_classrooms,
    list_teacher_classrooms,
    remove_enrollment,
)
from termophysics.errors import ValidationError
from termophysics.models import Assignment, AssignmentSubmission, ClassroomNote
from termophysics.persistence import commit, delete, get_or_404
from termophysics.validators import optional_text, parse_datetime, parse_int, require_text

routes = Blueprint('routes', __name__)
logger = logging.getLogger(__name__)


# --- HELPER: REQUEST PAYLOAD (JSON or multipart form) ---
def _payload():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


def _uploaded_file():
    file = request.files.get('file')
    if not file or file.filename == '':
        return None, None
    return secure_filename(file.filename), file.read()


@routes.route('/health')
def health():
    return jsonify({"status": "ok"})


# --- CLASSROOMS ---
@routes.route('/classrooms', methods=['GET'])
@login_required
def classrooms():
    user = current_user()
    if user.is_teacher:
        rows = list_teacher_classrooms(user.id)
    else:
        rows = list_student_classrooms(user.id)
    return jsonify([c.to_dict() for c in rows])


@routes.route('/classrooms', methods=['POST'])
@teacher_required
def new_classroom():
    data = _payload()
    classroom = create_classroom(
        teacher_id=current_user().id,
        name=data.get('name'),
        description=data.get('description'),
        subject=data.get('subject'),
    )
    return jsonify(classroom.to_dict()), 201


@routes.route('/classrooms/join', methods=['POST'])
@student_required
def join():
    data = _payload()
    enrollment = join_classroom(current_user().id, data.get('class_code'))
    return jsonify({"message": "Joined classroom!", "classroom": enrollment.classroom.to_dict()}), 201


@routes.route('/classrooms/<int:classroom_id>')
@login_required
def classroom_detail(classroom_id):
    user = current_user()
    classroom = get_member_classroom(classroom_id, user)
    data = classroom.to_dict()
    data["is_owner"] = classroom.teacher_id == user.id
    return jsonify(data)


@routes.route('/classrooms/<int:classroom_id>/students')
@teacher_required
def classroom_students(classroom_id):
    classroom = get_owned_classroom(classroom_id, current_user())
    return jsonify([e.to_dict() for e in list_enrollments(classroom.id)])


@routes.route('/enrollments/<int:enrollment_id>', methods=['DELETE'])
@teacher_required
def remove_student(enrollment_id):
    remove_enrollment(enrollment_id, current_user())
    return jsonify({"message": "Student removed"})


# --- NOTES ---
@routes.route('/classrooms/<int:classroom_id>/notes', methods=['GET'])
@login_required
def notes(classroom_id):
    classroom = get_member_classroom(classroom_id, current_user())
    rows = (ClassroomNote.query.filter_by(classroom_id=classroom.id)
            .order_by(ClassroomNote.created_at.desc(), ClassroomNote.id.desc()).all())
    return jsonify([n.to_dict() for n in rows])


@routes.route('/classrooms/<int:classroom_id>/notes', methods=['POST'])
@teacher_required
def create_note(classroom_id):
    user = current_user()
    classroom = get_owned_classroom(classroom_id, user)
    data = _payload()
    file_name, file_data = _uploaded_file()
    note = ClassroomNote(
        classroom_id=classroom.id,
        teacher_id=user.id,
        title=require_text(data.get('title'), "Title"),
        content=optional_text(data.get('content')),
        file_name=file_name,
        file_data=file_data,
    )
    db.session.add(note)
    commit("add a note")
    logger.info("Note %s added to classroom %s", note.id, classroom.id)
    return jsonify(note.to_dict()), 201


@routes.route('/notes/<int:note_id>/file')
@login_required
def download_note(note_id):
    note = get_or_404(ClassroomNote, note_id, "Note not found.")
    get_member_classroom(note.classroom_id, current_user())
    if not note.file_data:
        raise ValidationError("This note has no attachment.")
    return send_file(BytesIO(note.file_data), download_name=note.file_name, as_attachment=True)


@routes.route('/notes/<int:note_id>', methods=['DELETE'])
@teacher_required
def delete_note(note_id):
    note = get_or_404(ClassroomNote, note_id, "Note not found.")
    ensure_owner(note.classroom, current_user())
    delete(note, "delete a note")
    return jsonify({"message": "Note deleted."})


# --- ASSIGNMENTS ---
@routes.route('/classrooms/<int:classroom_id>/assignments', methods=['GET'])
@login_required
def assignments(classroom_id):
    classroom = get_member_classroom(classroom_id, current_user())
    rows = (Assignment.query.filter_by(classroom_id=classroom.id)
            .order_by(Assignment.created_at.desc(), Assignment.id.desc()).all())
    return jsonify([a.to_dict() for a in rows])


@routes.route('/classrooms/<int:classroom_id>/assignments', methods=['POST'])
@teacher_required
def create_assignment(classroom_id):
    user = current_user()
    classroom = get_owned_classroom(classroom_id, user)
    data = _payload()
    assignment = Assignment(
        classroom_id=classroom.id,
        teacher_id=user.id,
        title=require_text(data.get('title'), "Title"),
        description=optional_text(data.get('description')),
        due_date=parse_datetime(data.get('due_date'), "Due date"),
        max_score=parse_int(data.get('max_score'), "Max score", default=100, minimum=0),
    )
    db.session.add(assignment)
    commit("create an assignment")
    logger.info("Assignment %s created in classroom %s", assignment.id, classroom.id)
    return jsonify(assignment.to_dict()), 201


@routes.route('/assignments/<int:assignment_id>/submit', methods=['POST'])
@student_required
def submit_assignment(assignment_id):
    user = current_user()
    assignment = get_or_404(Assignment, assignment_id, "Assignment not found.")
    ensure_enrolled_student(assignment.classroom, user)
    data = _payload()
    content = optional_text(data.get('content'))
    file_name, file_data = _uploaded_file()
    if content is None and file_data is None:
        raise ValidationError("Add some text or attach a file before submitting.")

    is_late = assignment.due_date is not None and datetime.utcnow() > assignment.due_date
    submission = AssignmentSubmission(
        assignment_id=assignment.id,
        student_id=user.id,
        content=content,
        file_name=file_name,
        file_data=file_data,
        is_late=is_late,
    )
    db.session.add(submission)
    commit("submit an assignment")
    return jsonify({"message": "Submitted (late)" if is_late else "Submitted!",
                    "submission": submission.to_dict()}), 201


@routes.route('/assignments/<int:assignment_id>/submissions')
@teacher_required
def assignment_submissions(assignment_id):
    assignment = get_or_404(Assignment, assignment_id, "Assignment not found.")
    ensure_owner(assignment.classroom, current_user())
    rows = (AssignmentSubmission.query.filter_by(assignment_id=assignment.id)
            .order_by(AssignmentSubmission.submitted_at.asc(), AssignmentSubmission.id.asc()).all())
    return jsonify([s.to_dict() for s in rows])


@routes.route('/assignment-submissions/<int:submission_id>/grade', methods=['POST'])
@teacher_required
def grade_assignment(submission_id):
    submission = get_or_404(AssignmentSubmission, submission_id, "Submission not found.")
    assignment = submission.assignment
    ensure_owner(assignment.classroom, current_user())
    data = _payload()
    score = parse_int(data.get('score'), "Score", minimum=0)
    if score is None:
        raise ValidationError("Score is required.")
    if score > assignment.max_score:
        raise ValidationError(f"Score cannot exceed {assignment.max_score}.")
    submission.score = score
    submission.feedback = optional_text(data.get('feedback'))
    commit("grade a submission")
    return jsonify(submission.to_dict())
