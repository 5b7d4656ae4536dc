from termophysics import db
from datetime import datetime

ROLE_TEACHER = "teacher"
ROLE_STUDENT = "user"

QUESTION_TYPES = ("mcq", "short_answer", "file_upload")


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    display_name = db.Column(db.String(100))
    password_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_STUDENT)  # 'teacher' or 'user'
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @property
    def is_teacher(self):
        return self.role == ROLE_TEACHER

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "display_name": self.display_name,
            "role": self.role,
        }


class Classroom(db.Model):
    __tablename__ = "classrooms"

    id = db.Column(db.Integer, primary_key=True)
    teacher_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    subject = db.Column(db.String(100))
    class_code = db.Column(db.String(12), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    teacher = db.relationship('Profile')
    enrollments = db.relationship('Enrollment', backref='classroom', lazy=True, cascade="all, delete-orphan")
    notes = db.relationship('ClassroomNote', backref='classroom', lazy=True, cascade="all, delete-orphan")
    assignments = db.relationship('Assignment', backref='classroom', lazy=True, cascade="all, delete-orphan")
    quizzes = db.relationship('Quiz', backref='classroom', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "teacher_id": self.teacher_id,
            "name": self.name,
            "description": self.description,
            "subject": self.subject,
            "class_code": self.class_code,
            "created_at": _iso(self.created_at),
        }


class Enrollment(db.Model):
    __tablename__ = "classroom_enrollments"
    __table_args__ = (db.UniqueConstraint('classroom_id', 'student_id', name='uq_enrollment_classroom_student'),)

    id = db.Column(db.Integer, primary_key=True)
    classroom_id = db.Column(db.Integer, db.ForeignKey('classrooms.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow)

    student = db.relationship('Profile')

    def to_dict(self):
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "student_id": self.student_id,
            "enrolled_at": _iso(self.enrolled_at),
            "profile": {
                "display_name": self.student.display_name,
                "email": self.student.email,
            } if self.student else None,
        }


class ClassroomNote(db.Model):
    __tablename__ = "classroom_notes"

    id = db.Column(db.Integer, primary_key=True)
    classroom_id = db.Column(db.Integer, db.ForeignKey('classrooms.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    title = db.Column(db.String(150), nullable=False)
    content = db.Column(db.Text)
    file_name = db.Column(db.String(200))
    file_data = db.Column(db.LargeBinary)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "title": self.title,
            "content": self.content,
            "file_name": self.file_name,
            "created_at": _iso(self.created_at),
        }


class Assignment(db.Model):
    __tablename__ = "assignments"

    id = db.Column(db.Integer, primary_key=True)
    classroom_id = db.Column(db.Integer, db.ForeignKey('classrooms.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    due_date = db.Column(db.DateTime)
    max_score = db.Column(db.Integer, nullable=False, default=100)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    submissions = db.relationship('AssignmentSubmission', backref='assignment', lazy=True,
                                  cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "title": self.title,
            "description": self.description,
            "due_date": _iso(self.due_date),
            "max_score": self.max_score,
            "created_at": _iso(self.created_at),
        }


class AssignmentSubmission(db.Model):
    __tablename__ = "assignment_submissions"

    id = db.Column(db.Integer, primary_key=True)
    assignment_id = db.Column(db.Integer, db.ForeignKey('assignments.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    content = db.Column(db.Text)
    file_name = db.Column(db.String(200))
    file_data = db.Column(db.LargeBinary)
    is_late = db.Column(db.Boolean, default=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    score = db.Column(db.Integer)
    feedback = db.Column(db.Text)

    student = db.relationship('Profile')

    def to_dict(self):
        return {
            "id": self.id,
            "assignment_id": self.assignment_id,
            "student_id": self.student_id,
            "content": self.content,
            "file_name": self.file_name,
            "is_late": self.is_late,
            "submitted_at": _iso(self.submitted_at),
            "score": self.score,
            "feedback": self.feedback,
            "profile": {
                "display_name": self.student.display_name,
                "email": self.student.email,
            } if self.student else None,
        }


class Quiz(db.Model):
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    classroom_id = db.Column(db.Integer, db.ForeignKey('classrooms.id'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    title = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    due_date = db.Column(db.DateTime)
    time_limit_minutes = db.Column(db.Integer)
    max_score = db.Column(db.Integer, nullable=False, default=100)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    questions = db.relationship('QuizQuestion', backref='quiz', lazy=True, cascade="all, delete-orphan",
                                order_by='QuizQuestion.sort_order')
    submissions = db.relationship('QuizSubmission', backref='quiz', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "classroom_id": self.classroom_id,
            "teacher_id": self.teacher_id,
            "title": self.title,
            "description": self.description,
            "due_date": _iso(self.due_date),
            "time_limit_minutes": self.time_limit_minutes,
            "max_score": self.max_score,
            "created_at": _iso(self.created_at),
        }


class QuizQuestion(db.Model):
    __tablename__ = "quiz_questions"

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False)
    question_text = db.Column(db.Text, nullable=False)
    question_type = db.Column(db.String(20), nullable=False)  # 'mcq', 'short_answer', 'file_upload'
    options = db.Column(db.JSON, nullable=True)
    correct_answer = db.Column(db.Text, nullable=True)
    points = db.Column(db.Integer, nullable=False, default=10)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    answers = db.relationship('QuizAnswer', backref='question', lazy=True, cascade="all, delete-orphan")

    def to_dict(self, include_answer_key=True):
        data = {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "question_text": self.question_text,
            "question_type": self.question_type,
            "options": self.options,
            "points": self.points,
            "sort_order": self.sort_order,
        }
        # Students never receive the answer key
        if include_answer_key:
            data["correct_answer"] = self.correct_answer
        return data


class QuizSubmission(db.Model):
    __tablename__ = "quiz_submissions"
    __table_args__ = (db.UniqueConstraint('quiz_id', 'student_id', name='uq_quiz_submission_student'),)

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quizzes.id'), nullable=False)
    student_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    submitted_at = db.Column(db.DateTime, default=datetime.utcnow)
    total_score = db.Column(db.Integer, nullable=True)
    graded_at = db.Column(db.DateTime, nullable=True)

    student = db.relationship('Profile')
    answers = db.relationship('QuizAnswer', backref='submission', lazy=True, cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "student_id": self.student_id,
            "submitted_at": _iso(self.submitted_at),
            "total_score": self.total_score,
            "graded_at": _iso(self.graded_at),
        }


class QuizAnswer(db.Model):
    __tablename__ = "quiz_answers"

    id = db.Column(db.Integer, primary_key=True)
    submission_id = db.Column(db.Integer, db.ForeignKey('quiz_submissions.id'), nullable=False)
    question_id = db.Column(db.Integer, db.ForeignKey('quiz_questions.id'), nullable=False)
    answer_text = db.Column(db.Text, nullable=False, default="")
    is_correct = db.Column(db.Boolean, nullable=True)
    score = db.Column(db.Integer, nullable=True)


class Conversation(db.Model):
    __tablename__ = "conversations"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('profiles.id'), nullable=False)
    title = db.Column(db.String(80), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    messages = db.relationship('Message', backref='conversation', lazy=True, cascade="all, delete-orphan",
                               order_by='Message.id')

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class Message(db.Model):
    __tablename__ = "messages"

    id = db.Column(db.Integer, primary_key=True)
    conversation_id = db.Column(db.Integer, db.ForeignKey('conversations.id'), nullable=False)
    role = db.Column(db.String(10), nullable=False)  # 'user' or 'assistant'
    content = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {"id": self.id, "role": self.role, "content": self.content, "created_at": _iso(self.created_at)}


def _iso(value):
    return value.isoformat() if value else None
