import logging
from functools import wraps

from flask import Blueprint, request, session, jsonify
from sqlalchemy.exc import IntegrityError
from werkzeug.security import generate_password_hash, check_password_hash

from termophysics import db
from termophysics.errors import AuthenticationError, PermissionDeniedError, ValidationError
from termophysics.models import Profile, ROLE_TEACHER, ROLE_STUDENT

auth = Blueprint('auth', __name__)
logger = logging.getLogger(__name__)


# --- HELPER: SESSION IDENTITY ---
def current_user():
    user_id = session.get('user_id')
    if user_id is None:
        raise AuthenticationError()
    user = db.session.get(Profile, user_id)
    if user is None:
        session.clear()
        raise AuthenticationError()
    return user


def login_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        current_user()
        return view(*args, **kwargs)
    return wrapped


def teacher_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if not current_user().is_teacher:
            raise PermissionDeniedError("Only teachers can do that.")
        return view(*args, **kwargs)
    return wrapped


def student_required(view):
    @wraps(view)
    def wrapped(*args, **kwargs):
        if current_user().is_teacher:
            raise PermissionDeniedError("Only students can do that.")
        return view(*args, **kwargs)
    return wrapped


# --- AUTH ROUTES ---
@auth.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    role = data.get('role') or ROLE_STUDENT

    if not email or not password:
        raise ValidationError("Email and password are required.")
    if role not in (ROLE_TEACHER, ROLE_STUDENT):
        raise ValidationError("Role must be 'teacher' or 'user'.")
    user = Profile(
        email=email,
        display_name=(data.get('display_name') or '').strip() or email.split('@')[0],
        password_hash=generate_password_hash(password),
        role=role,
    )
    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ValidationError("Email already registered.") from exc
    logger.info("Registered %s as %s", email, role)

    session['user_id'] = user.id
    session['role'] = user.role
    return jsonify(user.to_dict()), 201


@auth.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip().lower()
    user = Profile.query.filter_by(email=email).first()
    if not user or not check_password_hash(user.password_hash, data.get('password') or ''):
        raise AuthenticationError("Invalid credentials.")

    session['user_id'] = user.id
    session['role'] = user.role
    return jsonify(user.to_dict())


@auth.route('/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({"message": "Logged out."})


@auth.route('/me')
@login_required
def me():
    return jsonify(current_user().to_dict())
