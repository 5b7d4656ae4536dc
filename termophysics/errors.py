"""Error types shared by the services and their JSON rendering."""

from __future__ import annotations

from flask import jsonify
from werkzeug.exceptions import HTTPException


class TermoPhysicsError(Exception):
    """Base class for errors scoped to a single request."""

    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(TermoPhysicsError):
    status_code = 400
    default_message = "Invalid input."


class AuthenticationError(TermoPhysicsError):
    status_code = 401
    default_message = "Login required."


class PermissionDeniedError(TermoPhysicsError):
    status_code = 403
    default_message = "You are not allowed to do that."


class NotFoundError(TermoPhysicsError):
    status_code = 404
    default_message = "Not found."


class DuplicateSubmissionError(TermoPhysicsError):
    status_code = 409
    default_message = "Already Submitted"


class DuplicateEnrollmentError(TermoPhysicsError):
    status_code = 409
    default_message = "Already enrolled!"


class PersistenceError(TermoPhysicsError):
    status_code = 500
    default_message = "Could not save your changes. Please try again."


class TutorUnavailableError(TermoPhysicsError):
    status_code = 503
    default_message = "Server AI is not configured."


def register_error_handlers(app) -> None:
    @app.errorhandler(TermoPhysicsError)
    def handle_termophysics_error(error: TermoPhysicsError):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error: HTTPException):
        return jsonify({"error": error.description}), error.code
