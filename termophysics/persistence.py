"""Thin helpers around the Flask-SQLAlchemy session."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from termophysics import db
from termophysics.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


def get_or_404(model, object_id, message: str | None = None):
    instance = db.session.get(model, object_id)
    if instance is None:
        raise NotFoundError(message or f"{model.__name__} {object_id} not found.")
    return instance


def commit(action: str) -> None:
    """Commit the current unit of work, rolling it back entirely on failure."""
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Storage failure while trying to %s", action)
        raise PersistenceError() from exc


def delete(instance, action: str) -> None:
    db.session.delete(instance)
    commit(action)
