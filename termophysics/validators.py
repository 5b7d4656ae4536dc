"""Parsing helpers for user-supplied form and JSON values."""

from __future__ import annotations

from datetime import datetime, timezone

from termophysics.errors import ValidationError


def parse_datetime(value, field: str) -> datetime | None:
    """Parse an ISO 8601 date or datetime; blank means no value."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValidationError(f"{field} must be an ISO 8601 date.") from exc
    if parsed.tzinfo is not None:
        # Stored as naive UTC, like every other timestamp
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_int(value, field: str, default: int | None = None, minimum: int | None = None) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{field} must be a whole number.")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} must be a whole number.") from exc
    if minimum is not None and number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}.")
    return number


def require_text(value, field: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    return text


def optional_text(value) -> str | None:
    if value is None:
        return None
    return str(value).strip() or None
