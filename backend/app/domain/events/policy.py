"""Schedule and ownership rules for events."""

from __future__ import annotations

from datetime import datetime, timezone

from app.domain.events import models
from app.domain.exceptions import ForbiddenError, ValidationError
from app.infra.auth import AuthenticatedUser


def ensure_aware(value: datetime) -> datetime:
	"""Treat naive datetimes as UTC."""
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value


def validate_schedule(starts_at: datetime, registration_deadline: datetime, now: datetime) -> None:
	starts_at = ensure_aware(starts_at)
	registration_deadline = ensure_aware(registration_deadline)
	now = ensure_aware(now)
	if starts_at <= now:
		raise ValidationError("starts_at_not_in_future")
	if registration_deadline <= now:
		raise ValidationError("deadline_not_in_future")
	if registration_deadline >= starts_at:
		raise ValidationError("deadline_after_start")


def validate_attendance_limit(limit: int) -> None:
	if limit <= 0:
		raise ValidationError("attendance_limit_not_positive")


def validate_limit_covers_registrations(limit: int, registration_count: int) -> None:
	if limit < registration_count:
		raise ValidationError("attendance_limit_below_registrations")


def assert_owner(event: models.Event, user: AuthenticatedUser) -> None:
	if str(event.owner_id) != str(user.id):
		raise ForbiddenError("not_event_owner")


def registration_open(event: models.Event, now: datetime) -> bool:
	return ensure_aware(now) < ensure_aware(event.registration_deadline)


def resolve_owner_name(requested: str | None, user: AuthenticatedUser, *, fallback: str = "Event Owner") -> str:
	name = (requested or "").strip()
	if name:
		return name
	return (user.full_name or "").strip() or fallback
