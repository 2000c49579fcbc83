"""Domain error taxonomy shared by identity and events services."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from fastapi import status


class DomainError(Exception):
	"""Base class for expected, recoverable domain failures."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "domain_error"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class ValidationError(DomainError):
	"""Malformed or constraint-violating input."""

	detail = "invalid_input"

	def __init__(self, detail: str | None = None, *, errors: Optional[Sequence[dict[str, Any]]] = None) -> None:
		super().__init__(detail)
		self.errors = list(errors or ())


class NotFoundError(DomainError):
	"""Thrown when a referenced event or user is missing."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class ForbiddenError(DomainError):
	"""Raised when the caller does not own the resource."""

	status_code = status.HTTP_403_FORBIDDEN
	detail = "forbidden"


class RegistrationClosedError(DomainError):
	"""Raised when registering at or after the registration deadline."""

	detail = "registration_closed"


class CapacityExceededError(DomainError):
	"""Raised when an event has no seats left."""

	detail = "event_full"


class DuplicateRegistrationError(DomainError):
	"""Raised when the user already holds a registration for the event."""

	status_code = status.HTTP_409_CONFLICT
	detail = "already_registered"


class ConstraintViolation(DomainError):
	"""Storage-level uniqueness conflict."""

	status_code = status.HTTP_409_CONFLICT
	detail = "constraint_violation"


class AuthenticationError(DomainError):
	status_code = status.HTTP_401_UNAUTHORIZED
	detail = "invalid_credentials"


class RateLimitedError(DomainError):
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	detail = "rate_limited"


def field_errors(exc: Any) -> list[dict[str, Any]]:
	"""Flatten pydantic or request validation errors into ``{"field", "message"}`` entries."""
	errors: list[dict[str, Any]] = []
	for error in exc.errors():
		location = ".".join(str(part) for part in error.get("loc", ()))
		errors.append({"field": location or "__root__", "message": error.get("msg", "invalid")})
	return errors
