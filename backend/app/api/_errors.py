"""Error translation helpers for API routers."""

from __future__ import annotations

from typing import Any, Optional, Sequence

from fastapi import HTTPException

from app.domain.exceptions import DomainError, ValidationError


class ApiError(HTTPException):
	"""HTTPException that may carry per-field validation errors."""

	def __init__(
		self,
		status_code: int,
		detail: str,
		*,
		errors: Optional[Sequence[dict[str, Any]]] = None,
		headers: Optional[dict[str, str]] = None,
	) -> None:
		super().__init__(status_code=status_code, detail=detail, headers=headers)
		self.errors = list(errors or ())


def to_http_error(exc: DomainError) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, ValidationError):
		return ApiError(exc.status_code, exc.detail, errors=exc.errors)
	return ApiError(exc.status_code, exc.detail)
