"""Identity policy helpers: e-mail domain, interests and rate limits."""

from __future__ import annotations

from typing import Iterable, Optional

from app.domain.exceptions import RateLimitedError, ValidationError
from app.infra import rate_limit
from app.settings import settings

REGISTER_PER_HOUR = 20
LOGIN_PER_MINUTE = 12
MAX_INTERESTS = 10
MAX_INTEREST_LENGTH = 40


def normalise_email(email: str) -> str:
	return email.strip().lower()


def guard_email_domain(email: str, domain: Optional[str] = None) -> None:
	allowed = (domain or settings.allowed_email_domain).lower()
	if not allowed:
		return
	if email.rsplit("@", 1)[-1].lower() != allowed:
		raise ValidationError("email_domain_not_allowed")


def normalise_interests(values: Iterable[str]) -> list[str]:
	"""Trim and de-duplicate interests case-insensitively, keeping first spellings."""
	seen: set[str] = set()
	result: list[str] = []
	for raw in values:
		text = str(raw).strip()
		if not text:
			continue
		if len(text) > MAX_INTEREST_LENGTH:
			raise ValidationError("interest_too_long")
		key = text.lower()
		if key in seen:
			continue
		seen.add(key)
		result.append(text)
	if len(result) > MAX_INTERESTS:
		raise ValidationError("too_many_interests")
	return result


def split_full_name(full_name: str) -> tuple[str, str]:
	parts = full_name.split()
	if not parts:
		return "", ""
	return parts[0], " ".join(parts[1:])


async def enforce_register_rate(ip: str, *, now: float | None = None) -> None:
	limit = 1000 if settings.is_dev() else REGISTER_PER_HOUR
	if not await rate_limit.allow("auth:register", ip, limit=limit, window_seconds=3600, now=now):
		raise RateLimitedError()


async def enforce_login_rate(ip: str, *, now: float | None = None) -> None:
	limit = 1000 if settings.is_dev() else LOGIN_PER_MINUTE
	if not await rate_limit.allow("auth:login", ip, limit=limit, window_seconds=60, now=now):
		raise RateLimitedError()
