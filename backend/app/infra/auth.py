"""Authentication helpers for FastAPI endpoints.

Resolves the bearer token of a request into an explicit `AuthenticatedUser`
value that routers pass to the domain services.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.infra import jwt as jwt_helper
from app.obs import logging as obs_logging


@dataclass(slots=True, frozen=True)
class AuthenticatedUser:
	id: str
	email: str
	full_name: str = ""


_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
	return HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail=detail,
		headers={"WWW-Authenticate": "Bearer"},
	)


def verify_access_jwt(token: str) -> AuthenticatedUser:
	"""Decode and validate an access JWT and return an AuthenticatedUser."""
	try:
		payload = jwt_helper.decode_access(token)
	except jwt_helper.InvalidTokenError:
		raise _unauthorized("invalid_token") from None

	sub = str(payload.get("sub") or "").strip()
	email = str(payload.get("email") or "").strip()
	if not sub or not email:
		raise _unauthorized("invalid_token")
	try:
		UUID(sub)
	except ValueError:
		raise _unauthorized("invalid_token") from None
	full_name = payload.get("full_name")
	return AuthenticatedUser(
		id=sub,
		email=email,
		full_name=str(full_name).strip() if full_name is not None else "",
	)


async def get_current_user(
	credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> AuthenticatedUser:
	"""Resolve the authenticated user from the Authorization header."""
	if credentials is None:
		raise _unauthorized("authorization_missing")
	if credentials.scheme.lower() != "bearer" or not credentials.credentials:
		raise _unauthorized("invalid_authorization_header")
	user = verify_access_jwt(credentials.credentials)
	obs_logging.bind_context(user_id=user.id)
	return user
