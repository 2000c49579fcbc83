"""Centralised JWT helpers for access tokens.

Uses HS256 with the application's secret key. Validates standard claims
and expected issuer/audience values.
"""

from __future__ import annotations

import time
from typing import Any, Dict

import jwt
from jwt import InvalidTokenError

from app.settings import settings


ISSUER = "campus-events-api"
AUDIENCE = "campus-events-fe"
ALGORITHM = "HS256"

__all__ = ["InvalidTokenError", "decode_access", "encode_access"]


def encode_access(user_id: str, email: str, full_name: str, *, now: int | None = None) -> str:
    """Encode an access token carrying the user's id, e-mail and full name."""
    issued = int(now if now is not None else time.time())
    body: Dict[str, Any] = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "iat": issued,
        "exp": issued + settings.access_ttl_days * 24 * 3600,
        "sub": str(user_id),
        "email": email,
        "full_name": full_name,
    }
    return jwt.encode(body, settings.secret_key, algorithm=ALGORITHM)


def decode_access(token: str) -> dict[str, object]:
    """Decode and validate an access token.

    Raises jwt.InvalidTokenError subclasses on failure.
    """
    options = {"require": ["exp", "iat", "iss", "aud", "sub"]}
    payload = jwt.decode(
        token,
        settings.secret_key,
        algorithms=[ALGORITHM],
        audience=AUDIENCE,
        issuer=ISSUER,
        leeway=5,
        options=options,
    )
    for k in ("sub", "email"):
        if not payload.get(k):
            raise InvalidTokenError(f"missing_claim:{k}")
    return payload  # type: ignore[return-value]
