"""JWT helpers for issuing and reading access tokens."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

from jose import jwt

from skinbag_settlement.core.settings import settings
from skinbag_settlement.db.time import utcnow


def create_access_token(user_id: str, expires_minutes: int | None = None) -> str:
    """Issue a signed bearer token whose subject is ``user_id``.

    Args:
        user_id: Identifier of the marketplace user
        expires_minutes: Optional override of the configured token lifetime

    Returns:
        Encoded JWT string
    """
    lifetime = expires_minutes or settings.access_token_expire_minutes
    claims: dict[str, Any] = {
        "sub": user_id,
        "exp": utcnow() + timedelta(minutes=lifetime),
    }
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a bearer token, raising ``jose.JWTError`` when invalid."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
