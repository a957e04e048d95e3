"""
Session token management (HS256 JWT).

A token carries the identity the rest of the app trusts: user id, email,
and username. It is handed out both as a bearer token and as the
``auth-token`` cookie.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from worldleader.config import get_settings


@dataclass(frozen=True)
class TokenIdentity:
    """Identity resolved from a valid token."""

    user_id: int
    email: str
    username: str


def create_access_token(user_id: int, email: str, username: str) -> str:
    """Create a session token valid for ``jwt_expire_days``."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "username": username,
        "iat": now,
        "exp": now + timedelta(days=settings.jwt_expire_days),
        "iss": settings.jwt_issuer,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> TokenIdentity:
    """
    Verify and decode a session token.

    Raises:
        jwt.InvalidTokenError: If the token is invalid, expired, or missing claims.
    """
    settings = get_settings()
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None

    sub, email, username = payload.get("sub"), payload.get("email"), payload.get("username")
    if not isinstance(sub, str) or not sub.isdigit() or not isinstance(email, str) or not isinstance(username, str):
        msg = "Token is missing identity claims"
        raise jwt.InvalidTokenError(msg)
    return TokenIdentity(user_id=int(sub), email=email, username=username)
