"""
JWT token creation for TestFlow.

Issues the bearer tokens handed out by ``POST /api/auth/login``.  Tokens
are signed with HS256 using the process-wide ``JWT_SECRET_KEY``; the same
secret verifies them on every request (see ``testflow.auth``).

Token structure (claims):
    - ``sub``      -- opaque id of the authenticated user.
    - ``username`` -- login name, carried for logging and display.
    - ``role``     -- the user's role at issuance time.
    - ``iat``      -- issued-at timestamp (UTC epoch seconds).
    - ``exp``      -- expiration timestamp (UTC epoch seconds).

Tokens are stateless: a user deactivated or deleted after issuance keeps a
working token until ``exp``.  Rotating the secret invalidates all tokens.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from .models import Role

TOKEN_ALGORITHM = "HS256"
REQUIRED_TOKEN_CLAIMS = ["sub", "username", "role", "iat", "exp"]


@dataclass(frozen=True)
class TokenSettings:
    """Immutable signing and verification settings, built once per app."""

    secret: str
    expiry_hours: int = 24
    clock_skew_seconds: int = 30

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> TokenSettings:
        return cls(
            secret=config["JWT_SECRET_KEY"],
            expiry_hours=int(config.get("JWT_EXPIRY_HOURS", 24)),
            clock_skew_seconds=int(config.get("JWT_CLOCK_SKEW_SECONDS", 30)),
        )


def create_token(
    user_id: str,
    username: str,
    role: str,
    secret: str,
    expiry_hours: int,
) -> str:
    """
    Create an HS256-signed JWT carrying the caller's identity and role.

    Args:
        user_id: Opaque id of the authenticated user.
        username: Login name of the user.
        role: One of the ``Role`` values.
        secret: Shared signing secret.
        expiry_hours: Number of hours from *now* until the token expires.

    Returns:
        A compact JWS string suitable for an ``Authorization: Bearer`` header.

    Raises:
        ValueError: If the identity fields are blank or the role is unknown.
    """
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValueError("user_id must be a non-empty string")
    if not isinstance(username, str) or not username.strip():
        raise ValueError("username must be a non-empty string")
    try:
        role_value = Role(role).value
    except ValueError as exc:
        raise ValueError(f"Unknown role: {role!r}") from exc

    now = datetime.now(timezone.utc)
    expires_at = now + timedelta(hours=int(expiry_hours))

    payload: dict[str, Any] = {
        "sub": user_id,
        "username": username,
        "role": role_value,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=TOKEN_ALGORITHM)
