"""
JWT Verification Helpers.

Provides ``verify_token`` for decoding bearer tokens issued by
``testflow.jwt`` and the ``require_auth`` decorator that protects every
non-public endpoint.  Verification is stateless: the credential store is
never consulted, so a user deactivated or deleted after issuance keeps
access until the token expires.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

import jwt
from flask import Response, current_app, g, jsonify, request

from .jwt import REQUIRED_TOKEN_CLAIMS, TOKEN_ALGORITHM, TokenSettings
from .models import Role


def verify_token(token: str, secret: str, leeway: int = 30) -> dict[str, Any] | None:
    """
    Decode and validate a JWT, returning the payload on success.

    Performs signature, expiry and required-claim checks, then validates
    that ``sub`` and ``username`` are non-empty strings and that ``role``
    is a known ``Role``.

    Args:
        token: The encoded JWT string to verify.
        secret: The shared HS256 secret.
        leeway: Seconds of clock skew tolerated on ``exp`` / ``iat``.

    Returns:
        The decoded payload dictionary if the token is valid, or ``None``
        if verification fails for any reason.
    """
    try:
        decoded = jwt.decode(
            token,
            secret,
            algorithms=[TOKEN_ALGORITHM],
            options={"require": REQUIRED_TOKEN_CLAIMS},
            leeway=leeway,
        )
    except jwt.InvalidTokenError:
        return None

    subject = decoded.get("sub")
    username = decoded.get("username")
    role = decoded.get("role")

    if not isinstance(subject, str) or not subject.strip():
        return None
    if not isinstance(username, str) or not username.strip():
        return None
    if role not in [r.value for r in Role]:
        return None
    return decoded


def _token_settings() -> TokenSettings:
    return current_app.extensions["token_settings"]


def require_auth(view_func: Callable[..., Any]):
    """
    Decorator that enforces Bearer-token authentication on API endpoints.

    On success the caller's identity is stored on ``flask.g`` as
    ``g.user_id``, ``g.username`` and ``g.role`` (a ``Role`` member).
    Otherwise the request is short-circuited with a ``401`` JSON error
    before the wrapped view runs.
    """

    @wraps(view_func)
    def wrapper(*args, **kwargs):
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return _unauthenticated("Missing or invalid Authorization header")

        token = auth_header[7:].strip()
        if not token:
            return _unauthenticated("Missing or invalid Authorization header")

        settings = _token_settings()
        payload = verify_token(token, settings.secret, leeway=settings.clock_skew_seconds)
        if payload is None:
            return _unauthenticated("Invalid or expired token")

        g.user_id = payload["sub"]
        g.username = payload["username"]
        g.role = Role(payload["role"])
        return view_func(*args, **kwargs)

    return wrapper


def _unauthenticated(message: str) -> tuple[Response, int]:
    return jsonify({"error": message}), 401
