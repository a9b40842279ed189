"""Test helper functions shared by the unit and integration suites."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

TEST_JWT_SECRET = "test-jwt-secret-key-for-local-tests-123456"
DEFAULT_PASSWORD = "StrongPass123!"
DEFAULT_TEST_USER_ID = "00000000-0000-4000-8000-000000000001"
DEFAULT_TEST_USERNAME = "test_user"


def create_test_token(
    user_id: str = DEFAULT_TEST_USER_ID,
    username: str = DEFAULT_TEST_USERNAME,
    role: str = "developer",
    secret: str = TEST_JWT_SECRET,
    expired: bool = False,
) -> str:
    """Create a signed HS256 test token with the required claims."""
    now = datetime.now(timezone.utc)
    expiry_time = now - timedelta(hours=1) if expired else now + timedelta(hours=1)

    payload: dict[str, Any] = {
        "sub": str(user_id),
        "username": str(username),
        "role": role,
        "iat": int(now.timestamp()),
        "exp": int(expiry_time.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(token: str) -> dict[str, str]:
    """Build common JSON API headers with bearer token auth."""
    return {
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
