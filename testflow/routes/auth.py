"""
Authentication endpoint.

Endpoints:
    POST /api/auth/login -- exchange username/password for a bearer token.
"""

from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, jsonify

from ..errors import ValidationError
from ..services import accounts
from . import get_json_body

auth_bp = Blueprint("auth_api", __name__)


def _validate_required_fields(data: dict[str, Any], required_fields: list[str]) -> None:
    """Raise ``ValidationError`` for the first missing or blank string field."""
    for field in required_fields:
        value = data.get(field)
        if not isinstance(value, str) or not value.strip():
            raise ValidationError(f"'{field}' is required")


@auth_bp.route("/login", methods=["POST"])
def login() -> tuple[Response, int]:
    """
    Authenticate a user and issue a JWT.

    Returns:
        200 with ``token``, ``token_type`` and ``user`` on success.
        400 if required fields are missing.
        401 if the credentials are wrong or the account is inactive.
    """
    data = get_json_body()
    _validate_required_fields(data, ["username", "password"])

    token, user = accounts.login(data["username"].strip(), data["password"])
    return jsonify({"token": token, "token_type": "Bearer", "user": user.to_dict()}), 200
