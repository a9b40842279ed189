"""
User administration endpoints.

Endpoints:
    GET    /api/users/me    - The caller's own profile (any role)
    GET    /api/users       - List users (admin)
    POST   /api/users       - Create a user (admin)
    GET    /api/users/<id>  - Retrieve a user (admin)
    PUT    /api/users/<id>  - Partially update a user (admin)
    DELETE /api/users/<id>  - Delete a user (admin)
"""

from __future__ import annotations

import logging
import re
from typing import Any

from flask import Blueprint, Response, g, jsonify

from ..auth import require_auth
from ..errors import ValidationError
from ..models import Role
from ..policy import Operation, enforce
from ..services import accounts
from . import get_json_body, page_payload, pagination_args

logger = logging.getLogger(__name__)

users_bp = Blueprint("users_api", __name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USER_FIELDS = ("username", "email", "password", "full_name", "role", "is_active")


def validate_user_data(data: dict[str, Any], *, creating: bool) -> dict[str, Any]:
    """
    Validate a user payload and return the recognised fields.

    On create every field except ``is_active`` is required; on update any
    subset may be supplied, but supplied fields follow the same rules.

    Raises:
        ValidationError: Describing the first invalid field.
    """
    if creating:
        for field in ("username", "email", "password", "full_name", "role"):
            value = data.get(field)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"'{field}' is required")

    fields = {name: data[name] for name in USER_FIELDS if name in data}

    for name in ("username", "email", "password", "full_name", "role"):
        if name in fields and not isinstance(fields[name], str):
            raise ValidationError(f"'{name}' must be a string")

    if "username" in fields:
        fields["username"] = fields["username"].strip()
        if not 3 <= len(fields["username"]) <= 50:
            raise ValidationError("Username must be 3-50 characters")
    if "email" in fields:
        fields["email"] = fields["email"].strip()
        if len(fields["email"]) > 255 or not EMAIL_PATTERN.match(fields["email"]):
            raise ValidationError("Invalid email format")
    if "password" in fields and len(fields["password"]) < 6:
        raise ValidationError("Password must be at least 6 characters")
    if "full_name" in fields:
        fields["full_name"] = fields["full_name"].strip()
        if not 1 <= len(fields["full_name"]) <= 100:
            raise ValidationError("Full name is required")
    if "role" in fields:
        valid_roles = [r.value for r in Role]
        if fields["role"] not in valid_roles:
            raise ValidationError(f"Invalid role. Must be one of: {valid_roles}")
    if "is_active" in fields and not isinstance(fields["is_active"], bool):
        raise ValidationError("'is_active' must be a boolean")

    return fields


@users_bp.route("/users/me", methods=["GET"])
@require_auth
def get_me() -> tuple[Response, int]:
    enforce(g.role, Operation.VIEW_OWN_PROFILE)
    user = accounts.get_user(g.user_id)
    return jsonify(user.to_dict()), 200


@users_bp.route("/users", methods=["GET"])
@require_auth
def list_users() -> tuple[Response, int]:
    enforce(g.role, Operation.MANAGE_USERS)
    page, per_page = pagination_args()
    users, total = accounts.list_users(page, per_page)
    return jsonify(page_payload("users", [u.to_dict() for u in users], total, page, per_page)), 200


@users_bp.route("/users", methods=["POST"])
@require_auth
def create_user() -> tuple[Response, int]:
    enforce(g.role, Operation.MANAGE_USERS)
    fields = validate_user_data(get_json_body(), creating=True)
    user = accounts.create_user(**fields)
    return jsonify(user.to_dict()), 201


@users_bp.route("/users/<user_id>", methods=["GET"])
@require_auth
def get_user(user_id: str) -> tuple[Response, int]:
    enforce(g.role, Operation.MANAGE_USERS)
    return jsonify(accounts.get_user(user_id).to_dict()), 200


@users_bp.route("/users/<user_id>", methods=["PUT"])
@require_auth
def update_user(user_id: str) -> tuple[Response, int]:
    enforce(g.role, Operation.MANAGE_USERS)
    fields = validate_user_data(get_json_body(), creating=False)
    user = accounts.update_user(user_id, fields)
    return jsonify(user.to_dict()), 200


@users_bp.route("/users/<user_id>", methods=["DELETE"])
@require_auth
def delete_user(user_id: str) -> tuple[str, int]:
    enforce(g.role, Operation.MANAGE_USERS)
    accounts.delete_user(user_id, actor_id=g.user_id)
    return "", 204
