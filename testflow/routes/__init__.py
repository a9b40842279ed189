"""
Routes package for TestFlow.

Blueprints:
- health: liveness probe
- auth: login
- users: user administration and the caller's own profile
- tasks: task CRUD
- statistics: employee rollups

The helpers below are shared by the blueprints for request parsing.
"""

from __future__ import annotations

import uuid
from typing import Any

from flask import current_app, request

from ..errors import ValidationError


def get_json_body() -> dict[str, Any]:
    """Return the request body as a dict, or raise ``ValidationError``."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _parse_int_arg(name: str, default: int) -> int:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValidationError(f"'{name}' must be an integer") from exc


def pagination_args() -> tuple[int, int]:
    """
    Read ``page`` and ``per_page`` from the query string.

    ``page`` is at least 1; ``per_page`` defaults to ``TASKS_PER_PAGE`` and
    is clamped to ``[1, MAX_PER_PAGE]``.
    """
    default_per_page = int(current_app.config.get("TASKS_PER_PAGE", 20))
    max_per_page = int(current_app.config.get("MAX_PER_PAGE", 100))

    page = max(1, _parse_int_arg("page", 1))
    per_page = min(max(1, _parse_int_arg("per_page", default_per_page)), max_per_page)
    return page, per_page


def parse_uuid_arg(name: str) -> str | None:
    """Read an optional UUID query parameter, normalised to its string form."""
    raw = request.args.get(name)
    if not raw:
        return None
    try:
        return str(uuid.UUID(raw))
    except ValueError as exc:
        raise ValidationError(f"'{name}' must be a valid UUID") from exc


def parse_enum_arg(name: str, allowed: list[str]) -> str | None:
    """Read an optional query parameter that must be one of *allowed*."""
    raw = request.args.get(name)
    if not raw:
        return None
    if raw not in allowed:
        raise ValidationError(f"Invalid {name}. Must be one of: {allowed}")
    return raw


def page_payload(key: str, items: list[dict[str, Any]], total: int, page: int, per_page: int) -> dict[str, Any]:
    return {
        key: items,
        "count": len(items),
        "total": total,
        "page": page,
        "per_page": per_page,
    }
