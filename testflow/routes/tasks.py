"""
REST API Endpoints for tasks.

Every endpoint requires a bearer token.  Role checks and lifecycle rules
live in ``testflow.services.tasks``; this module parses and validates
HTTP input.

Endpoints:
    GET    /api/tasks        - List tasks (filters: status, urgency,
                               tester_id, assigned_by, page, per_page)
    POST   /api/tasks        - Create a task (non-admin roles)
    GET    /api/tasks/<id>   - Retrieve a task
    PUT    /api/tasks/<id>   - Partially update a task
    DELETE /api/tasks/<id>   - Delete a task (creator or manager)
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, Response, g, jsonify

from ..auth import require_auth
from ..errors import ValidationError
from ..models import TaskStatus, TaskUrgency
from ..policy import Operation, enforce
from ..services import tasks as task_service
from . import get_json_body, page_payload, pagination_args, parse_enum_arg, parse_uuid_arg

logger = logging.getLogger(__name__)

tasks_bp = Blueprint("tasks_api", __name__)

TEXT_FIELDS = ("description", "acceptance_criteria", "evaluation_criteria", "comment")


def validate_task_data(
    data: dict[str, Any], required_fields: list[str] | None = None
) -> tuple[bool, str | None]:
    """
    Validate an incoming task payload.

    Checks required fields, title length, enum membership for status and
    urgency, and the types of the optional text fields and ``tester_id``.

    Returns:
        ``(is_valid, error_message)``; the message is ``None`` when valid.
    """
    if required_fields:
        for field in required_fields:
            value = data.get(field)
            if not value or (isinstance(value, str) and not value.strip()):
                return False, f"'{field}' is required"

    if "title" in data:
        title = data["title"]
        if not isinstance(title, str) or not title.strip():
            return False, "Title must not be empty"
        if len(title) > 255:
            return False, "Title must be 255 characters or less"

    if "status" in data:
        valid_statuses = [s.value for s in TaskStatus]
        if data["status"] not in valid_statuses:
            return False, f"Invalid status. Must be one of: {valid_statuses}"

    if "urgency" in data:
        valid_urgencies = [u.value for u in TaskUrgency]
        if data["urgency"] not in valid_urgencies:
            return False, f"Invalid urgency. Must be one of: {valid_urgencies}"

    if "tester_id" in data and data["tester_id"] is not None:
        if not isinstance(data["tester_id"], str) or not data["tester_id"].strip():
            return False, "tester_id must be a user id or null"

    for field in TEXT_FIELDS:
        if field in data and data[field] is not None and not isinstance(data[field], str):
            return False, f"'{field}' must be a string or null"

    return True, None


def _task_fields(data: dict[str, Any], allowed: tuple[str, ...]) -> dict[str, Any]:
    fields = {name: data[name] for name in allowed if name in data}
    if isinstance(fields.get("title"), str):
        fields["title"] = fields["title"].strip()
    return fields


@tasks_bp.route("/tasks", methods=["GET"])
@require_auth
def get_tasks() -> tuple[Response, int]:
    """List tasks with optional conjunctive filters and pagination."""
    enforce(g.role, Operation.VIEW_TASKS)

    filters = task_service.TaskFilters(
        status=parse_enum_arg("status", [s.value for s in TaskStatus]),
        urgency=parse_enum_arg("urgency", [u.value for u in TaskUrgency]),
        tester_id=parse_uuid_arg("tester_id"),
        assigned_by=parse_uuid_arg("assigned_by"),
    )
    page, per_page = pagination_args()
    logger.info("GET /api/tasks by user_id=%s filters=%s", g.user_id, filters)

    tasks, total = task_service.list_tasks(filters, page, per_page)
    return jsonify(page_payload("tasks", [t.to_dict() for t in tasks], total, page, per_page)), 200


@tasks_bp.route("/tasks/<task_id>", methods=["GET"])
@require_auth
def get_task(task_id: str) -> tuple[Response, int]:
    enforce(g.role, Operation.VIEW_TASKS)
    return jsonify(task_service.get_task(task_id).to_dict()), 200


@tasks_bp.route("/tasks", methods=["POST"])
@require_auth
def create_task() -> tuple[Response, int]:
    """
    Create a task owned by the caller.

    Expects at least ``title``.  Optional: ``description``, ``tester_id``,
    ``urgency``, ``acceptance_criteria``, ``evaluation_criteria``,
    ``comment``.  Status always starts at ``new``.
    """
    # Admins are refused before the body is looked at.
    enforce(g.role, Operation.CREATE_TASK)

    data = get_json_body()
    is_valid, error = validate_task_data(data, required_fields=["title"])
    if not is_valid:
        raise ValidationError(error)

    fields = _task_fields(data, ("title", "tester_id", "urgency") + TEXT_FIELDS)
    task = task_service.create_task(g.user_id, g.role, fields)
    return jsonify(task.to_dict()), 201


@tasks_bp.route("/tasks/<task_id>", methods=["PUT"])
@require_auth
def update_task(task_id: str) -> tuple[Response, int]:
    """Partially update a task; absent fields keep their stored value."""
    data = get_json_body()
    is_valid, error = validate_task_data(data)
    if not is_valid:
        raise ValidationError(error)

    fields = _task_fields(data, task_service.UPDATABLE_FIELDS)
    task = task_service.update_task(g.user_id, g.role, task_id, fields)
    return jsonify(task.to_dict()), 200


@tasks_bp.route("/tasks/<task_id>", methods=["DELETE"])
@require_auth
def delete_task(task_id: str) -> tuple[str, int]:
    task_service.delete_task(g.user_id, g.role, task_id)
    return "", 204
