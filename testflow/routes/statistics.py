"""
Statistics endpoint.

Endpoints:
    GET /api/statistics/employees -- per-employee task counts (admin, manager).
"""

from __future__ import annotations

from flask import Blueprint, Response, g, jsonify

from ..auth import require_auth
from ..services.statistics import employee_statistics

statistics_bp = Blueprint("statistics_api", __name__)


@statistics_bp.route("/statistics/employees", methods=["GET"])
@require_auth
def get_employee_statistics() -> tuple[Response, int]:
    rows = employee_statistics(g.role)
    return jsonify({"employees": rows, "count": len(rows)}), 200
