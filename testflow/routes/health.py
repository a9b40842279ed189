"""Health-check endpoint."""

from __future__ import annotations

import os

from flask import Blueprint, Response, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health_check() -> tuple[Response, int]:
    """
    Return service health status.

    Public endpoint intended for load-balancer and orchestrator probes.
    """
    return (
        jsonify(
            {
                "status": "healthy",
                "service": "testflow",
                "environment": os.getenv("ENVIRONMENT", "unknown"),
            }
        ),
        200,
    )
