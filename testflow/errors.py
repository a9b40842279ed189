"""
Error taxonomy and JSON error handlers.

Services raise the exceptions below; ``register_error_handlers`` renders
each one as a ``{"error": "..."}`` envelope with the matching status code,
so a forbidden request is always distinguishable from an unauthenticated
or not-found one.
"""

from __future__ import annotations

import logging

from flask import Flask, Response, jsonify
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from . import db

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for errors that map onto an HTTP status code."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class ValidationError(APIError):
    """Malformed or missing input fields."""

    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(APIError):
    """Missing, invalid or expired credentials."""

    status_code = 401
    default_message = "Authentication required"


class InvalidCredentials(Unauthenticated):
    """Login rejected; the message never says which field was wrong."""

    default_message = "Invalid username or password"


class Forbidden(APIError):
    """Authenticated, but denied by the authorization policy."""

    status_code = 403
    default_message = "Forbidden"


class NotFound(APIError):
    """The referenced resource does not exist."""

    status_code = 404
    default_message = "Resource not found"


class Conflict(APIError):
    """A unique constraint would be violated."""

    status_code = 409
    default_message = "Resource already exists"


class Internal(APIError):
    """Storage or unexpected failure."""


def _json_error(message: str, status_code: int) -> tuple[Response, int]:
    return jsonify({"error": message}), status_code


def register_error_handlers(app: Flask) -> None:
    """Attach JSON error handlers for the taxonomy, storage errors and HTTP errors."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError) -> tuple[Response, int]:
        return _json_error(error.message, error.status_code)

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(error: IntegrityError) -> tuple[Response, int]:
        db.session.rollback()
        logger.warning("Integrity error: %s", error.orig)
        return _json_error(Conflict.default_message, Conflict.status_code)

    @app.errorhandler(SQLAlchemyError)
    def handle_storage_error(error: SQLAlchemyError) -> tuple[Response, int]:
        db.session.rollback()
        logger.exception("Storage error: %s", error)
        return _json_error(Internal.default_message, Internal.status_code)

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> tuple[Response, int]:
        return _json_error(error.description or error.name, error.code or 500)

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> tuple[Response, int]:
        logger.exception("Internal server error: %s", error)
        return _json_error(Internal.default_message, Internal.status_code)
