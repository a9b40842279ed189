"""
TestFlow Flask Application Factory.

Provides the ``create_app`` factory function that assembles the task and
test-management API.  The factory pattern allows multiple application
instances with different configurations (development, testing, production)
to coexist in the same process.

The service registers these blueprints, all mounted under ``/api``:
  * **health_bp**     -- liveness probe.
  * **auth_bp**       -- login / token issuance.
  * **users_bp**      -- user administration and the caller's own profile.
  * **tasks_bp**      -- task CRUD and lifecycle.
  * **statistics_bp** -- per-employee rollups.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from flask import Flask, request
from flask_sqlalchemy import SQLAlchemy

from config import get_config, load_jwt_secret

db = SQLAlchemy()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _ensure_sqlite_db_parent_exists(database_uri: str) -> None:
    """Create parent directories for file-based SQLite URIs when missing."""
    sqlite_prefix = "sqlite:///"
    if not database_uri.startswith(sqlite_prefix):
        return

    sqlite_path = database_uri[len(sqlite_prefix) :].split("?", 1)[0]
    if sqlite_path == ":memory:":
        return

    db_parent = Path(sqlite_path).parent
    db_parent.mkdir(parents=True, exist_ok=True)


def create_app(config_name: str | None = None) -> Flask:
    """
    Create and configure the TestFlow application.

    Loads the configuration class, freezes the token settings, initialises
    SQLAlchemy, registers blueprints and error handlers, creates the schema
    and provisions the bootstrap administrator when no users exist.

    Args:
        config_name: Optional configuration environment name
            (``"development"``, ``"testing"``, ``"production"``).  When *None*,
            the value is read from the ``FLASK_ENV`` environment variable.

    Returns:
        A fully configured Flask application instance.
    """
    app = Flask(__name__, instance_relative_config=True)
    config_class = get_config(config_name)
    app.config.from_object(config_class)
    app.config["JWT_SECRET_KEY"] = load_jwt_secret(testing=bool(app.config.get("TESTING")))

    logger.info("Creating TestFlow app with config: %s", config_class.__name__)

    from .jwt import TokenSettings

    # Read-only for the lifetime of the process.
    app.extensions["token_settings"] = TokenSettings.from_config(app.config)

    os.makedirs(app.instance_path, exist_ok=True)
    _ensure_sqlite_db_parent_exists(app.config.get("SQLALCHEMY_DATABASE_URI", ""))

    db.init_app(app)

    from .errors import register_error_handlers
    from .routes.auth import auth_bp
    from .routes.health import health_bp
    from .routes.statistics import statistics_bp
    from .routes.tasks import tasks_bp
    from .routes.users import users_bp

    app.register_blueprint(health_bp, url_prefix="/api")
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(users_bp, url_prefix="/api")
    app.register_blueprint(tasks_bp, url_prefix="/api")
    app.register_blueprint(statistics_bp, url_prefix="/api")
    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(app.config.get("CORS_ALLOWED_ORIGINS", []))
        if origin and ("*" in allowed_origins or origin in allowed_origins):
            response.headers["Access-Control-Allow-Origin"] = "*" if "*" in allowed_origins else origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    from .services.accounts import ensure_default_admin

    with app.app_context():
        db.create_all()
        logger.info("TestFlow database tables created")
        ensure_default_admin()

    return app
