"""
Configuration Classes for the TestFlow backend.

Centralises all environment-dependent settings (database URI, JWT signing
secret, token lifetime, bootstrap administrator, pagination limits) into a
hierarchy of configuration classes.  The base ``Config`` class defines
development defaults, while subclasses override only what differs per
environment.  Values are read once at process start; there is no hot reload.
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent


def _env_flag(name: str, default: bool = False) -> bool:
    """Interpret an environment variable as a boolean switch."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _load_secret(raw_env_var: str, path_env_var: str) -> str:
    """
    Load the JWT signing secret from a raw env variable or a file path.

    The raw variable takes precedence over the path variable so
    orchestrators can inject secrets directly without mounting files.
    """
    raw_secret = os.environ.get(raw_env_var, "").strip()
    if raw_secret:
        return raw_secret

    secret_path = os.environ.get(path_env_var, "").strip()
    if secret_path:
        try:
            return Path(secret_path).read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise RuntimeError(
                f"Unable to read JWT secret file at '{secret_path}' from {path_env_var}."
            ) from exc

    raise RuntimeError(
        f"Missing JWT secret configuration: set {raw_env_var} or {path_env_var}."
    )


def _has_secret_source(raw_env_var: str, path_env_var: str) -> bool:
    """Return True when at least one secret source variable is configured."""
    return bool(
        os.environ.get(raw_env_var, "").strip()
        or os.environ.get(path_env_var, "").strip()
    )


def load_jwt_secret(*, testing: bool) -> str:
    """
    Resolve the JWT signing secret for the selected environment.

    In testing mode, TEST_* variables are used when configured; otherwise
    the standard JWT_* variables apply.
    """
    if testing and _has_secret_source("TEST_JWT_SECRET_KEY", "TEST_JWT_SECRET_KEY_PATH"):
        return _load_secret("TEST_JWT_SECRET_KEY", "TEST_JWT_SECRET_KEY_PATH")
    return _load_secret("JWT_SECRET_KEY", "JWT_SECRET_KEY_PATH")


class Config:
    """
    Base configuration with development-safe defaults.

    Attributes:
        SECRET_KEY: Flask session signing key.
        SQLALCHEMY_DATABASE_URI: Database connection string (default: local
            SQLite file).
        JWT_EXPIRY_HOURS: Lifetime of an issued bearer token.
        JWT_CLOCK_SKEW_SECONDS: Allowed clock drift when validating
            ``exp`` / ``iat`` claims.
        DEFAULT_ADMIN_*: Credentials of the administrator provisioned on
            first boot when the user table is empty.
        TASKS_PER_PAGE: Default page size for list endpoints.
        MAX_PER_PAGE: Upper bound for a client-supplied page size.
        RESTRICT_TESTER_UPDATES: When enabled, testers may only update
            tasks they created or are assigned to.
        CORS_ALLOWED_ORIGINS: Browser origins that receive CORS headers.
    """

    SECRET_KEY: str = os.environ.get(
        "SECRET_KEY", "testflow-dev-secret-change-in-production"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'testflow.db'}",
    )

    JWT_EXPIRY_HOURS: int = int(os.environ.get("JWT_EXPIRY_HOURS", "24"))
    JWT_CLOCK_SKEW_SECONDS: int = int(os.environ.get("JWT_CLOCK_SKEW_SECONDS", "30"))

    # Used only when the users table is empty; rotate after first login.
    DEFAULT_ADMIN_USERNAME: str = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD: str = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")
    DEFAULT_ADMIN_EMAIL: str = os.environ.get("DEFAULT_ADMIN_EMAIL", "admin@testflow.local")
    DEFAULT_ADMIN_FULL_NAME: str = os.environ.get(
        "DEFAULT_ADMIN_FULL_NAME", "System Administrator"
    )

    TASKS_PER_PAGE: int = int(os.environ.get("TASKS_PER_PAGE", "20"))
    MAX_PER_PAGE: int = int(os.environ.get("MAX_PER_PAGE", "100"))

    RESTRICT_TESTER_UPDATES: bool = _env_flag("RESTRICT_TESTER_UPDATES")

    # Comma-separated origins allowed to call the API from a browser; "*" allows any.
    CORS_ALLOWED_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "*").split(",")
        if origin.strip()
    ]


class DevelopmentConfig(Config):
    """Development environment configuration."""

    DEBUG: bool = True
    TESTING: bool = False


class TestingConfig(Config):
    """
    Testing environment configuration.

    Uses an isolated SQLite database so that tests do not pollute
    development data.  ``check_same_thread=False`` lets the Flask test
    client share the connection across threads.
    """

    DEBUG: bool = True
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = os.environ.get(
        "TEST_DATABASE_URL",
        f"sqlite:///{BASE_DIR / 'instance' / 'test_testflow.db'}?check_same_thread=False",
    )
    SQLALCHEMY_ENGINE_OPTIONS: dict = {"pool_pre_ping": True}
    JWT_EXPIRY_HOURS: int = int(os.environ.get("TEST_JWT_EXPIRY_HOURS", "1"))


class ProductionConfig(Config):
    """
    Production environment configuration.

    All secrets and URIs should be supplied exclusively through
    environment variables in production.
    """

    DEBUG: bool = False
    TESTING: bool = False


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}


def get_config(env: str | None = None) -> type[Config]:
    """
    Look up and return the configuration class for the given environment.

    Args:
        env: Environment name (``"development"``, ``"testing"``,
            ``"production"``).  When ``None``, falls back to the
            ``FLASK_ENV`` environment variable, defaulting to
            ``"development"``.

    Returns:
        The configuration class (not an instance) for the environment.
    """
    if env is None:
        env = os.environ.get("FLASK_ENV", "development")
    return config.get(env, config["default"])
