"""
Accounts: login, bootstrap administrator and user administration.

Authorization for user administration is enforced by the route layer via
``policy.enforce(..., Operation.MANAGE_USERS)`` before any of the
mutating functions here are reached.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import current_app
from sqlalchemy import func, or_, select
from werkzeug.security import check_password_hash, generate_password_hash

from .. import db
from ..errors import Conflict, InvalidCredentials, NotFound, ValidationError
from ..jwt import create_token
from ..models import Role, User
from . import paginate

logger = logging.getLogger(__name__)

DUPLICATE_USER_MESSAGE = "Username or email already exists"

# Every login attempt performs exactly one hash check, including unknown usernames.
_DUMMY_PASSWORD_HASH = generate_password_hash("testflow-unknown-user")


def login(username: str, password: str) -> tuple[str, User]:
    """
    Authenticate *username* / *password* and issue a bearer token.

    An unknown username, an inactive account and a wrong password all fail
    with the same ``InvalidCredentials`` error so callers cannot tell which
    part was wrong.

    Returns:
        ``(token, user)`` on success.
    """
    user = db.session.scalar(select(User).where(User.username == username))

    if user is None:
        check_password_hash(_DUMMY_PASSWORD_HASH, password)
        password_ok = False
    else:
        password_ok = user.check_password(password)

    if not password_ok or not user.is_active:
        logger.warning("Failed login attempt for username=%s", username)
        raise InvalidCredentials()

    settings = current_app.extensions["token_settings"]
    token = create_token(
        user_id=user.id,
        username=user.username,
        role=user.role,
        secret=settings.secret,
        expiry_hours=settings.expiry_hours,
    )
    logger.info("User %s logged in (role=%s)", user.username, user.role)
    return token, user


def ensure_default_admin() -> User | None:
    """
    Provision the bootstrap administrator when the users table is empty.

    Returns the created user, or ``None`` when any user already exists.
    The deployer is responsible for rotating the default password.
    """
    existing = db.session.scalar(select(func.count()).select_from(User))
    if existing:
        return None

    config = current_app.config
    admin = User(
        username=config["DEFAULT_ADMIN_USERNAME"],
        email=config["DEFAULT_ADMIN_EMAIL"],
        full_name=config["DEFAULT_ADMIN_FULL_NAME"],
        role=Role.ADMIN.value,
        is_active=True,
    )
    admin.set_password(config["DEFAULT_ADMIN_PASSWORD"])
    db.session.add(admin)
    db.session.commit()
    logger.warning(
        "No users found; created default admin username=%r. Change its password immediately.",
        admin.username,
    )
    return admin


def get_user(user_id: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def list_users(page: int, per_page: int) -> tuple[list[User], int]:
    stmt = select(User).order_by(User.created_at.desc(), User.username)
    return paginate(stmt, page, per_page)


def _ensure_unique(username: str | None, email: str | None, exclude_id: str | None = None) -> None:
    clauses = []
    if username is not None:
        clauses.append(User.username == username)
    if email is not None:
        clauses.append(User.email == email)
    if not clauses:
        return

    stmt = select(User.id).where(or_(*clauses))
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if db.session.scalar(stmt.limit(1)) is not None:
        raise Conflict(DUPLICATE_USER_MESSAGE)


def create_user(
    *,
    username: str,
    email: str,
    password: str,
    full_name: str,
    role: str,
    is_active: bool = True,
) -> User:
    """Create a user; raises ``Conflict`` when the username or email is taken."""
    _ensure_unique(username, email)

    user = User(
        username=username,
        email=email,
        full_name=full_name,
        role=Role(role).value,
        is_active=is_active,
    )
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    logger.info("Created user %s (role=%s)", user.username, user.role)
    return user


def update_user(user_id: str, fields: dict[str, Any]) -> User:
    """
    Apply a partial update to a user.

    Only keys present in *fields* change.  A ``password`` key is re-hashed;
    ``role`` and ``is_active`` may be changed here and only here.
    """
    user = get_user(user_id)

    _ensure_unique(fields.get("username"), fields.get("email"), exclude_id=user.id)

    if "username" in fields:
        user.username = fields["username"]
    if "email" in fields:
        user.email = fields["email"]
    if "full_name" in fields:
        user.full_name = fields["full_name"]
    if "role" in fields:
        user.role = Role(fields["role"]).value
    if "is_active" in fields:
        user.is_active = bool(fields["is_active"])
    if "password" in fields:
        user.set_password(fields["password"])

    db.session.commit()
    logger.info("Updated user %s (fields=%s)", user.username, sorted(fields))
    return user


def delete_user(user_id: str, actor_id: str | None = None) -> None:
    """
    Delete a user.

    *actor_id* is the caller; nobody may delete their own account.

    Tasks the user created are removed with it; tasks where the user was
    only the tester keep existing with their tester reference cleared.
    """
    if actor_id is not None and actor_id == user_id:
        raise ValidationError("Cannot delete your own account")
    user = get_user(user_id)
    username = user.username
    db.session.delete(user)
    db.session.commit()
    logger.info("Deleted user %s", username)
