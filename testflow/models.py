"""
Database Models for TestFlow.

Defines the SQLAlchemy ORM models behind the credential store (``User``)
and the task store (``Task``), the enumerations for roles, task status and
urgency, and the sequence table that hands out task numbers.

Identifiers are opaque UUID strings.  Deleting a user removes the tasks
they created and clears the tester reference on tasks they were only
assigned to test; both rules are declared on the foreign keys and mirrored
by the ORM relationships so they hold on SQLite as well as PostgreSQL.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from werkzeug.security import check_password_hash, generate_password_hash

from . import db


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _to_utc_iso(value: datetime | None) -> str | None:
    """
    Convert a datetime to a UTC ISO-8601 string.

    SQLite does not store timezone information, so values read back may be
    naive even though they were written in UTC.  Naive values are assumed
    UTC; aware values are converted.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat()


class Role(str, Enum):
    """
    Closed set of user roles.

    Inherits from ``str`` so members compare equal to the raw strings
    stored in the database and carried in token claims.
    """

    ADMIN = "admin"
    MANAGER = "manager"
    TESTER = "tester"
    DEVELOPER = "developer"


class TaskStatus(str, Enum):
    """Task lifecycle statuses, declared in lifecycle order."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    TESTING = "testing"
    DONE = "done"
    CLOSED = "closed"


class TaskUrgency(str, Enum):
    """Priority classification of a task, independent of its status."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class User(db.Model):
    """
    User account with credentials and a role.

    Passwords are never stored in plain text; ``to_dict`` omits the hash
    so its output can be returned directly in API responses.

    Attributes:
        id: Opaque UUID primary key.
        username: Unique login name (3-50 characters).
        email: Unique email address.
        password_hash: Werkzeug-generated hash of the password.
        full_name: Display name used in task and statistics payloads.
        role: One of ``Role``.
        is_active: Inactive users cannot log in.
        created_at: Creation timestamp (UTC).
        updated_at: Last modification timestamp (UTC, auto-updated).
    """

    __tablename__ = "users"

    __table_args__ = (
        db.CheckConstraint("length(username) <= 50", name="ck_users_username_len"),
        db.CheckConstraint("length(email) <= 255", name="ck_users_email_len"),
    )

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    username: str = db.Column(db.String(50), unique=True, nullable=False, index=True)
    email: str = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash: str = db.Column(db.String(256), nullable=False)
    full_name: str = db.Column(db.String(100), nullable=False)
    role: str = db.Column(
        db.Enum(*[r.value for r in Role], name="user_role"),
        nullable=False,
        default=Role.DEVELOPER.value,
        index=True,
    )
    is_active: bool = db.Column(db.Boolean, nullable=False, default=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    created_tasks = db.relationship(
        "Task",
        foreign_keys="Task.assigned_by",
        back_populates="creator",
        cascade="all, delete-orphan",
    )
    # No delete cascade: removing the tester nulls Task.tester_id instead.
    tested_tasks = db.relationship(
        "Task",
        foreign_keys="Task.tester_id",
        back_populates="tester",
    )

    def set_password(self, password: str) -> None:
        """Hash and store a plain-text password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Verify a plain-text password against the stored hash."""
        return check_password_hash(self.password_hash, password)

    def to_dict(self) -> dict[str, Any]:
        """Return a user-safe dictionary representation (no password hash)."""
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "full_name": self.full_name,
            "role": self.role,
            "is_active": self.is_active,
            "created_at": _to_utc_iso(self.created_at),
            "updated_at": _to_utc_iso(self.updated_at),
        }

    def __repr__(self) -> str:
        return f"<User {self.username} ({self.role})>"


class TaskNumberSequence(db.Model):
    """
    Store-level sequence for task numbers.

    Each new task inserts one row and takes its autoincrement key as the
    task number, so concurrent creations always receive distinct and
    increasing values.  Rows are never deleted, which keeps numbers from
    being reused after a task is removed.
    """

    __tablename__ = "task_number_sequence"
    __table_args__ = {"sqlite_autoincrement": True}

    id: int = db.Column(db.Integer, primary_key=True, autoincrement=True)

    @classmethod
    def next_value(cls) -> int:
        """Allocate and return the next task number inside the current session."""
        row = cls()
        db.session.add(row)
        db.session.flush()
        return row.id


class Task(db.Model):
    """
    Task opened by a non-admin user and optionally assigned to a tester.

    Attributes:
        id: Opaque UUID primary key.
        task_number: Human-facing sequential number, unique and monotonic.
        title: Short summary (max 255 characters).
        description: Optional details.
        assigned_by: Creator of the task.
        tester_id: Optional assigned tester.
        status: Current lifecycle status (see ``TaskStatus``).
        urgency: Priority (see ``TaskUrgency``).
        acceptance_criteria: Free text.
        evaluation_criteria: Free text.
        comment: Free text.
        created_at: Creation timestamp (UTC).
        closed_at: Stamped the first time the task is closed; never
            cleared or overwritten afterwards.
    """

    __tablename__ = "tasks"

    id: str = db.Column(db.String(36), primary_key=True, default=_new_id)
    task_number: int = db.Column(db.Integer, unique=True, nullable=False, index=True)
    title: str = db.Column(db.String(255), nullable=False)
    description: str | None = db.Column(db.Text, nullable=True)
    assigned_by: str = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tester_id: str | None = db.Column(
        db.String(36),
        db.ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    status: str = db.Column(
        db.Enum(*[s.value for s in TaskStatus], name="task_status"),
        nullable=False,
        default=TaskStatus.NEW.value,
        index=True,
    )
    urgency: str = db.Column(
        db.Enum(*[u.value for u in TaskUrgency], name="task_urgency"),
        nullable=False,
        default=TaskUrgency.MEDIUM.value,
        index=True,
    )
    acceptance_criteria: str | None = db.Column(db.Text, nullable=True)
    evaluation_criteria: str | None = db.Column(db.Text, nullable=True)
    comment: str | None = db.Column(db.Text, nullable=True)
    created_at: datetime = db.Column(
        db.DateTime(timezone=True), nullable=False, default=_utcnow
    )
    closed_at: datetime | None = db.Column(db.DateTime(timezone=True), nullable=True)

    creator = db.relationship(
        "User", foreign_keys=[assigned_by], back_populates="created_tasks"
    )
    tester = db.relationship(
        "User", foreign_keys=[tester_id], back_populates="tested_tasks"
    )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialise the task to a JSON-safe dictionary.

        Includes the display names of the creator and tester so clients do
        not need a second round-trip to render them.
        """
        return {
            "id": self.id,
            "task_number": self.task_number,
            "title": self.title,
            "description": self.description,
            "assigned_by": self.assigned_by,
            "assigned_by_name": self.creator.full_name if self.creator else None,
            "tester_id": self.tester_id,
            "tester_name": self.tester.full_name if self.tester else None,
            "status": self.status,
            "urgency": self.urgency,
            "acceptance_criteria": self.acceptance_criteria,
            "evaluation_criteria": self.evaluation_criteria,
            "comment": self.comment,
            "created_at": _to_utc_iso(self.created_at),
            "closed_at": _to_utc_iso(self.closed_at),
        }

    def __repr__(self) -> str:
        return f"<Task #{self.task_number}: {self.title}>"
