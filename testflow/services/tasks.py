"""
Task service: authorization and lifecycle rules over the task store.

Status values may be set in any order by an authorized caller; the only
coupling enforced here is that moving a task to ``closed`` stamps
``closed_at`` the first time, and that stamp is never overwritten or
cleared by later updates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from flask import current_app
from sqlalchemy import select

from .. import db
from ..errors import NotFound, ValidationError
from ..models import Role, Task, TaskNumberSequence, TaskStatus, TaskUrgency, User
from ..policy import Operation, enforce
from . import paginate

logger = logging.getLogger(__name__)

# Fields a caller may change through update_task.
UPDATABLE_FIELDS = (
    "title",
    "description",
    "tester_id",
    "status",
    "urgency",
    "acceptance_criteria",
    "evaluation_criteria",
    "comment",
)


@dataclass(frozen=True)
class TaskFilters:
    """Optional, conjunctive list filters."""

    status: str | None = None
    urgency: str | None = None
    tester_id: str | None = None
    assigned_by: str | None = None


def _require_user(user_id: str, message: str) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFound(message)
    return user


def _require_tester(tester_id: str) -> User:
    tester = db.session.get(User, tester_id)
    if tester is None:
        raise ValidationError("tester_id does not reference an existing user")
    return tester


def get_task(task_id: str) -> Task:
    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFound("Task not found")
    return task


def list_tasks(filters: TaskFilters, page: int, per_page: int) -> tuple[list[Task], int]:
    """Return one page of tasks matching every supplied filter, newest first."""
    stmt = select(Task)
    if filters.status:
        stmt = stmt.where(Task.status == filters.status)
    if filters.urgency:
        stmt = stmt.where(Task.urgency == filters.urgency)
    if filters.tester_id:
        stmt = stmt.where(Task.tester_id == filters.tester_id)
    if filters.assigned_by:
        stmt = stmt.where(Task.assigned_by == filters.assigned_by)
    stmt = stmt.order_by(Task.created_at.desc(), Task.task_number.desc())
    return paginate(stmt, page, per_page)


def create_task(actor_id: str, actor_role: Role | str, fields: dict[str, Any]) -> Task:
    """
    Open a new task on behalf of *actor_id*.

    Admins are refused.  The task starts in ``new`` with the next task
    number; urgency defaults to ``medium``.
    """
    enforce(actor_role, Operation.CREATE_TASK)
    _require_user(actor_id, "User not found")

    tester_id = fields.get("tester_id")
    if tester_id is not None:
        _require_tester(tester_id)

    task = Task(
        task_number=TaskNumberSequence.next_value(),
        title=fields["title"],
        description=fields.get("description"),
        assigned_by=actor_id,
        tester_id=tester_id,
        status=TaskStatus.NEW.value,
        urgency=fields.get("urgency") or TaskUrgency.MEDIUM.value,
        acceptance_criteria=fields.get("acceptance_criteria"),
        evaluation_criteria=fields.get("evaluation_criteria"),
        comment=fields.get("comment"),
    )
    db.session.add(task)
    db.session.commit()
    logger.info("Task #%s created by %s", task.task_number, actor_id)
    return task


def update_task(
    actor_id: str, actor_role: Role | str, task_id: str, fields: dict[str, Any]
) -> Task:
    """
    Apply a partial update to a task.

    Keys absent from *fields* keep their stored value.
    """
    task = get_task(task_id)
    enforce(
        actor_role,
        Operation.UPDATE_TASK,
        is_creator=task.assigned_by == actor_id,
        is_assigned_tester=task.tester_id == actor_id,
        restrict_tester_updates=bool(current_app.config.get("RESTRICT_TESTER_UPDATES", False)),
    )

    if fields.get("tester_id") is not None:
        _require_tester(fields["tester_id"])

    for name in UPDATABLE_FIELDS:
        if name in fields:
            setattr(task, name, fields[name])

    if task.status == TaskStatus.CLOSED.value and task.closed_at is None:
        task.closed_at = datetime.now(timezone.utc)

    db.session.commit()
    logger.info(
        "Task #%s updated by %s (fields=%s, status=%s)",
        task.task_number,
        actor_id,
        sorted(fields),
        task.status,
    )
    return task


def delete_task(actor_id: str, actor_role: Role | str, task_id: str) -> None:
    """Delete a task; only its creator or a manager may do so."""
    task = get_task(task_id)
    enforce(actor_role, Operation.DELETE_TASK, is_creator=task.assigned_by == actor_id)

    task_number = task.task_number
    db.session.delete(task)
    db.session.commit()
    logger.info("Task #%s deleted by %s", task_number, actor_id)
