"""Per-employee task rollups for managers and admins."""

from __future__ import annotations

from typing import Any

from sqlalchemy import case, func, select

from .. import db
from ..models import Role, Task, TaskStatus, User
from ..policy import Operation, enforce

COMPLETED_STATUSES = (TaskStatus.DONE.value, TaskStatus.CLOSED.value)
IN_PROGRESS_STATUSES = (TaskStatus.IN_PROGRESS.value, TaskStatus.TESTING.value)


def employee_statistics(actor_role: Role | str) -> list[dict[str, Any]]:
    """
    Count tasks per employee, by the tester they are assigned to.

    Every non-admin user gets a row, including those with no tasks.
    ``done`` and ``closed`` count as completed; ``in_progress`` and
    ``testing`` count as in progress.
    """
    enforce(actor_role, Operation.VIEW_STATISTICS)

    completed = func.sum(case((Task.status.in_(COMPLETED_STATUSES), 1), else_=0))
    in_progress = func.sum(case((Task.status.in_(IN_PROGRESS_STATUSES), 1), else_=0))

    stmt = (
        select(
            User.id,
            User.full_name,
            func.count(Task.id).label("total_tasks"),
            func.coalesce(completed, 0).label("completed_tasks"),
            func.coalesce(in_progress, 0).label("in_progress_tasks"),
        )
        .select_from(User)
        .outerjoin(Task, Task.tester_id == User.id)
        .where(User.role != Role.ADMIN.value)
        .group_by(User.id, User.full_name)
        .order_by(User.full_name, User.id)
    )

    return [
        {
            "user_id": row.id,
            "full_name": row.full_name,
            "total_tasks": int(row.total_tasks),
            "completed_tasks": int(row.completed_tasks),
            "in_progress_tasks": int(row.in_progress_tasks),
        }
        for row in db.session.execute(stmt)
    ]
