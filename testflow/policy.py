"""
Authorization policy.

``authorize`` is a pure function over (role, operation, ownership facts).
Every operation carries an explicit verdict for every role in ``_RULES``;
the table is checked for completeness at import time, so adding a role or
an operation fails fast until each rule has been reviewed.

A verdict is either a plain boolean or a predicate over the
``AccessContext`` for rules that depend on who owns the task.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .errors import Forbidden
from .models import Role

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """Actions gated by the policy."""

    MANAGE_USERS = "manage_users"
    VIEW_OWN_PROFILE = "view_own_profile"
    CREATE_TASK = "create_task"
    VIEW_TASKS = "view_tasks"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    VIEW_STATISTICS = "view_statistics"


@dataclass(frozen=True)
class AccessContext:
    """Facts about the target resource that some rules depend on."""

    is_creator: bool = False
    is_assigned_tester: bool = False
    restrict_tester_updates: bool = False


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None


Verdict = bool | Callable[[AccessContext], bool]


def _creator_only(ctx: AccessContext) -> bool:
    return ctx.is_creator


def _tester_update(ctx: AccessContext) -> bool:
    if not ctx.restrict_tester_updates:
        return True
    return ctx.is_creator or ctx.is_assigned_tester


_RULES: dict[Operation, dict[Role, Verdict]] = {
    Operation.MANAGE_USERS: {
        Role.ADMIN: True,
        Role.MANAGER: False,
        Role.TESTER: False,
        Role.DEVELOPER: False,
    },
    Operation.VIEW_OWN_PROFILE: {
        Role.ADMIN: True,
        Role.MANAGER: True,
        Role.TESTER: True,
        Role.DEVELOPER: True,
    },
    Operation.CREATE_TASK: {
        Role.ADMIN: False,
        Role.MANAGER: True,
        Role.TESTER: True,
        Role.DEVELOPER: True,
    },
    Operation.VIEW_TASKS: {
        Role.ADMIN: True,
        Role.MANAGER: True,
        Role.TESTER: True,
        Role.DEVELOPER: True,
    },
    Operation.UPDATE_TASK: {
        Role.ADMIN: False,
        Role.MANAGER: True,
        Role.TESTER: _tester_update,
        Role.DEVELOPER: True,
    },
    Operation.DELETE_TASK: {
        Role.ADMIN: False,
        Role.MANAGER: True,
        Role.TESTER: _creator_only,
        Role.DEVELOPER: _creator_only,
    },
    Operation.VIEW_STATISTICS: {
        Role.ADMIN: True,
        Role.MANAGER: True,
        Role.TESTER: False,
        Role.DEVELOPER: False,
    },
}

_DENIAL_REASONS: dict[Operation, dict[Role | None, str]] = {
    Operation.MANAGE_USERS: {None: "Only administrators can manage users"},
    Operation.VIEW_OWN_PROFILE: {None: "Authentication required"},
    Operation.CREATE_TASK: {Role.ADMIN: "Administrators cannot create tasks"},
    Operation.VIEW_TASKS: {None: "Authentication required"},
    Operation.UPDATE_TASK: {
        Role.ADMIN: "Administrators cannot edit tasks",
        Role.TESTER: "Testers can only update tasks they created or are assigned to",
    },
    Operation.DELETE_TASK: {
        Role.ADMIN: "Administrators cannot manage tasks",
        None: "Only the task creator or a manager can delete tasks",
    },
    Operation.VIEW_STATISTICS: {None: "Only managers and admins can view statistics"},
}


def _check_rules_complete() -> None:
    for operation in Operation:
        rules = _RULES.get(operation)
        if rules is None:
            raise RuntimeError(f"No authorization rules for {operation.value}")
        missing = [role.value for role in Role if role not in rules]
        if missing:
            raise RuntimeError(
                f"Authorization rules for {operation.value} miss roles: {missing}"
            )
        if operation not in _DENIAL_REASONS:
            raise RuntimeError(f"No denial reason for {operation.value}")


_check_rules_complete()


def _denial_reason(role: Role, operation: Operation) -> str:
    reasons = _DENIAL_REASONS[operation]
    return reasons.get(role) or reasons.get(None) or "Forbidden"


def authorize(
    role: Role | str,
    operation: Operation,
    *,
    is_creator: bool = False,
    is_assigned_tester: bool = False,
    restrict_tester_updates: bool = False,
) -> Decision:
    """
    Decide whether *role* may perform *operation*.

    Args:
        role: The caller's role (member or raw value).
        operation: The action being attempted.
        is_creator: Caller opened the target task.
        is_assigned_tester: Caller is the tester assigned to the target task.
        restrict_tester_updates: Limit tester updates to their own tasks.

    Returns:
        A ``Decision``; denied decisions carry a human-readable reason.
    """
    role = Role(role)
    verdict = _RULES[operation][role]
    if callable(verdict):
        allowed = verdict(
            AccessContext(
                is_creator=is_creator,
                is_assigned_tester=is_assigned_tester,
                restrict_tester_updates=restrict_tester_updates,
            )
        )
    else:
        allowed = verdict

    if allowed:
        return Decision(allowed=True)
    return Decision(allowed=False, reason=_denial_reason(role, operation))


def enforce(role: Role | str, operation: Operation, **context: bool) -> None:
    """Raise ``Forbidden`` with the policy's reason when *operation* is denied."""
    decision = authorize(role, operation, **context)
    if not decision.allowed:
        logger.info("Denied %s for role=%s: %s", operation.value, Role(role).value, decision.reason)
        raise Forbidden(decision.reason)
