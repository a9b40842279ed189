"""
Service layer.

Route handlers parse and validate HTTP input, then call into these modules,
which apply the authorization policy and lifecycle rules against the
SQLAlchemy session.  Services raise ``testflow.errors`` exceptions and
never build HTTP responses themselves.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, func, select

from .. import db


def paginate(stmt: Select, page: int, per_page: int) -> tuple[list[Any], int]:
    """Return one page of *stmt* results together with the unpaged total."""
    total = db.session.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    items = db.session.scalars(stmt.limit(per_page).offset((page - 1) * per_page)).all()
    return list(items), int(total or 0)
