# Overview: Shared pagination, sorting, and write helpers for the repository modules.

"""
Repositories are thin modules of functions over db.session.

- Lookups return None when nothing matches; callers decide on 404 semantics.
- Writes flush but never commit; the calling service owns the transaction.
- Constraint violations surface as sqlalchemy IntegrityError untouched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from ..extensions import db
from ..time_utils import utcnow

DEFAULT_LIMIT = 20
MAX_LIMIT = 100

# Client-facing sort keys shared by every catalog listing.
BASE_SORT_FIELDS = {
    "name": "name",
    "slug": "slug",
    "sortOrder": "sort_order",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}


@dataclass
class Page:
    items: list = field(default_factory=list)
    page: int = 1
    limit: int = DEFAULT_LIMIT
    total: int = 0

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def map(self, fn) -> "Page":
        return Page(items=[fn(item) for item in self.items], page=self.page, limit=self.limit, total=self.total)


def paginate(query, *, page: int, limit: int) -> Page:
    """
    Count and fetch with the same WHERE clauses.

    The caller's query must already be ordered deterministically (apply_sort
    adds an id tiebreaker) so consecutive pages never overlap.
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return Page(items=items, page=page, limit=limit, total=total)


def apply_sort(query, model, *, sort_by: str | None, sort_order: str | None,
               fields: dict[str, str] | None = None, default: tuple[str, ...] = ("sort_order", "name")):
    fields = fields or BASE_SORT_FIELDS
    if sort_by and sort_by in fields:
        column = getattr(model, fields[sort_by])
        ordered = column.desc() if (sort_order or "asc").lower() == "desc" else column.asc()
        return query.order_by(ordered, model.id.asc())
    return query.order_by(*[getattr(model, name).asc() for name in default], model.id.asc())


def add(entity):
    db.session.add(entity)
    db.session.flush()
    return entity


def touch(entity):
    if hasattr(entity, "updated_at"):
        entity.updated_at = utcnow()
    return entity


def apply_patch(entity, patch: dict[str, Any]):
    """Set attributes and stamp updated_at."""
    for key, value in patch.items():
        setattr(entity, key, value)
    touch(entity)
    db.session.flush()
    return entity


def delete_by_id(model, entity_id: str) -> bool:
    entity = db.session.get(model, entity_id)
    if entity is None:
        return False
    db.session.delete(entity)
    db.session.flush()
    return True


def grouped_counts(column, ids=None, filters=()) -> dict[str, int]:
    """SELECT column, count(*) ... GROUP BY column -> {value: count}."""
    query = db.session.query(column, db.func.count()).filter(*filters)
    if ids is not None:
        ids = list(ids)
        if not ids:
            return {}
        query = query.filter(column.in_(ids))
    return {key: count for key, count in query.group_by(column).all()}
