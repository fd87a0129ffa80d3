from __future__ import annotations

from ..extensions import db
from ..models import Component, Subcategory
from . import base


def find_by_id(subcategory_id: str) -> Subcategory | None:
    return db.session.get(Subcategory, subcategory_id)


def find_by_slug(slug: str, category_id: str | None = None) -> Subcategory | None:
    query = db.session.query(Subcategory).filter(Subcategory.slug == slug)
    if category_id is not None:
        query = query.filter(Subcategory.category_id == category_id)
    return query.order_by(Subcategory.created_at.asc(), Subcategory.id.asc()).first()


def find_by_parent(category_id: str) -> list[Subcategory]:
    """Active subcategories of a category ordered by (sort_order, name)."""
    return (
        db.session.query(Subcategory)
        .filter(Subcategory.category_id == category_id, Subcategory.is_active.is_(True))
        .order_by(Subcategory.sort_order.asc(), Subcategory.name.asc())
        .all()
    )


def find_many(ids) -> dict[str, Subcategory]:
    ids = list(ids)
    if not ids:
        return {}
    rows = db.session.query(Subcategory).filter(Subcategory.id.in_(ids)).all()
    return {row.id: row for row in rows}


def find_by_categories(category_ids, *, active_only: bool = True) -> list[Subcategory]:
    category_ids = list(category_ids)
    if not category_ids:
        return []
    query = db.session.query(Subcategory).filter(Subcategory.category_id.in_(category_ids))
    if active_only:
        query = query.filter(Subcategory.is_active.is_(True))
    return query.order_by(Subcategory.sort_order.asc(), Subcategory.name.asc()).all()


def paginate(*, page: int, limit: int, category_id: str | None = None, is_active: bool | None = None,
             search: str | None = None, sort_by: str | None = None, sort_order: str | None = None) -> base.Page:
    query = db.session.query(Subcategory)
    if category_id is not None:
        query = query.filter(Subcategory.category_id == category_id)
    if is_active is not None:
        query = query.filter(Subcategory.is_active.is_(is_active))
    if search:
        term = search.lower()
        query = query.filter(
            db.or_(
                db.func.lower(Subcategory.name).contains(term, autoescape=True),
                db.func.lower(Subcategory.slug).contains(term, autoescape=True),
            )
        )
    query = base.apply_sort(query, Subcategory, sort_by=sort_by, sort_order=sort_order)
    return base.paginate(query, page=page, limit=limit)


def count_all(*, active_only: bool = False) -> int:
    query = db.session.query(Subcategory)
    if active_only:
        query = query.filter(Subcategory.is_active.is_(True))
    return query.count()


def component_counts(subcategory_ids=None, *, status: str | None = None) -> dict[str, int]:
    filters = (Component.status == status,) if status else ()
    return base.grouped_counts(Component.subcategory_id, subcategory_ids, filters)


def create(data: dict) -> Subcategory:
    return base.add(Subcategory(**data))


def update(subcategory_id: str, patch: dict) -> Subcategory | None:
    subcategory = find_by_id(subcategory_id)
    if subcategory is None:
        return None
    return base.apply_patch(subcategory, patch)


def delete(subcategory_id: str) -> bool:
    return base.delete_by_id(Subcategory, subcategory_id)
