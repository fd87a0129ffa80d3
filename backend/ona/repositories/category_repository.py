from __future__ import annotations

from ..extensions import db
from ..models import Category, Component, Subcategory
from . import base


def find_by_id(category_id: str) -> Category | None:
    return db.session.get(Category, category_id)


def find_by_slug(slug: str, product_id: str | None = None) -> Category | None:
    """Slug lookup, scoped to one product when product_id is given."""
    query = db.session.query(Category).filter(Category.slug == slug)
    if product_id is not None:
        query = query.filter(Category.product_id == product_id)
    return query.order_by(Category.created_at.asc(), Category.id.asc()).first()


def find_by_parent(product_id: str) -> list[Category]:
    """Active categories of a product ordered by (sort_order, name)."""
    return (
        db.session.query(Category)
        .filter(Category.product_id == product_id, Category.is_active.is_(True))
        .order_by(Category.sort_order.asc(), Category.name.asc())
        .all()
    )


def find_active(product_id: str | None = None) -> list[Category]:
    query = db.session.query(Category).filter(Category.is_active.is_(True))
    if product_id is not None:
        query = query.filter(Category.product_id == product_id)
    return query.order_by(Category.sort_order.asc(), Category.name.asc()).all()


def find_all(product_id: str | None = None) -> list[Category]:
    query = db.session.query(Category)
    if product_id is not None:
        query = query.filter(Category.product_id == product_id)
    return query.order_by(Category.sort_order.asc(), Category.name.asc(), Category.id.asc()).all()


def find_many(ids) -> dict[str, Category]:
    ids = list(ids)
    if not ids:
        return {}
    rows = db.session.query(Category).filter(Category.id.in_(ids)).all()
    return {row.id: row for row in rows}


def paginate(*, page: int, limit: int, product_id: str | None = None, is_active: bool | None = None,
             search: str | None = None, sort_by: str | None = None, sort_order: str | None = None) -> base.Page:
    query = db.session.query(Category)
    if product_id is not None:
        query = query.filter(Category.product_id == product_id)
    if is_active is not None:
        query = query.filter(Category.is_active.is_(is_active))
    if search:
        term = search.lower()
        query = query.filter(
            db.or_(
                db.func.lower(Category.name).contains(term, autoescape=True),
                db.func.lower(Category.slug).contains(term, autoescape=True),
            )
        )
    query = base.apply_sort(query, Category, sort_by=sort_by, sort_order=sort_order)
    return base.paginate(query, page=page, limit=limit)


def count_all(*, active_only: bool = False) -> int:
    query = db.session.query(Category)
    if active_only:
        query = query.filter(Category.is_active.is_(True))
    return query.count()


def subcategory_counts(category_ids=None, *, active_only: bool = False) -> dict[str, int]:
    filters = (Subcategory.is_active.is_(True),) if active_only else ()
    return base.grouped_counts(Subcategory.category_id, category_ids, filters)


def component_counts(category_ids=None) -> dict[str, int]:
    """Components per category, counted through subcategories in one GROUP BY."""
    query = (
        db.session.query(Subcategory.category_id, db.func.count(Component.id))
        .join(Component, Component.subcategory_id == Subcategory.id)
    )
    if category_ids is not None:
        category_ids = list(category_ids)
        if not category_ids:
            return {}
        query = query.filter(Subcategory.category_id.in_(category_ids))
    return {key: count for key, count in query.group_by(Subcategory.category_id).all()}


def create(data: dict) -> Category:
    return base.add(Category(**data))


def update(category_id: str, patch: dict) -> Category | None:
    category = find_by_id(category_id)
    if category is None:
        return None
    return base.apply_patch(category, patch)


def delete(category_id: str) -> bool:
    return base.delete_by_id(Category, category_id)
