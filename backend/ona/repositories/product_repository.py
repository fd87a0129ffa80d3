from __future__ import annotations

from ..extensions import db
from ..models import Category, Product
from . import base


def find_by_id(product_id: str) -> Product | None:
    return db.session.get(Product, product_id)


def find_by_slug(slug: str) -> Product | None:
    return db.session.query(Product).filter(Product.slug == slug).first()


def find_active() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True))
        .order_by(Product.sort_order.asc(), Product.name.asc())
        .all()
    )


def paginate(*, page: int, limit: int, search: str | None = None, is_active: bool | None = None,
             sort_by: str | None = None, sort_order: str | None = None) -> base.Page:
    query = db.session.query(Product)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    if search:
        query = query.filter(db.func.lower(Product.name).contains(search.lower(), autoescape=True))
    query = base.apply_sort(query, Product, sort_by=sort_by, sort_order=sort_order)
    return base.paginate(query, page=page, limit=limit)


def count_all() -> int:
    return db.session.query(Product).count()


def category_counts(product_ids) -> dict[str, int]:
    return base.grouped_counts(Category.product_id, product_ids)


def create(data: dict) -> Product:
    return base.add(Product(**data))


def update(product_id: str, patch: dict) -> Product | None:
    product = find_by_id(product_id)
    if product is None:
        return None
    return base.apply_patch(product, patch)


def delete(product_id: str) -> bool:
    return base.delete_by_id(Product, product_id)
