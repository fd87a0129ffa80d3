# Overview: Data access for components, including the hierarchy-crossing query builder.

from __future__ import annotations

import json
from dataclasses import dataclass, field

from sqlalchemy import String, cast, update as sa_update

from ..extensions import db
from ..models import Category, Component, ComponentVersion, Subcategory
from . import base

COMPONENT_SORT_FIELDS = {
    **base.BASE_SORT_FIELDS,
    "publishedAt": "published_at",
    "viewCount": "view_count",
    "copyCount": "copy_count",
    "conversionRate": "conversion_rate",
}


@dataclass
class ComponentFilters:
    subcategory_id: str | None = None
    category_id: str | None = None
    product_id: str | None = None
    is_free: bool | None = None
    status: str | None = None
    required_tier: str | None = None
    is_new: bool | None = None
    is_featured: bool | None = None
    search: str | None = None
    tags: list[str] = field(default_factory=list)
    has_conversion_rate: bool | None = None
    min_conversion_rate: float | None = None
    framework: str | None = None

    @property
    def crosses_hierarchy(self) -> bool:
        return self.category_id is not None or self.product_id is not None


def build_query(filters: ComponentFilters | None = None):
    """
    One query for every component listing.

    Filters on category or product join through subcategories (and
    categories for product) inside the same statement; the count and the
    page fetch in base.paginate reuse this query unchanged.
    """
    filters = filters or ComponentFilters()
    query = db.session.query(Component)

    if filters.crosses_hierarchy:
        query = query.join(Subcategory, Subcategory.id == Component.subcategory_id)
        if filters.category_id is not None:
            query = query.filter(Subcategory.category_id == filters.category_id)
        if filters.product_id is not None:
            query = query.join(Category, Category.id == Subcategory.category_id)
            query = query.filter(Category.product_id == filters.product_id)

    if filters.subcategory_id is not None:
        query = query.filter(Component.subcategory_id == filters.subcategory_id)
    if filters.is_free is not None:
        query = query.filter(Component.is_free.is_(filters.is_free))
    if filters.status is not None:
        query = query.filter(Component.status == filters.status)
    if filters.required_tier is not None:
        query = query.filter(Component.required_tier == filters.required_tier)
    if filters.is_new is not None:
        query = query.filter(Component.is_new.is_(filters.is_new))
    if filters.is_featured is not None:
        query = query.filter(Component.is_featured.is_(filters.is_featured))
    if filters.search:
        term = filters.search.strip().lower()
        query = query.filter(
            db.or_(
                db.func.lower(Component.name).contains(term, autoescape=True),
                db.func.lower(db.func.coalesce(Component.description, "")).contains(term, autoescape=True),
            )
        )
    if filters.tags:
        # tags is a JSON list; match each element encoded the way the column stores it
        tag_text = cast(Component.tags, String)
        query = query.filter(
            db.or_(*[tag_text.contains(json.dumps(tag), autoescape=True) for tag in filters.tags])
        )
    if filters.has_conversion_rate is True:
        query = query.filter(Component.conversion_rate.isnot(None))
    elif filters.has_conversion_rate is False:
        query = query.filter(Component.conversion_rate.is_(None))
    if filters.min_conversion_rate is not None:
        query = query.filter(Component.conversion_rate >= filters.min_conversion_rate)
    if filters.framework is not None:
        query = query.filter(
            db.exists().where(
                ComponentVersion.component_id == Component.id,
                ComponentVersion.framework == filters.framework,
            )
        )
    return query


def find_by_id(component_id: str) -> Component | None:
    return db.session.get(Component, component_id)


def find_by_slug(slug: str, subcategory_id: str | None = None) -> Component | None:
    query = db.session.query(Component).filter(Component.slug == slug)
    if subcategory_id is not None:
        query = query.filter(Component.subcategory_id == subcategory_id)
    return query.order_by(Component.created_at.asc(), Component.id.asc()).first()


def find_by_parent(subcategory_id: str) -> list[Component]:
    """
    Components of a subcategory ordered by (sort_order, name). Every status
    except archived counts as an active child, drafts and deprecated included.
    """
    return (
        db.session.query(Component)
        .filter(Component.subcategory_id == subcategory_id, Component.status != "archived")
        .order_by(Component.sort_order.asc(), Component.name.asc())
        .all()
    )


def find_with_filters(filters: ComponentFilters, *, order_by=None, limit: int | None = None) -> list[Component]:
    query = build_query(filters)
    if order_by is not None:
        query = query.order_by(*order_by)
    else:
        query = query.order_by(Component.sort_order.asc(), Component.name.asc(), Component.id.asc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def _published_first(filters: ComponentFilters, limit: int | None):
    order = (Component.published_at.desc(), Component.id.asc())
    return find_with_filters(filters, order_by=order, limit=limit)


def find_public(limit: int | None = None) -> list[Component]:
    return _published_first(ComponentFilters(status="published"), limit)


def find_free(limit: int | None = None) -> list[Component]:
    return _published_first(ComponentFilters(status="published", is_free=True), limit)


def find_premium(limit: int | None = None) -> list[Component]:
    return _published_first(ComponentFilters(status="published", is_free=False), limit)


def paginate(*, page: int, limit: int, filters: ComponentFilters | None = None,
             sort_by: str | None = None, sort_order: str | None = None) -> base.Page:
    query = base.apply_sort(
        build_query(filters),
        Component,
        sort_by=sort_by,
        sort_order=sort_order,
        fields=COMPONENT_SORT_FIELDS,
    )
    return base.paginate(query, page=page, limit=limit)


def count_by_status() -> dict[str, int]:
    return base.grouped_counts(Component.status)


def count_all() -> int:
    return db.session.query(Component).count()


def average_conversion_rate(filters: ComponentFilters | None = None) -> float:
    query = build_query(filters).filter(Component.conversion_rate.isnot(None))
    value = query.with_entities(db.func.avg(Component.conversion_rate)).scalar()
    return round(float(value), 2) if value is not None else 0.0


def top_categories(limit: int = 5) -> list[dict]:
    rows = (
        db.session.query(Category.name, db.func.count(Component.id))
        .join(Subcategory, Subcategory.category_id == Category.id)
        .join(Component, Component.subcategory_id == Subcategory.id)
        .filter(Component.status == "published")
        .group_by(Category.id, Category.name)
        .order_by(db.func.count(Component.id).desc(), Category.name.asc())
        .limit(limit)
        .all()
    )
    return [{"name": name, "count": count} for name, count in rows]


def top_frameworks(limit: int = 6) -> list[dict]:
    rows = (
        db.session.query(ComponentVersion.framework, db.func.count(db.distinct(ComponentVersion.component_id)))
        .group_by(ComponentVersion.framework)
        .order_by(db.func.count(db.distinct(ComponentVersion.component_id)).desc(), ComponentVersion.framework.asc())
        .limit(limit)
        .all()
    )
    return [{"name": name, "count": count} for name, count in rows]


def slugs_like(prefix: str, subcategory_id: str) -> set[str]:
    rows = (
        db.session.query(Component.slug)
        .filter(Component.subcategory_id == subcategory_id, Component.slug.startswith(prefix, autoescape=True))
        .all()
    )
    return {slug for (slug,) in rows}


def create(data: dict) -> Component:
    return base.add(Component(**data))


def update(component_id: str, patch: dict) -> Component | None:
    component = find_by_id(component_id)
    if component is None:
        return None
    return base.apply_patch(component, patch)


def delete(component_id: str) -> bool:
    return base.delete_by_id(Component, component_id)


def _increment(component_id: str, column) -> bool:
    # Single UPDATE ... SET col = col + 1; never read-modify-write.
    stmt = (
        sa_update(Component)
        .where(Component.id == component_id)
        .values({column: column + 1})
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount > 0


def increment_view_count(component_id: str) -> bool:
    return _increment(component_id, Component.view_count)


def increment_copy_count(component_id: str) -> bool:
    return _increment(component_id, Component.copy_count)


def count_matching(filters: ComponentFilters | None = None) -> int:
    return build_query(filters).order_by(None).count()
