# Overview: Service-layer operations for categories; CRUD, ordering, batch actions, stats, and export.

from __future__ import annotations

import logging

from ..context import RequestContext
from ..errors import ConflictError, NotFoundError, ValidationFailed
from ..models import Category
from ..repositories import base, category_repository, component_repository, product_repository, subcategory_repository
from ..time_utils import to_utc_z, utcnow
from ..validation import is_uuid, validate_update
from . import audit_service
from .batch import run_batch
from .common import (
    ensure_slug_free,
    next_sort_order,
    reorder_siblings,
    require,
    resolve_slug,
    round2,
    sanitize,
    slug_availability,
    validate_slug_format,
)
from .concurrency import atomic

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "slug", "description", "icon_name", "sort_order", "is_active")
BATCH_OPERATIONS = ("activate", "deactivate", "delete", "update")
SLUG_CONFLICT = "A category with this slug already exists in this product"


def serialize_many(categories: list[Category], *, include_subcategories: bool = False,
                   active_subcategories_only: bool = False) -> list[dict]:
    """Attach subcategory and component counts (two GROUP BY queries, not one per row)."""
    ids = [c.id for c in categories]
    sub_counts = category_repository.subcategory_counts(ids, active_only=active_subcategories_only)
    comp_counts = category_repository.component_counts(ids)

    children: dict[str, list[dict]] = {}
    if include_subcategories:
        for sub in subcategory_repository.find_by_categories(ids, active_only=active_subcategories_only):
            children.setdefault(sub.category_id, []).append(sub.to_dict())

    out = []
    for category in categories:
        item = category.to_dict()
        item["subcategoriesCount"] = sub_counts.get(category.id, 0)
        item["componentsCount"] = comp_counts.get(category.id, 0)
        if include_subcategories:
            item["subcategories"] = children.get(category.id, [])
        out.append(item)
    return out


def list_categories(
    *,
    page: int,
    limit: int,
    product_id: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    include_subcategories: bool = False,
) -> base.Page:
    result = category_repository.paginate(
        page=page, limit=limit, product_id=product_id, is_active=is_active,
        search=search, sort_by=sort_by, sort_order=sort_order,
    )
    items = serialize_many(result.items, include_subcategories=include_subcategories)
    return base.Page(items=items, page=result.page, limit=result.limit, total=result.total)


def get_category(category_id: str) -> Category:
    return require(category_repository.find_by_id(category_id), "Category", category_id)


def get_category_details(category_id: str, *, include_subcategories: bool = True) -> dict:
    return serialize_many([get_category(category_id)], include_subcategories=include_subcategories)[0]


def get_public_category(id_or_slug: str, *, product_id: str | None = None) -> dict:
    """Active category by id or slug, with its active subcategories and published component counts."""
    if is_uuid(id_or_slug):
        category = category_repository.find_by_id(id_or_slug)
    else:
        category = category_repository.find_by_slug(id_or_slug, product_id)
    if category is None or not category.is_active:
        raise NotFoundError.for_entity("Category", id_or_slug)

    subcategories = subcategory_repository.find_by_parent(category.id)
    counts = subcategory_repository.component_counts([s.id for s in subcategories], status="published")
    data = category.to_dict()
    data["subcategories"] = [
        {**sub.to_dict(), "componentsCount": counts.get(sub.id, 0)} for sub in subcategories
    ]
    data["subcategoriesCount"] = len(subcategories)
    data["componentsCount"] = sum(counts.values())
    return data


def list_public_categories(product_id: str | None = None) -> list[dict]:
    return serialize_many(
        category_repository.find_active(product_id),
        include_subcategories=True,
        active_subcategories_only=True,
    )


def create_category(ctx: RequestContext, data: dict, *, commit: bool = True) -> Category:
    data = dict(data)
    product_id = data.get("product_id")
    require(product_repository.find_by_id(product_id), "Product", product_id)
    data["slug"] = resolve_slug(data)

    with atomic(SLUG_CONFLICT, commit=commit):
        ensure_slug_free(category_repository.find_by_slug, data["slug"], product_id, label="Category")
        if data.get("sort_order") is None:
            data["sort_order"] = next_sort_order(category_repository.find_by_parent(product_id))
        category = category_repository.create(data)
        audit_service.record(
            ctx, "category.create", "category", category.id,
            {"name": category.name, "slug": category.slug, "productId": product_id},
        )
    logger.info("Created category %s (%s)", category.id, category.slug)
    return category


def update_category(ctx: RequestContext, category_id: str, patch: dict, *, commit: bool = True) -> Category:
    category = get_category(category_id)
    patch = sanitize(patch, UPDATABLE_FIELDS)
    if "slug" in patch and patch["slug"] != category.slug:
        validate_slug_format(patch["slug"])
        ensure_slug_free(
            category_repository.find_by_slug, patch["slug"], category.product_id,
            label="Category", exclude_id=category.id,
        )
    with atomic(SLUG_CONFLICT, commit=commit):
        category = category_repository.update(category_id, patch)
        audit_service.record(ctx, "category.update", "category", category_id, patch)
    return category


def delete_category(ctx: RequestContext, category_id: str, *, commit: bool = True) -> None:
    category = get_category(category_id)
    children = category_repository.subcategory_counts([category_id]).get(category_id, 0)
    if children:
        raise ConflictError("Category has subcategories", details={"subcategoriesCount": children})
    with atomic(commit=commit):
        audit_service.record(ctx, "category.delete", "category", category_id, {"slug": category.slug})
        category_repository.delete(category_id)
    logger.info("Deleted category %s", category_id)


def check_slug(slug: str, product_id: str, exclude_id: str | None = None) -> dict:
    return slug_availability(category_repository.find_by_slug, slug, product_id, exclude_id)


def reorder_categories(ctx: RequestContext, items) -> list[dict]:
    ordered = reorder_siblings(
        ctx, items,
        repository=category_repository, parent_attr="product_id",
        label="Category", entity_type="category",
    )
    logger.info("Reordered %d categories", len(items))
    return [c.to_dict() for c in ordered]


def batch_categories(ctx: RequestContext, operation: str, ids: list[str], data: dict | None = None) -> dict:
    if operation == "update":
        patch = validate_update(Category, data or {}, immutable=("product_id",))
        if not patch:
            raise ValidationFailed.field("data", "data must contain at least one field to update")

    def handler(category_id: str):
        if operation == "activate":
            return update_category(ctx, category_id, {"is_active": True}, commit=False).to_dict()
        if operation == "deactivate":
            return update_category(ctx, category_id, {"is_active": False}, commit=False).to_dict()
        if operation == "update":
            return update_category(ctx, category_id, patch, commit=False).to_dict()
        delete_category(ctx, category_id, commit=False)
        return None

    return run_batch(operation, ids, handler, result_key="category")


def navigation(product_id: str | None = None) -> list[dict]:
    """Active categories -> active subcategories with published component counts."""
    categories = category_repository.find_active(product_id)
    subcategories = subcategory_repository.find_by_categories([c.id for c in categories])
    counts = subcategory_repository.component_counts([s.id for s in subcategories], status="published")

    children: dict[str, list[dict]] = {}
    for sub in subcategories:
        children.setdefault(sub.category_id, []).append({
            "id": sub.id,
            "name": sub.name,
            "slug": sub.slug,
            "sortOrder": sub.sort_order,
            "componentsCount": counts.get(sub.id, 0),
        })

    return [
        {
            "id": category.id,
            "name": category.name,
            "slug": category.slug,
            "iconName": category.icon_name,
            "sortOrder": category.sort_order,
            "subcategories": children.get(category.id, []),
            "componentsCount": sum(s["componentsCount"] for s in children.get(category.id, [])),
        }
        for category in categories
    ]


def public_stats() -> dict:
    return {
        "totalCategories": category_repository.count_all(active_only=True),
        "totalSubcategories": subcategory_repository.count_all(active_only=True),
        "totalComponents": component_repository.count_by_status().get("published", 0),
    }


def global_stats() -> dict:
    total_categories = category_repository.count_all()
    active_categories = category_repository.count_all(active_only=True)
    total_subcategories = subcategory_repository.count_all()
    total_components = component_repository.count_all()
    return {
        "totalCategories": total_categories,
        "activeCategories": active_categories,
        "inactiveCategories": total_categories - active_categories,
        "totalSubcategories": total_subcategories,
        "activeSubcategories": subcategory_repository.count_all(active_only=True),
        "totalComponents": total_components,
        "averageSubcategoriesPerCategory": round2(total_subcategories / total_categories) if total_categories else 0.0,
        "averageComponentsPerCategory": round2(total_components / total_categories) if total_categories else 0.0,
    }


def detailed_stats(category_id: str | None = None) -> dict:
    if category_id is not None:
        category = get_category(category_id)
        subcategories = subcategory_repository.find_by_categories([category_id], active_only=False)
        sub_ids = [s.id for s in subcategories]
        all_counts = subcategory_repository.component_counts(sub_ids)
        published = subcategory_repository.component_counts(sub_ids, status="published")
        total_components = sum(all_counts.values())
        return {
            "category": category.to_dict(),
            "subcategoriesCount": len(subcategories),
            "activeSubcategoriesCount": sum(1 for s in subcategories if s.is_active),
            "componentsCount": total_components,
            "publishedComponentsCount": sum(published.values()),
            "averageComponentsPerSubcategory": round2(total_components / len(subcategories)) if subcategories else 0.0,
            "subcategories": [
                {
                    "id": s.id,
                    "name": s.name,
                    "slug": s.slug,
                    "isActive": s.is_active,
                    "componentsCount": all_counts.get(s.id, 0),
                    "publishedComponentsCount": published.get(s.id, 0),
                }
                for s in subcategories
            ],
        }

    categories = category_repository.find_all()
    rows = serialize_many(categories)
    return {
        "categories": [
            {
                "id": row["id"],
                "name": row["name"],
                "slug": row["slug"],
                "isActive": row["isActive"],
                "subcategoriesCount": row["subcategoriesCount"],
                "componentsCount": row["componentsCount"],
            }
            for row in rows
        ],
        "global": global_stats(),
    }


def export_categories(product_id: str | None = None) -> dict:
    """Full category tree (inactive rows included) for backup or transfer."""
    if product_id is not None:
        require(product_repository.find_by_id(product_id), "Product", product_id)
    categories = category_repository.find_all(product_id)
    subcategories = subcategory_repository.find_by_categories([c.id for c in categories], active_only=False)
    counts = subcategory_repository.component_counts([s.id for s in subcategories])

    children: dict[str, list[dict]] = {}
    for sub in subcategories:
        children.setdefault(sub.category_id, []).append({**sub.to_dict(), "componentsCount": counts.get(sub.id, 0)})

    tree = [{**c.to_dict(), "subcategories": children.get(c.id, [])} for c in categories]
    return {
        "exportedAt": to_utc_z(utcnow()),
        "productId": product_id,
        "categories": tree,
        "stats": {
            "totalCategories": len(categories),
            "totalSubcategories": len(subcategories),
            "totalComponents": sum(counts.values()),
        },
    }
