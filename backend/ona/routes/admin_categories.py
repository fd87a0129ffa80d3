# Overview: Flask API routes for admin category operations; parses input and returns JSON responses.

# backend/ona/routes/admin_categories.py
"""
Category management for the admin dashboard.

Static paths (reorder, check-slug, batch, stats, export) are registered
before "/<category_id>" so they never get captured as an id.
"""

import json

from flask import Blueprint, Response, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..errors import ValidationFailed
from ..models import Category
from ..services import category_service
from ..validation import (
    is_uuid,
    parse_batch,
    parse_check_slug,
    parse_reorder,
    parse_search,
    validate_create,
    validate_update,
)

admin_categories_bp = Blueprint("admin_categories", __name__, url_prefix="/api/admin/categories")

CATEGORY_FILTERS = {
    "productId": "uuid",
    "isActive": "bool",
    "search": "str",
    "includeSubcategories": "bool",
}


def _optional_uuid(name: str):
    value = request.args.get(name) or None
    if value is not None and not is_uuid(value):
        raise ValidationFailed.field(name, f"{name} must be a valid UUID")
    return value


@admin_categories_bp.get("")
@require_admin
def list_categories(ctx):
    """
    Query params: page, limit, productId, includeSubcategories, sortBy,
    sortOrder, search, isActive.
    """
    params = parse_search(request.args, filters=CATEGORY_FILTERS)
    include_subcategories = bool(params.filters.pop("include_subcategories", False))
    result = category_service.list_categories(
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        sort_order=params.sort_order,
        include_subcategories=include_subcategories,
        **params.filters,
    )
    return paginated(result, result.items)


@admin_categories_bp.post("")
@require_admin
def create_category(ctx):
    data = validate_create(Category, read_json())
    category = category_service.create_category(ctx, data)
    return created(category_service.get_category_details(category.id), "Category created")


@admin_categories_bp.post("/reorder")
@require_admin
def reorder_categories(ctx):
    items = parse_reorder(read_json(), "categories")
    return success(category_service.reorder_categories(ctx, items), "Categories reordered")


@admin_categories_bp.post("/check-slug")
@require_admin
def check_slug(ctx):
    check = parse_check_slug(read_json(), parent_key="productId")
    result = category_service.check_slug(check.slug, check.parent_id, check.exclude_id)
    return success({
        "available": result["available"],
        "slug": result["slug"],
        "existingCategory": result["existing"],
    })


@admin_categories_bp.post("/batch")
@require_admin
def batch_categories(ctx):
    batch = parse_batch(read_json(), ids_key="categoryIds", operations=category_service.BATCH_OPERATIONS)
    result = category_service.batch_categories(ctx, batch.operation, batch.ids, batch.data)
    return success(result, f"Batch {batch.operation} processed")


@admin_categories_bp.get("/stats/detailed")
@require_admin
def detailed_stats(ctx):
    return success(category_service.detailed_stats(_optional_uuid("categoryId")))


@admin_categories_bp.get("/global-stats")
@require_admin
def global_stats(ctx):
    return success(category_service.global_stats())


@admin_categories_bp.get("/export")
@require_admin
def export_categories(ctx):
    """JSON tree download; ?download=false returns it inside the envelope instead."""
    data = category_service.export_categories(_optional_uuid("productId"))
    if request.args.get("download") == "false":
        return success(data)
    return Response(
        json.dumps(data, indent=2),
        mimetype="application/json",
        headers={"Content-Disposition": "attachment; filename=categories-export.json"},
    )


@admin_categories_bp.get("/<category_id>")
@require_admin
def get_category(ctx, category_id):
    return success(category_service.get_category_details(category_id))


@admin_categories_bp.put("/<category_id>")
@require_admin
def update_category(ctx, category_id):
    patch = validate_update(Category, read_json(), immutable=("product_id",))
    category_service.update_category(ctx, category_id, patch)
    return success(category_service.get_category_details(category_id), "Category updated")


@admin_categories_bp.delete("/<category_id>")
@require_admin
def delete_category(ctx, category_id):
    category_service.delete_category(ctx, category_id)
    return success(None, "Category deleted")
