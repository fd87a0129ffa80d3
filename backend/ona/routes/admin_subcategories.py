# Overview: Flask API routes for admin subcategory operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..models import Subcategory
from ..services import subcategory_service
from ..validation import (
    parse_batch,
    parse_check_slug,
    parse_reorder,
    parse_search,
    validate_create,
    validate_update,
)

admin_subcategories_bp = Blueprint("admin_subcategories", __name__, url_prefix="/api/admin/subcategories")

SUBCATEGORY_FILTERS = {"categoryId": "uuid", "isActive": "bool", "search": "str"}


@admin_subcategories_bp.get("")
@require_admin
def list_subcategories(ctx):
    params = parse_search(request.args, filters=SUBCATEGORY_FILTERS)
    result = subcategory_service.list_subcategories(
        page=params.page, limit=params.limit, sort_by=params.sort_by, sort_order=params.sort_order,
        **params.filters,
    )
    return paginated(result, result.items)


@admin_subcategories_bp.post("")
@require_admin
def create_subcategory(ctx):
    data = validate_create(Subcategory, read_json())
    subcategory = subcategory_service.create_subcategory(ctx, data)
    return created(subcategory_service.get_subcategory_details(subcategory.id), "Subcategory created")


@admin_subcategories_bp.post("/reorder")
@require_admin
def reorder_subcategories(ctx):
    items = parse_reorder(read_json(), "subcategories")
    return success(subcategory_service.reorder_subcategories(ctx, items), "Subcategories reordered")


@admin_subcategories_bp.post("/check-slug")
@require_admin
def check_slug(ctx):
    check = parse_check_slug(read_json(), parent_key="categoryId")
    result = subcategory_service.check_slug(check.slug, check.parent_id, check.exclude_id)
    return success({
        "available": result["available"],
        "slug": result["slug"],
        "existingSubcategory": result["existing"],
    })


@admin_subcategories_bp.post("/batch")
@require_admin
def batch_subcategories(ctx):
    batch = parse_batch(read_json(), ids_key="subcategoryIds", operations=subcategory_service.BATCH_OPERATIONS)
    result = subcategory_service.batch_subcategories(ctx, batch.operation, batch.ids, batch.data)
    return success(result, f"Batch {batch.operation} processed")


@admin_subcategories_bp.get("/<subcategory_id>")
@require_admin
def get_subcategory(ctx, subcategory_id):
    return success(subcategory_service.get_subcategory_details(subcategory_id))


@admin_subcategories_bp.put("/<subcategory_id>")
@require_admin
def update_subcategory(ctx, subcategory_id):
    # Re-parenting goes through /move so the slug check runs against the new category
    patch = validate_update(Subcategory, read_json(), immutable=("category_id",))
    subcategory_service.update_subcategory(ctx, subcategory_id, patch)
    return success(subcategory_service.get_subcategory_details(subcategory_id), "Subcategory updated")


@admin_subcategories_bp.delete("/<subcategory_id>")
@require_admin
def delete_subcategory(ctx, subcategory_id):
    subcategory_service.delete_subcategory(ctx, subcategory_id)
    return success(None, "Subcategory deleted")


@admin_subcategories_bp.post("/<subcategory_id>/move")
@require_admin
def move_subcategory(ctx, subcategory_id):
    data = read_json()
    subcategory_service.move_subcategory(
        ctx, subcategory_id, data.get("categoryId"), data.get("sortOrder"),
    )
    return success(subcategory_service.get_subcategory_details(subcategory_id), "Subcategory moved")
