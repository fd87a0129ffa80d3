# Overview: Flask API routes for admin component operations; parses input and returns JSON responses.

# backend/ona/routes/admin_components.py
"""
Component management for the admin dashboard.

Admin listings see every status (draft, published, archived, deprecated);
the public blueprint only ever shows published components.
"""

from flask import Blueprint, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..errors import ValidationFailed
from ..integrations import file_store
from ..models import Component
from ..models.common import COMPONENT_STATUSES, LICENSE_TIERS
from ..repositories.component_repository import COMPONENT_SORT_FIELDS, ComponentFilters
from ..services import component_service
from ..validation import parse_batch, parse_search, validate_create, validate_update

admin_components_bp = Blueprint("admin_components", __name__, url_prefix="/api/admin/components")

COMPONENT_FILTERS = {
    "subcategoryId": "uuid",
    "categoryId": "uuid",
    "productId": "uuid",
    "status": COMPONENT_STATUSES,
    "isFree": "bool",
    "requiredTier": LICENSE_TIERS,
    "isFeatured": "bool",
    "isNew": "bool",
    "search": "str",
}
PREVIEW_SIZES = {"large": "preview_image_large", "small": "preview_image_small"}


def component_filters(args, filters=COMPONENT_FILTERS, sort_fields=COMPONENT_SORT_FIELDS):
    """Shared by the admin and public listings."""
    params = parse_search(args, sort_fields=sort_fields, filters=filters)
    tags = [tag.strip() for tag in (args.get("tags") or "").split(",") if tag.strip()]
    return params, ComponentFilters(tags=tags, **params.filters)


@admin_components_bp.get("")
@require_admin
def list_components(ctx):
    params, filters = component_filters(request.args)
    result = component_service.list_components(
        ctx, page=params.page, limit=params.limit, filters=filters,
        sort_by=params.sort_by, sort_order=params.sort_order, public=False,
    )
    return paginated(result, result.items)


@admin_components_bp.post("")
@require_admin
def create_component(ctx):
    data = validate_create(Component, read_json())
    component = component_service.create_component(ctx, data)
    return created(component.to_dict(), "Component created")


@admin_components_bp.get("/stats")
@require_admin
def catalog_stats(ctx):
    return success(component_service.catalog_stats())


@admin_components_bp.post("/batch")
@require_admin
def batch_components(ctx):
    batch = parse_batch(read_json(), ids_key="componentIds", operations=component_service.BATCH_OPERATIONS)
    result = component_service.batch_components(ctx, batch.operation, batch.ids, batch.data)
    return success(result, f"Batch {batch.operation} processed")


@admin_components_bp.get("/<component_id>")
@require_admin
def get_component(ctx, component_id):
    return success(component_service.get_component_details(ctx, component_id, record_view=False))


@admin_components_bp.put("/<component_id>")
@require_admin
def update_component(ctx, component_id):
    patch = validate_update(Component, read_json())
    component = component_service.update_component(ctx, component_id, patch)
    return success(component.to_dict(), "Component updated")


@admin_components_bp.delete("/<component_id>")
@require_admin
def delete_component(ctx, component_id):
    component_service.delete_component(ctx, component_id)
    return success(None, "Component deleted")


@admin_components_bp.post("/<component_id>/duplicate")
@require_admin
def duplicate_component(ctx, component_id):
    copy = component_service.duplicate_component(ctx, component_id)
    return created(copy.to_dict(), "Component duplicated")


@admin_components_bp.post("/<component_id>/status")
@require_admin
def change_status(ctx, component_id):
    status = read_json().get("status")
    if not isinstance(status, str):
        raise ValidationFailed.field("status", "status is required")
    component = component_service.change_status(ctx, component_id, status)
    return success(component.to_dict(), f"Component status set to {status}")


@admin_components_bp.get("/<component_id>/stats")
@require_admin
def component_stats(ctx, component_id):
    return success(component_service.component_stats(component_id))


@admin_components_bp.post("/<component_id>/preview-image")
@require_admin
def upload_preview_image(ctx, component_id):
    """Multipart "file"; form field "size" is large (default) or small."""
    size = request.form.get("size", "large")
    if size not in PREVIEW_SIZES:
        raise ValidationFailed.field("size", "size must be large or small")
    component_service.get_component(component_id)
    uploaded = file_store().upload_image(request.files.get("file"))
    component = component_service.update_component(ctx, component_id, {PREVIEW_SIZES[size]: uploaded.url})
    return success({"file": uploaded.to_dict(), "component": component.to_dict()}, "Preview image uploaded")
