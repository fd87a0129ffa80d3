# Overview: Flask API routes for admin product operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..errors import ValidationFailed
from ..models import Product
from ..services import product_service
from ..validation import parse_search, validate_create, validate_update

admin_products_bp = Blueprint("admin_products", __name__, url_prefix="/api/admin/products")

PRODUCT_FILTERS = {"search": "str", "isActive": "bool"}


@admin_products_bp.get("")
@require_admin
def list_products(ctx):
    params = parse_search(request.args, filters=PRODUCT_FILTERS)
    result = product_service.list_products(
        page=params.page, limit=params.limit, sort_by=params.sort_by, sort_order=params.sort_order,
        **params.filters,
    )
    return paginated(result, result.items)


@admin_products_bp.post("")
@require_admin
def create_product(ctx):
    data = validate_create(Product, read_json())
    product = product_service.create_product(ctx, data)
    return created(product.to_dict(), "Product created")


@admin_products_bp.post("/check-slug")
@require_admin
def check_slug(ctx):
    data = read_json()
    slug = data.get("slug")
    if not isinstance(slug, str) or not slug.strip():
        raise ValidationFailed.field("slug", "is required")
    result = product_service.check_slug(slug.strip(), data.get("excludeId"))
    existing = result.pop("existing")
    return success({**result, "existingProduct": existing})


@admin_products_bp.get("/<product_id>")
@require_admin
def get_product(ctx, product_id):
    product = product_service.get_product(product_id)
    return success(product.to_dict())


@admin_products_bp.put("/<product_id>")
@require_admin
def update_product(ctx, product_id):
    patch = validate_update(Product, read_json())
    product = product_service.update_product(ctx, product_id, patch)
    return success(product.to_dict(), "Product updated")


@admin_products_bp.delete("/<product_id>")
@require_admin
def delete_product(ctx, product_id):
    product_service.delete_product(ctx, product_id)
    return success(None, "Product deleted")
