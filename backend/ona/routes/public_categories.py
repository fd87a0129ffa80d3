# Overview: Flask API routes for the public category tree; read-only, anonymous callers allowed.

from flask import Blueprint, request

from ..decorators import optional_auth
from ..envelope import success
from ..errors import ValidationFailed
from ..services import category_service
from ..validation import is_uuid

public_categories_bp = Blueprint("public_categories", __name__, url_prefix="/api/public/categories")


def _product_id():
    product_id = request.args.get("productId") or None
    if product_id is not None and not is_uuid(product_id):
        raise ValidationFailed.field("productId", "productId must be a valid UUID")
    return product_id


@public_categories_bp.get("")
@optional_auth
def list_categories(ctx):
    """Active categories with their active subcategories."""
    return success(category_service.list_public_categories(_product_id()))


@public_categories_bp.get("/navigation")
@optional_auth
def navigation(ctx):
    return success(category_service.navigation(_product_id()))


@public_categories_bp.get("/stats")
@optional_auth
def stats(ctx):
    return success(category_service.public_stats())


@public_categories_bp.get("/<id_or_slug>")
@optional_auth
def get_category(ctx, id_or_slug):
    return success(category_service.get_public_category(id_or_slug, product_id=_product_id()))
