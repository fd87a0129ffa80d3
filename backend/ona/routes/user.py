# Overview: Flask API routes for the signed-in user (profile, licenses, subscription, permissions, favorites).

from flask import Blueprint, request

from ..decorators import read_json, require_auth
from ..envelope import paginated, success
from ..services import user_service
from ..validation import parse_search, to_snake

user_bp = Blueprint("user", __name__, url_prefix="/api/user")


@user_bp.get("/profile")
@require_auth
def get_profile(ctx):
    return success(user_service.get_profile(ctx))


@user_bp.put("/profile")
@require_auth
def update_profile(ctx):
    """fullName, avatarUrl, preferredFramework, preferredCss."""
    patch = {to_snake(key): value for key, value in read_json().items()}
    user_service.update_preferences(ctx, patch)
    return success(user_service.get_profile(ctx), "Profile updated")


@user_bp.get("/licenses")
@require_auth
def list_licenses(ctx):
    return success(user_service.list_licenses(ctx))


@user_bp.get("/subscription")
@require_auth
def get_subscription(ctx):
    return success(user_service.subscription(ctx))


@user_bp.get("/permissions")
@require_auth
def get_permissions(ctx):
    return success(user_service.permissions(ctx))


@user_bp.get("/favorites")
@require_auth
def list_favorites(ctx):
    params = parse_search(request.args)
    result = user_service.list_favorites(ctx, page=params.page, limit=params.limit)
    return paginated(result, result.items)


@user_bp.post("/favorites/<component_id>")
@require_auth
def add_favorite(ctx, component_id):
    return success(user_service.add_favorite(ctx, component_id), "Added to favorites")


@user_bp.delete("/favorites/<component_id>")
@require_auth
def remove_favorite(ctx, component_id):
    return success(user_service.remove_favorite(ctx, component_id), "Removed from favorites")
