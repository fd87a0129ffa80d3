# Overview: Flask API routes for the public component catalog; published components only, code gated by license.

# backend/ona/routes/public_components.py
"""
Storefront component endpoints.

Every listing is annotated per caller with hasAccess, accessLevel,
canViewCode, canCopy and canDownload. Full code is only returned when
canViewCode is true.
"""

from flask import Blueprint, request

from ..decorators import optional_auth, read_json
from ..envelope import paginated, success
from ..errors import ValidationFailed
from ..models.common import CSS_FRAMEWORKS, FRAMEWORKS, LICENSE_TIERS
from ..services import component_service, version_service
from ..validation import parse_search
from .admin_components import component_filters

public_components_bp = Blueprint("public_components", __name__, url_prefix="/api/public/components")

PUBLIC_FILTERS = {
    "subcategoryId": "uuid",
    "categoryId": "uuid",
    "productId": "uuid",
    "isFree": "bool",
    "requiredTier": LICENSE_TIERS,
    "isFeatured": "bool",
    "isNew": "bool",
    "search": "str",
}
SEARCH_FILTERS = {key: kind for key, kind in PUBLIC_FILTERS.items() if key != "search"}
SEARCH_SORT_FIELDS = {name: name for name in component_service.SEARCH_SORTS}
SHOWCASE_LIMIT = 8
COPY_TARGETS = ("component", "code", "dark_mode", "integration")


def _showcase_limit() -> int:
    if "limit" not in request.args:
        return SHOWCASE_LIMIT
    return parse_search(request.args).limit


@public_components_bp.get("")
@optional_auth
def list_components(ctx):
    params, filters = component_filters(request.args, PUBLIC_FILTERS)
    result = component_service.list_components(
        ctx, page=params.page, limit=params.limit, filters=filters,
        sort_by=params.sort_by, sort_order=params.sort_order,
    )
    return paginated(result, result.items)


@public_components_bp.get("/search")
@optional_auth
def search_components(ctx):
    """?q= (2+ chars), tags=a,b, sortBy newest|popular|conversion|name."""
    params, filters = component_filters(request.args, SEARCH_FILTERS, SEARCH_SORT_FIELDS)
    result = component_service.search_components(
        ctx,
        query=request.args.get("q", ""),
        page=params.page,
        limit=params.limit,
        filters=filters,
        sort=params.sort_by or "newest",
        direction=params.sort_order if request.args.get("sortOrder") else None,
    )
    return paginated(result, result.items)


@public_components_bp.get("/featured")
@optional_auth
def featured_components(ctx):
    return success(component_service.featured_components(ctx, limit=_showcase_limit()))


@public_components_bp.get("/popular")
@optional_auth
def popular_components(ctx):
    return success(component_service.popular_components(ctx, limit=_showcase_limit()))


@public_components_bp.get("/<id_or_slug>")
@optional_auth
def get_component(ctx, id_or_slug):
    """Counts a view; X-Session-Id and Referer are stored with it when present."""
    data = component_service.get_component_details(
        ctx,
        id_or_slug,
        session_id=(request.headers.get("X-Session-Id") or "")[:255] or None,
        referrer=(request.referrer or "")[:512] or None,
    )
    return success(data)


@public_components_bp.get("/<component_id>/versions/default")
@optional_auth
def default_version(ctx, component_id):
    framework = request.args.get("framework") or None
    css_framework = request.args.get("cssFramework") or None
    if framework is not None and framework not in FRAMEWORKS:
        raise ValidationFailed.field("framework", f"framework must be one of: {', '.join(FRAMEWORKS)}")
    if css_framework is not None and css_framework not in CSS_FRAMEWORKS:
        raise ValidationFailed.field("cssFramework", f"cssFramework must be one of: {', '.join(CSS_FRAMEWORKS)}")
    return success(version_service.public_default_version(
        ctx, component_id, framework=framework, css_framework=css_framework,
    ))


@public_components_bp.get("/<component_id>/recommendations")
@optional_auth
def recommendations(ctx, component_id):
    return success(component_service.recommendations(ctx, component_id))


@public_components_bp.post("/<component_id>/copy")
@optional_auth
def copy_component(ctx, component_id):
    data = read_json(required=False)
    target = data.get("target", "component")
    if target not in COPY_TARGETS:
        raise ValidationFailed.field("target", f"target must be one of: {', '.join(COPY_TARGETS)}")
    result = component_service.record_copy(ctx, component_id, version_id=data.get("versionId"), target=target)
    return success(result, "Copy recorded")
