# Overview: Flask API routes for admin component version operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..models import ComponentVersion
from ..models.common import CSS_FRAMEWORKS, FRAMEWORKS
from ..services import version_service
from ..validation import parse_bool, parse_search, validate_create, validate_update

admin_versions_bp = Blueprint(
    "admin_versions", __name__, url_prefix="/api/admin/components/<component_id>"
)

VERSION_FILTERS = {"framework": FRAMEWORKS, "cssFramework": CSS_FRAMEWORKS}


@admin_versions_bp.get("/versions")
@require_admin
def list_versions(ctx, component_id):
    params = parse_search(request.args, filters=VERSION_FILTERS)
    result = version_service.list_versions(
        component_id, page=params.page, limit=params.limit, **params.filters
    )
    return paginated(result, [v.to_dict(include_code=True) for v in result.items])


@admin_versions_bp.post("/versions")
@require_admin
def create_version(ctx, component_id):
    """
    Unchanged content returns the newest existing version (200) instead of
    a duplicate; pass "forceNew": true to always create one.
    """
    payload = dict(read_json())
    force_new = parse_bool(payload.pop("forceNew", None), "forceNew") or False
    data = validate_create(ComponentVersion, payload)
    version, was_created = version_service.create_version(ctx, component_id, data, force_new=force_new)
    if not was_created:
        return success(version.to_dict(include_code=True), "No changes; existing version returned")
    return created(version.to_dict(include_code=True), "Version created")


@admin_versions_bp.get("/versions/stats")
@require_admin
def version_stats(ctx, component_id):
    return success(version_service.version_stats(component_id))


@admin_versions_bp.get("/versions/<version_id>")
@require_admin
def get_version(ctx, component_id, version_id):
    return success(version_service.get_version(component_id, version_id).to_dict(include_code=True))


@admin_versions_bp.put("/versions/<version_id>")
@require_admin
def update_version(ctx, component_id, version_id):
    patch = validate_update(ComponentVersion, read_json(), immutable=("framework", "css_framework"))
    version = version_service.update_version(ctx, component_id, version_id, patch)
    return success(version.to_dict(include_code=True), "Version updated")


@admin_versions_bp.delete("/versions/<version_id>")
@require_admin
def delete_version(ctx, component_id, version_id):
    version_service.delete_version(ctx, component_id, version_id)
    return success(None, "Version deleted")


@admin_versions_bp.post("/versions/<version_id>/set-default")
@require_admin
def set_default(ctx, component_id, version_id):
    version = version_service.set_default(ctx, component_id, version_id)
    return success(version.to_dict(include_code=True), "Default version updated")


@admin_versions_bp.get("/versions/<version_id>/compare/<other_id>")
@require_admin
def compare_versions(ctx, component_id, version_id, other_id):
    return success(version_service.compare_versions(component_id, version_id, other_id))


@admin_versions_bp.get("/frameworks")
@require_admin
def framework_variants(ctx, component_id):
    return success(version_service.framework_variants(component_id))
