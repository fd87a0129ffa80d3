# Overview: Service-layer operations for component versions; numbering, defaults, variants, and comparison.

from __future__ import annotations

import logging

from ..context import RequestContext
from ..errors import ConflictError, NotFoundError, ValidationFailed
from ..models import Component, ComponentVersion
from ..models.common import CSS_FRAMEWORKS, FRAMEWORKS
from ..repositories import base, version_repository
from ..validation import SEMVER_PATTERN
from . import audit_service, component_service
from .common import require, sanitize
from .concurrency import atomic

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "version_number", "code_preview", "code_full", "code_encrypted", "dependencies", "config_required",
    "supports_dark_mode", "dark_mode_code", "integrations", "integration_code", "files", "is_default",
)
# Fields whose change makes a new version worth creating
CONTENT_FIELDS = (
    "code_preview", "code_full", "code_encrypted", "dependencies", "config_required",
    "supports_dark_mode", "dark_mode_code", "integrations", "integration_code", "files",
)
COMPARE_FIELDS = ("version_number", "framework", "css_framework", *CONTENT_FIELDS, "is_default")
VERSION_CONFLICT = "This version already exists for the framework pair"


def _parse_semver(number: str) -> tuple[int, int, int]:
    parts = (number or "").split(".")
    values = []
    for index in range(3):
        try:
            values.append(int(parts[index]))
        except (IndexError, ValueError):
            values.append(1 if index == 0 else 0)
    return values[0], values[1], values[2]


def next_version_number(component_id: str, framework: str) -> str:
    """'1.0.0' for the first version of a framework, otherwise highest + one patch."""
    numbers = version_repository.version_numbers(component_id, framework)
    if not numbers:
        return "1.0.0"
    major, minor, patch = max(_parse_semver(n) for n in numbers)
    return f"{major}.{minor}.{patch + 1}"


def changed_fields(version: ComponentVersion, data: dict, fields=CONTENT_FIELDS) -> list[str]:
    defaults = {"supports_dark_mode": False}
    return [field for field in fields if getattr(version, field) != data.get(field, defaults.get(field))]


def _component(component_id: str) -> Component:
    return component_service.get_component(component_id)


def get_version(component_id: str, version_id: str) -> ComponentVersion:
    version = version_repository.find_by_id(version_id)
    if version is None or version.component_id != component_id:
        raise NotFoundError.for_entity("Version", version_id)
    return version


def list_versions(component_id: str, *, page: int, limit: int, framework: str | None = None,
                  css_framework: str | None = None) -> base.Page:
    _component(component_id)
    return version_repository.paginate(
        component_id, page=page, limit=limit, framework=framework, css_framework=css_framework
    )


def default_version(component_id: str) -> ComponentVersion:
    """The flagged default, else the newest version."""
    _component(component_id)
    version = version_repository.find_default(component_id) or version_repository.find_latest(component_id)
    return require(version, "Version")


def public_default_version(ctx: RequestContext | None, component_id: str, *,
                           framework: str | None = None, css_framework: str | None = None) -> dict:
    """Default (or framework-specific) version with code withheld unless the caller has access."""
    viewer = component_service.viewer_for(ctx)
    component = component_service.get_component(component_id)
    if not (viewer.is_admin or component.status == "published"):
        raise NotFoundError.for_entity("Component", component_id)
    if framework is not None:
        versions = version_repository.find_by_framework(component_id, framework, css_framework)
        version = require(versions[0] if versions else None, "Version")
    else:
        version = default_version(component_id)
    access = component_service.access_for(component, viewer)
    return {**version.to_dict(include_code=access["canViewCode"]), **access}


def framework_variants(component_id: str) -> list[dict]:
    """Every (framework, css_framework) pair with its newest version, if any."""
    _component(component_id)
    newest: dict[tuple[str, str], ComponentVersion] = {}
    for version in version_repository.find_by_component(component_id):
        newest.setdefault((version.framework, version.css_framework), version)
    variants = []
    for framework in FRAMEWORKS:
        for css_framework in CSS_FRAMEWORKS:
            version = newest.get((framework, css_framework))
            variants.append({
                "framework": framework,
                "cssFramework": css_framework,
                "isAvailable": version is not None,
                "version": version.to_dict(include_code=False) if version else None,
            })
    return variants


def create_version(ctx: RequestContext, component_id: str, data: dict, *,
                   force_new: bool = False) -> tuple[ComponentVersion, bool]:
    """
    Returns (version, created). When none of the content fields changed the
    newest existing version of the same framework pair comes back with
    created=False instead of a duplicate (unless force_new).
    """
    _component(component_id)
    data = dict(data)
    framework = data["framework"]
    css_framework = data["css_framework"]

    existing = version_repository.find_by_framework(component_id, framework, css_framework)
    if existing and not force_new and "version_number" not in data:
        if not changed_fields(existing[0], data):
            logger.info("Version content unchanged for %s/%s; returning %s", framework, css_framework, existing[0].id)
            return existing[0], False

    number = data.get("version_number")
    if number:
        if not SEMVER_PATTERN.match(number):
            raise ValidationFailed.field("versionNumber", "versionNumber must look like X.Y.Z")
        if version_repository.find_by_version(component_id, framework, css_framework, number) is not None:
            raise ConflictError(VERSION_CONFLICT, details={"versionNumber": number})
    else:
        data["version_number"] = next_version_number(component_id, framework)

    data["component_id"] = component_id
    with atomic(VERSION_CONFLICT):
        if data.get("is_default"):
            version_repository.lock_component_versions(component_id)
        version = version_repository.create(data)
        audit_service.record(
            ctx, "version.create", "component_version", version.id,
            {"componentId": component_id, "versionNumber": version.version_number,
             "framework": framework, "cssFramework": css_framework},
        )
    logger.info("Created version %s %s/%s for component %s", version.version_number, framework, css_framework, component_id)
    return version, True


def update_version(ctx: RequestContext, component_id: str, version_id: str, patch: dict) -> ComponentVersion:
    version = get_version(component_id, version_id)
    patch = sanitize(patch, UPDATABLE_FIELDS)
    if "version_number" in patch and patch["version_number"] != version.version_number:
        if not SEMVER_PATTERN.match(patch["version_number"] or ""):
            raise ValidationFailed.field("versionNumber", "versionNumber must look like X.Y.Z")
        clash = version_repository.find_by_version(
            component_id, version.framework, version.css_framework, patch["version_number"]
        )
        if clash is not None:
            raise ConflictError(VERSION_CONFLICT, details={"versionNumber": patch["version_number"]})
    if patch.get("is_default") is False and version.is_default:
        raise ConflictError("Set another version as default instead of unsetting the current one")
    with atomic(VERSION_CONFLICT):
        version = version_repository.update(version_id, patch)
        audit_service.record(ctx, "version.update", "component_version", version_id, patch)
    return version


def delete_version(ctx: RequestContext, component_id: str, version_id: str) -> None:
    version = get_version(component_id, version_id)
    if version.is_default:
        raise ConflictError("The default version cannot be deleted", details={"versionId": version_id})
    with atomic():
        audit_service.record(
            ctx, "version.delete", "component_version", version_id,
            {"componentId": component_id, "versionNumber": version.version_number},
        )
        version_repository.delete(version_id)


def set_default(ctx: RequestContext, component_id: str, version_id: str) -> ComponentVersion:
    """Clear the previous default and flag this one in the same transaction."""
    get_version(component_id, version_id)
    with atomic("Another default version was set concurrently"):
        version_repository.lock_component_versions(component_id)
        version_repository.set_as_default(version_id)
        audit_service.record(ctx, "version.set_default", "component_version", version_id, {"componentId": component_id})
    logger.info("Version %s is now the default for component %s", version_id, component_id)
    return version_repository.find_by_id(version_id)


def compare_versions(component_id: str, version_id: str, other_id: str) -> dict:
    left = get_version(component_id, version_id)
    right = get_version(component_id, other_id)
    right_data = {field: getattr(right, field) for field in COMPARE_FIELDS}
    changed = changed_fields(left, right_data, COMPARE_FIELDS)
    return {
        "base": left.to_dict(include_code=False),
        "target": right.to_dict(include_code=False),
        "changedFields": [_camel(field) for field in changed],
        "hasChanges": bool(changed),
    }


def version_stats(component_id: str) -> dict:
    _component(component_id)
    breakdown = version_repository.framework_stats(component_id)
    latest = version_repository.find_latest(component_id)
    default = version_repository.find_default(component_id)
    return {
        "totalVersions": sum(row["count"] for row in breakdown),
        "frameworkBreakdown": breakdown,
        "latestVersion": latest.version_number if latest else None,
        "defaultVersionId": default.id if default else None,
        "defaultFramework": default.framework if default else None,
    }


def _camel(field: str) -> str:
    head, *rest = field.split("_")
    return head + "".join(part.title() for part in rest)
