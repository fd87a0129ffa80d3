# Overview: Service-layer operations for components; listings with access control, lifecycle, counters, and stats.

"""
Access rules:
- free components: full access for everyone
- anonymous callers: preview only
- admins: full access
- otherwise the caller's best usable license tier must rank at or above
  the component's required_tier

Public listings only ever show published components; admin listings see
every status.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta

from ..context import RequestContext
from ..errors import NotFoundError, PremiumRequiredError, ValidationFailed
from ..extensions import db
from ..models import Component
from ..models.common import COMPONENT_STATUSES
from ..repositories import activity_repository, base, component_repository, subcategory_repository, version_repository
from ..repositories.component_repository import ComponentFilters
from ..time_utils import utcnow
from ..validation import is_uuid, validate_update
from . import audit_service, license_service
from .batch import run_batch
from .common import ensure_slug_free, next_sort_order, require, resolve_slug, sanitize, validate_slug_format
from .concurrency import atomic, run_with_retry

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "subcategory_id", "name", "slug", "description", "is_free", "required_tier", "access_type",
    "status", "is_new", "is_featured", "conversion_rate", "tested_companies",
    "preview_image_large", "preview_image_small", "preview_video_url", "tags", "sort_order",
)
BATCH_OPERATIONS = ("publish", "archive", "draft", "delete", "update", "feature", "unfeature")
SEARCH_SORTS = {
    "newest": ("publishedAt", "desc"),
    "popular": ("viewCount", "desc"),
    "conversion": ("conversionRate", "desc"),
    "name": ("name", "asc"),
}
MIN_SEARCH_LENGTH = 2
HIGH_CONVERSION_THRESHOLD = 5.0
RECOMMENDATION_SIZE = 4
SLUG_CONFLICT = "A component with this slug already exists in this subcategory"


# -- Access control --

@dataclass(frozen=True)
class Viewer:
    user_id: str | None
    is_admin: bool
    tier_rank: int


def viewer_for(ctx: RequestContext | None) -> Viewer:
    """Resolve the caller's license tier once per request."""
    if ctx is None or not ctx.is_authenticated:
        return Viewer(user_id=None, is_admin=False, tier_rank=0)
    return Viewer(
        user_id=ctx.user_id,
        is_admin=ctx.is_admin,
        tier_rank=license_service.user_tier_rank(ctx.user_id),
    )


def _full_access() -> dict:
    return {"hasAccess": True, "accessLevel": "full_access", "canViewCode": True, "canCopy": True, "canDownload": True}


def _preview_only() -> dict:
    return {"hasAccess": False, "accessLevel": "preview_only", "canViewCode": False, "canCopy": False, "canDownload": False}


def access_for(component: Component, viewer: Viewer) -> dict:
    if component.is_free or viewer.is_admin:
        return _full_access()
    if viewer.user_id is None:
        return _preview_only()
    if license_service.tier_satisfies(viewer.tier_rank, component.required_tier):
        return _full_access()
    return _preview_only()


def annotate(component: Component, viewer: Viewer) -> dict:
    return {**component.to_dict(), **access_for(component, viewer)}


def _visible(component: Component | None, viewer: Viewer) -> bool:
    return component is not None and (viewer.is_admin or component.status == "published")


# -- Reads --

def list_components(
    ctx: RequestContext | None,
    *,
    page: int,
    limit: int,
    filters: ComponentFilters | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    public: bool = True,
) -> base.Page:
    filters = filters or ComponentFilters()
    if public:
        filters.status = "published"
    viewer = viewer_for(ctx)
    result = component_repository.paginate(
        page=page, limit=limit, filters=filters, sort_by=sort_by, sort_order=sort_order
    )
    return result.map(lambda c: annotate(c, viewer))


def search_components(
    ctx: RequestContext | None,
    *,
    query: str,
    page: int,
    limit: int,
    filters: ComponentFilters | None = None,
    sort: str = "newest",
    direction: str | None = None,
) -> base.Page:
    query = (query or "").strip()
    if len(query) < MIN_SEARCH_LENGTH:
        raise ValidationFailed.field("q", f"Search query must be at least {MIN_SEARCH_LENGTH} characters")
    if sort not in SEARCH_SORTS:
        raise ValidationFailed.field("sortBy", f"sortBy must be one of: {', '.join(SEARCH_SORTS)}")
    filters = filters or ComponentFilters()
    filters.search = query
    sort_by, default_direction = SEARCH_SORTS[sort]
    return list_components(
        ctx, page=page, limit=limit, filters=filters,
        sort_by=sort_by, sort_order=direction or default_direction,
    )


def get_component(component_id: str) -> Component:
    return require(component_repository.find_by_id(component_id), "Component", component_id)


def get_by_slug(slug: str, subcategory_id: str | None = None) -> Component:
    return require(component_repository.find_by_slug(slug, subcategory_id), "Component", slug)


def get_component_details(ctx: RequestContext | None, id_or_slug: str, *, record_view: bool = True,
                          session_id: str | None = None, referrer: str | None = None) -> dict:
    """
    Public detail view: annotated component, its versions (code withheld
    without access), and its subcategory. Counts a view unless told not to.
    """
    viewer = viewer_for(ctx)
    if is_uuid(id_or_slug):
        component = component_repository.find_by_id(id_or_slug)
    else:
        component = component_repository.find_by_slug(id_or_slug)
    if not _visible(component, viewer):
        raise NotFoundError.for_entity("Component", id_or_slug)

    access = access_for(component, viewer)
    if record_view:
        record_view_event(ctx, component.id, session_id=session_id, referrer=referrer)
        db.session.refresh(component)

    data = {**component.to_dict(), **access}
    data["versions"] = [
        v.to_dict(include_code=access["canViewCode"]) for v in version_repository.find_by_component(component.id)
    ]
    data["subcategory"] = component.subcategory.to_dict() if component.subcategory else None
    return data


def featured_components(ctx: RequestContext | None, *, limit: int = 8) -> list[dict]:
    viewer = viewer_for(ctx)
    rows = component_repository.find_with_filters(
        ComponentFilters(status="published", is_featured=True),
        order_by=(Component.sort_order.asc(), Component.published_at.desc(), Component.id.asc()),
        limit=limit,
    )
    return [annotate(c, viewer) for c in rows]


def popular_components(ctx: RequestContext | None, *, limit: int = 8) -> list[dict]:
    viewer = viewer_for(ctx)
    rows = component_repository.find_with_filters(
        ComponentFilters(status="published"),
        order_by=(Component.view_count.desc(), Component.copy_count.desc(), Component.id.asc()),
        limit=limit,
    )
    return [annotate(c, viewer) for c in rows]


def _top(filters: ComponentFilters, order_by, exclude_id: str, size: int) -> list[Component]:
    rows = component_repository.find_with_filters(filters, order_by=order_by, limit=size + 1)
    return [c for c in rows if c.id != exclude_id][:size]


def recommendations(ctx: RequestContext | None, component_id: str, *, size: int = RECOMMENDATION_SIZE) -> dict:
    viewer = viewer_for(ctx)
    component = component_repository.find_by_id(component_id)
    if not _visible(component, viewer):
        raise NotFoundError.for_entity("Component", component_id)

    groups = {
        "similar": _top(
            ComponentFilters(status="published", subcategory_id=component.subcategory_id),
            (Component.view_count.desc(), Component.id.asc()), component.id, size,
        ),
        "trending": _top(
            ComponentFilters(status="published"),
            (Component.view_count.desc(), Component.id.asc()), component.id, size,
        ),
        "new": _top(
            ComponentFilters(status="published", is_new=True),
            (Component.published_at.desc(), Component.id.asc()), component.id, size,
        ),
        "highConversion": _top(
            ComponentFilters(status="published", min_conversion_rate=HIGH_CONVERSION_THRESHOLD),
            (Component.conversion_rate.desc(), Component.id.asc()), component.id, size,
        ),
    }
    return {key: [annotate(c, viewer) for c in rows] for key, rows in groups.items()}


# -- Writes --

def _status_stamps(status: str, component: Component | None = None) -> dict:
    now = utcnow()
    stamps: dict = {}
    if status == "published" and (component is None or component.published_at is None):
        stamps["published_at"] = now
    if status == "archived":
        stamps["archived_at"] = now
    elif component is not None and component.archived_at is not None:
        stamps["archived_at"] = None
    return stamps


def create_component(ctx: RequestContext, data: dict, *, commit: bool = True) -> Component:
    data = dict(data)
    subcategory_id = data.get("subcategory_id")
    require(subcategory_repository.find_by_id(subcategory_id), "Subcategory", subcategory_id)
    data["slug"] = resolve_slug(data)
    data.setdefault("required_tier", "pro")
    data.setdefault("access_type", "preview_only")
    data.setdefault("status", "draft")
    data.setdefault("is_new", True)
    data.update(_status_stamps(data["status"]))

    with atomic(SLUG_CONFLICT, commit=commit):
        ensure_slug_free(component_repository.find_by_slug, data["slug"], subcategory_id, label="Component")
        if data.get("sort_order") is None:
            data["sort_order"] = next_sort_order(component_repository.find_by_parent(subcategory_id))
        component = component_repository.create(data)
        audit_service.record(
            ctx, "component.create", "component", component.id,
            {"name": component.name, "slug": component.slug, "subcategoryId": subcategory_id},
        )
    logger.info("Created component %s (%s)", component.id, component.slug)
    return component


def update_component(ctx: RequestContext, component_id: str, patch: dict, *, commit: bool = True) -> Component:
    component = get_component(component_id)
    patch = sanitize(patch, UPDATABLE_FIELDS)

    target_subcategory = patch.get("subcategory_id", component.subcategory_id)
    if target_subcategory != component.subcategory_id:
        require(subcategory_repository.find_by_id(target_subcategory), "Subcategory", target_subcategory)
    slug = patch.get("slug", component.slug)
    if slug != component.slug or target_subcategory != component.subcategory_id:
        validate_slug_format(slug)
        ensure_slug_free(
            component_repository.find_by_slug, slug, target_subcategory,
            label="Component", exclude_id=component.id,
        )
    if "status" in patch and patch["status"] != component.status:
        patch.update(_status_stamps(patch["status"], component))

    with atomic(SLUG_CONFLICT, commit=commit):
        component = component_repository.update(component_id, patch)
        audit_service.record(ctx, "component.update", "component", component_id, patch)
    return component


def delete_component(ctx: RequestContext, component_id: str, *, commit: bool = True) -> None:
    """Versions, views, copies, and favorites go with it (ON DELETE CASCADE)."""
    component = get_component(component_id)
    with atomic(commit=commit):
        audit_service.record(ctx, "component.delete", "component", component_id, {"slug": component.slug})
        component_repository.delete(component_id)
    logger.info("Deleted component %s", component_id)


def change_status(ctx: RequestContext, component_id: str, status: str, *, commit: bool = True) -> Component:
    if status not in COMPONENT_STATUSES:
        raise ValidationFailed.field("status", f"status must be one of: {', '.join(COMPONENT_STATUSES)}")
    component = get_component(component_id)
    if component.status == status:
        return component
    patch = {"status": status, **_status_stamps(status, component)}
    with atomic(commit=commit):
        previous = component.status
        component = component_repository.update(component_id, patch)
        audit_service.record(
            ctx, "component.status", "component", component_id, {"from": previous, "to": status}
        )
    logger.info("Component %s status %s -> %s", component_id, previous, status)
    return component


def _copy_slug(slug: str, subcategory_id: str) -> str:
    base_slug = f"{slug}-copy"
    taken = component_repository.slugs_like(base_slug, subcategory_id)
    if base_slug not in taken:
        return base_slug
    n = 2
    while f"{base_slug}-{n}" in taken:
        n += 1
    return f"{base_slug}-{n}"


VERSION_COPY_FIELDS = (
    "version_number", "framework", "css_framework", "code_preview", "code_full", "code_encrypted",
    "dependencies", "config_required", "supports_dark_mode", "dark_mode_code", "integrations",
    "integration_code", "files", "is_default",
)
COMPONENT_COPY_FIELDS = (
    "subcategory_id", "description", "is_free", "required_tier", "access_type", "conversion_rate",
    "tested_companies", "preview_image_large", "preview_image_small", "preview_video_url", "tags",
)


def duplicate_component(ctx: RequestContext, component_id: str) -> Component:
    """Draft copy with " (copy)" appended to the name and a free "-copy[-n]" slug; versions included."""
    source = get_component(component_id)
    data = {field: getattr(source, field) for field in COMPONENT_COPY_FIELDS}
    data["tags"] = list(source.tags or [])
    data["tested_companies"] = list(source.tested_companies or [])
    data["name"] = f"{source.name} (copy)"[:255]
    data["slug"] = _copy_slug(source.slug, source.subcategory_id)
    data["status"] = "draft"
    data["is_featured"] = False

    with atomic(SLUG_CONFLICT):
        copy = create_component(ctx, data, commit=False)
        for version in version_repository.find_by_component(source.id):
            version_repository.create(
                {"component_id": copy.id, **{field: getattr(version, field) for field in VERSION_COPY_FIELDS}}
            )
        audit_service.record(ctx, "component.duplicate", "component", copy.id, {"sourceId": source.id})
    return copy


# -- Counters --

def record_view_event(ctx: RequestContext | None, component_id: str, *,
                      session_id: str | None = None, referrer: str | None = None) -> None:
    """One UPDATE for the counter plus a component_views row, retried on lock errors."""
    ctx = ctx or RequestContext()

    def _op():
        if not component_repository.increment_view_count(component_id):
            raise NotFoundError.for_entity("Component", component_id)
        activity_repository.add_view({
            "component_id": component_id,
            "user_id": ctx.user_id,
            "session_id": session_id,
            "referrer": referrer,
            "ip_address": ctx.ip_address,
            "user_agent": ctx.user_agent,
        })
        db.session.commit()

    run_with_retry(_op)


def record_copy(ctx: RequestContext | None, component_id: str, *, version_id: str | None = None,
                target: str = "component") -> dict:
    """Premium code can only be copied with a sufficient license (PREMIUM_REQUIRED)."""
    ctx = ctx or RequestContext()
    viewer = viewer_for(ctx)
    component = component_repository.find_by_id(component_id)
    if not _visible(component, viewer):
        raise NotFoundError.for_entity("Component", component_id)
    if not access_for(component, viewer)["canCopy"]:
        raise PremiumRequiredError(
            "A license is required to copy this component",
            details={"requiredTier": component.required_tier},
        )
    if version_id is not None:
        version = version_repository.find_by_id(version_id)
        if version is None or version.component_id != component_id:
            raise NotFoundError.for_entity("Version", version_id)

    best = license_service.highest_license(ctx.user_id) if ctx.user_id else None

    def _op():
        component_repository.increment_copy_count(component_id)
        activity_repository.add_copy({
            "component_id": component_id,
            "version_id": version_id,
            "user_id": ctx.user_id,
            "license_id": best.id if best else None,
            "copied_target": target,
            "ip_address": ctx.ip_address,
            "user_agent": ctx.user_agent,
        })
        db.session.commit()

    run_with_retry(_op)
    db.session.refresh(component)
    return {"componentId": component_id, "copyCount": component.copy_count}


# -- Batch --

def batch_components(ctx: RequestContext, operation: str, ids: list[str], data: dict | None = None) -> dict:
    if operation == "update":
        patch = validate_update(Component, data or {})
        if not patch:
            raise ValidationFailed.field("data", "data must contain at least one field to update")
    statuses = {"publish": "published", "archive": "archived", "draft": "draft"}

    def handler(component_id: str):
        if operation in statuses:
            return change_status(ctx, component_id, statuses[operation], commit=False).to_dict()
        if operation == "feature":
            return update_component(ctx, component_id, {"is_featured": True}, commit=False).to_dict()
        if operation == "unfeature":
            return update_component(ctx, component_id, {"is_featured": False}, commit=False).to_dict()
        if operation == "update":
            return update_component(ctx, component_id, patch, commit=False).to_dict()
        delete_component(ctx, component_id, commit=False)
        return None

    return run_batch(operation, ids, handler, result_key="component")


# -- Stats --

def component_stats(component_id: str) -> dict:
    component = get_component(component_id)
    month_ago = utcnow() - timedelta(days=30)
    return {
        "component": component.to_dict(),
        "viewCount": component.view_count,
        "copyCount": component.copy_count,
        "viewsLast30Days": activity_repository.count_views(component_id, since=month_ago),
        "copiesLast30Days": activity_repository.count_copies(component_id, since=month_ago),
        "uniqueViewers": activity_repository.count_unique_viewers(component_id),
        "favoritesCount": activity_repository.count_favorites(component_id),
        "versionsCount": len(version_repository.find_by_component(component_id)),
        "frameworks": version_repository.framework_stats(component_id),
        "copyRate": round(component.copy_count / component.view_count * 100, 2) if component.view_count else 0.0,
    }


def catalog_stats() -> dict:
    by_status = component_repository.count_by_status()
    return {
        "totalComponents": component_repository.count_all(),
        "freeComponents": component_repository.count_matching(ComponentFilters(is_free=True)),
        "premiumComponents": component_repository.count_matching(ComponentFilters(is_free=False)),
        "publishedComponents": by_status.get("published", 0),
        "draftComponents": by_status.get("draft", 0),
        "archivedComponents": by_status.get("archived", 0),
        "deprecatedComponents": by_status.get("deprecated", 0),
        "averageConversionRate": component_repository.average_conversion_rate(),
        "topCategories": component_repository.top_categories(),
        "topFrameworks": component_repository.top_frameworks(),
    }
