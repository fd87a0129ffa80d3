# Overview: Service-layer operations for subcategories; mirrors categories one level down, plus moves.

from __future__ import annotations

import logging

from ..context import RequestContext
from ..errors import ConflictError, ValidationFailed
from ..models import Subcategory
from ..repositories import base, category_repository, subcategory_repository
from ..validation import is_uuid, validate_update
from . import audit_service
from .batch import run_batch
from .common import (
    ensure_slug_free,
    next_sort_order,
    reorder_siblings,
    require,
    resolve_slug,
    sanitize,
    slug_availability,
    validate_slug_format,
)
from .concurrency import atomic

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "slug", "description", "sort_order", "is_active")
BATCH_OPERATIONS = ("activate", "deactivate", "delete", "update", "move")
SLUG_CONFLICT = "A subcategory with this slug already exists in this category"


def serialize_many(subcategories: list[Subcategory]) -> list[dict]:
    counts = subcategory_repository.component_counts([s.id for s in subcategories])
    return [{**s.to_dict(), "componentsCount": counts.get(s.id, 0)} for s in subcategories]


def list_subcategories(
    *,
    page: int,
    limit: int,
    category_id: str | None = None,
    is_active: bool | None = None,
    search: str | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> base.Page:
    result = subcategory_repository.paginate(
        page=page, limit=limit, category_id=category_id, is_active=is_active,
        search=search, sort_by=sort_by, sort_order=sort_order,
    )
    return base.Page(items=serialize_many(result.items), page=result.page, limit=result.limit, total=result.total)


def get_subcategory(subcategory_id: str) -> Subcategory:
    return require(subcategory_repository.find_by_id(subcategory_id), "Subcategory", subcategory_id)


def get_subcategory_details(subcategory_id: str) -> dict:
    subcategory = get_subcategory(subcategory_id)
    data = serialize_many([subcategory])[0]
    data["category"] = subcategory.category.to_dict() if subcategory.category else None
    return data


def create_subcategory(ctx: RequestContext, data: dict, *, commit: bool = True) -> Subcategory:
    data = dict(data)
    category_id = data.get("category_id")
    require(category_repository.find_by_id(category_id), "Category", category_id)
    data["slug"] = resolve_slug(data)

    with atomic(SLUG_CONFLICT, commit=commit):
        ensure_slug_free(subcategory_repository.find_by_slug, data["slug"], category_id, label="Subcategory")
        if data.get("sort_order") is None:
            data["sort_order"] = next_sort_order(subcategory_repository.find_by_parent(category_id))
        subcategory = subcategory_repository.create(data)
        audit_service.record(
            ctx, "subcategory.create", "subcategory", subcategory.id,
            {"name": subcategory.name, "slug": subcategory.slug, "categoryId": category_id},
        )
    logger.info("Created subcategory %s (%s)", subcategory.id, subcategory.slug)
    return subcategory


def update_subcategory(ctx: RequestContext, subcategory_id: str, patch: dict, *, commit: bool = True) -> Subcategory:
    subcategory = get_subcategory(subcategory_id)
    patch = sanitize(patch, UPDATABLE_FIELDS)
    if "slug" in patch and patch["slug"] != subcategory.slug:
        validate_slug_format(patch["slug"])
        ensure_slug_free(
            subcategory_repository.find_by_slug, patch["slug"], subcategory.category_id,
            label="Subcategory", exclude_id=subcategory.id,
        )
    with atomic(SLUG_CONFLICT, commit=commit):
        subcategory = subcategory_repository.update(subcategory_id, patch)
        audit_service.record(ctx, "subcategory.update", "subcategory", subcategory_id, patch)
    return subcategory


def delete_subcategory(ctx: RequestContext, subcategory_id: str, *, commit: bool = True) -> None:
    subcategory = get_subcategory(subcategory_id)
    children = subcategory_repository.component_counts([subcategory_id]).get(subcategory_id, 0)
    if children:
        raise ConflictError("Subcategory has components", details={"componentsCount": children})
    with atomic(commit=commit):
        audit_service.record(ctx, "subcategory.delete", "subcategory", subcategory_id, {"slug": subcategory.slug})
        subcategory_repository.delete(subcategory_id)
    logger.info("Deleted subcategory %s", subcategory_id)


def move_subcategory(
    ctx: RequestContext,
    subcategory_id: str,
    category_id: str,
    sort_order: int | None = None,
    *,
    commit: bool = True,
) -> Subcategory:
    """Re-parent a subcategory; its slug must be free in the target category."""
    subcategory = get_subcategory(subcategory_id)
    if not is_uuid(category_id):
        raise ValidationFailed.field("categoryId", "categoryId must be a valid UUID")
    require(category_repository.find_by_id(category_id), "Category", category_id)
    if sort_order is not None and (isinstance(sort_order, bool) or not isinstance(sort_order, int) or sort_order < 0):
        raise ValidationFailed.field("sortOrder", "sortOrder must be an integer >= 0")

    if category_id == subcategory.category_id and sort_order is None:
        return subcategory

    ensure_slug_free(
        subcategory_repository.find_by_slug, subcategory.slug, category_id,
        label="Subcategory", exclude_id=subcategory.id,
    )
    previous = subcategory.category_id
    with atomic(SLUG_CONFLICT, commit=commit):
        if sort_order is None:
            sort_order = next_sort_order(subcategory_repository.find_by_parent(category_id))
        subcategory = subcategory_repository.update(
            subcategory_id, {"category_id": category_id, "sort_order": sort_order}
        )
        audit_service.record(
            ctx, "subcategory.move", "subcategory", subcategory_id,
            {"fromCategoryId": previous, "toCategoryId": category_id, "sortOrder": sort_order},
        )
    return subcategory


def check_slug(slug: str, category_id: str, exclude_id: str | None = None) -> dict:
    return slug_availability(subcategory_repository.find_by_slug, slug, category_id, exclude_id)


def reorder_subcategories(ctx: RequestContext, items) -> list[dict]:
    ordered = reorder_siblings(
        ctx, items,
        repository=subcategory_repository, parent_attr="category_id",
        label="Subcategory", entity_type="subcategory",
    )
    return [s.to_dict() for s in ordered]


def batch_subcategories(ctx: RequestContext, operation: str, ids: list[str], data: dict | None = None) -> dict:
    data = data or {}
    if operation == "update":
        patch = validate_update(Subcategory, data, immutable=("category_id",))
        if not patch:
            raise ValidationFailed.field("data", "data must contain at least one field to update")
    if operation == "move":
        target = data.get("categoryId")
        if not is_uuid(target):
            raise ValidationFailed.field("data.categoryId", "categoryId must be a valid UUID")
        require(category_repository.find_by_id(target), "Category", target)

    def handler(subcategory_id: str):
        if operation == "activate":
            return update_subcategory(ctx, subcategory_id, {"is_active": True}, commit=False).to_dict()
        if operation == "deactivate":
            return update_subcategory(ctx, subcategory_id, {"is_active": False}, commit=False).to_dict()
        if operation == "update":
            return update_subcategory(ctx, subcategory_id, patch, commit=False).to_dict()
        if operation == "move":
            return move_subcategory(ctx, subcategory_id, target, commit=False).to_dict()
        delete_subcategory(ctx, subcategory_id, commit=False)
        return None

    return run_batch(operation, ids, handler, result_key="subcategory")
