# Overview: Helpers shared by the catalog services (slugs, pagination, sibling ordering).

from __future__ import annotations

import re
import unicodedata
from typing import Any, Callable, Iterable

from ..errors import BadRequestError, ConflictError, NotFoundError, ValidationFailed
from ..repositories.base import DEFAULT_LIMIT, MAX_LIMIT
from ..validation import SLUG_PATTERN
from . import audit_service
from .concurrency import atomic


def generate_slug(name: str) -> str:
    """
    "Boutons Élégants_v2" -> "boutons-elegants-v2"

    Accents are stripped (NFKD), anything that is not a letter, digit,
    whitespace, underscore or hyphen is dropped, and separator runs collapse
    to a single hyphen.
    """
    text = unicodedata.normalize("NFKD", name or "")
    text = text.encode("ascii", "ignore").decode("ascii").lower().strip()
    text = re.sub(r"[^a-z0-9\s_-]", "", text)
    text = re.sub(r"[\s_]+", "-", text)
    text = re.sub(r"-+", "-", text)
    return text.strip("-")


def validate_slug_format(slug: str) -> str:
    if not slug or not SLUG_PATTERN.match(slug):
        raise ValidationFailed.field(
            "slug",
            "Slug must contain only lowercase letters, digits, and single hyphens",
        )
    return slug


def resolve_slug(data: dict) -> str:
    """Use the supplied slug or derive one from the name, then check its format."""
    slug = data.get("slug") or generate_slug(data.get("name", ""))
    return validate_slug_format(slug)


def validate_pagination(page: Any = None, limit: Any = None) -> tuple[int, int]:
    try:
        page = int(page) if page is not None else 1
        limit = int(limit) if limit is not None else DEFAULT_LIMIT
    except (TypeError, ValueError):
        raise ValidationFailed("Invalid pagination", {"page": "must be an integer", "limit": "must be an integer"})
    if page < 1:
        raise ValidationFailed.field("page", "page must be >= 1")
    if limit < 1 or limit > MAX_LIMIT:
        raise ValidationFailed.field("limit", f"limit must be between 1 and {MAX_LIMIT}")
    return page, limit


def sanitize(patch: dict, allowed: Iterable[str]) -> dict:
    allowed = set(allowed)
    return {key: value for key, value in patch.items() if key in allowed}


def require(entity, label: str, entity_id: Any = None):
    if entity is None:
        raise NotFoundError.for_entity(label, entity_id)
    return entity


def next_sort_order(siblings: list) -> int:
    return len(siblings) + 1


def ensure_slug_free(
    find_by_slug: Callable[..., Any],
    slug: str,
    parent_id: str | None,
    *,
    label: str,
    exclude_id: str | None = None,
) -> None:
    """Raise CONFLICT when another sibling already holds this slug."""
    holder = find_by_slug(slug, parent_id) if parent_id is not None else find_by_slug(slug)
    if holder is not None and holder.id != exclude_id:
        raise ConflictError(
            f"A {label.lower()} with slug '{slug}' already exists",
            details={"slug": slug, "existingId": holder.id},
        )


def slug_availability(
    find_by_slug: Callable[..., Any],
    slug: str,
    parent_id: str | None,
    exclude_id: str | None = None,
) -> dict:
    """
    {available, slug, existing} for the admin slug checker.

    A NOT_FOUND raised while looking up counts as "nobody holds it".
    """
    try:
        holder = find_by_slug(slug, parent_id) if parent_id is not None else find_by_slug(slug)
    except NotFoundError:
        holder = None
    if holder is None or holder.id == exclude_id:
        return {"available": True, "slug": slug, "existing": None}
    return {"available": False, "slug": slug, "existing": {"id": holder.id, "name": holder.name}}


def round2(value) -> float:
    return round(float(value or 0), 2)


def reorder_siblings(ctx, items, *, repository, parent_attr: str, label: str, entity_type: str) -> list:
    """
    Assign the supplied sort orders inside one transaction.

    Every id must exist and all of them must share one parent; otherwise
    nothing is written. Siblings left out of `items` keep their sort_order
    and no renumbering happens.
    """
    ids = [item.id for item in items]
    found = repository.find_many(ids)
    missing = [entity_id for entity_id in dict.fromkeys(ids) if entity_id not in found]
    if missing:
        raise NotFoundError(f"{label} not found", details={"ids": missing})

    parents = {getattr(entity, parent_attr) for entity in found.values()}
    if len(parents) > 1:
        raise BadRequestError(f"All {label.lower()} items must share the same parent")
    parent_id = parents.pop()

    with atomic():
        for item in items:
            repository.update(item.id, {"sort_order": item.sort_order})
        audit_service.record(
            ctx,
            f"{entity_type}.reorder",
            entity_type,
            parent_id,
            {"items": [{"id": item.id, "sortOrder": item.sort_order} for item in items]},
        )
    return sorted(found.values(), key=lambda e: (e.sort_order, e.name, e.id))
