# Overview: Service-layer operations for products (top of the catalog tree).

from __future__ import annotations

import logging

from ..context import RequestContext
from ..models import Product
from ..repositories import base, product_repository
from . import audit_service
from .common import (
    ensure_slug_free,
    next_sort_order,
    require,
    resolve_slug,
    sanitize,
    slug_availability,
    validate_slug_format,
)
from .concurrency import atomic

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "slug", "description", "sort_order", "is_active")


def _with_counts(products: list[Product]) -> list[dict]:
    counts = product_repository.category_counts([p.id for p in products])
    return [{**p.to_dict(), "categoriesCount": counts.get(p.id, 0)} for p in products]


def list_products(
    *,
    page: int,
    limit: int,
    search: str | None = None,
    is_active: bool | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
) -> base.Page:
    result = product_repository.paginate(
        page=page, limit=limit, search=search, is_active=is_active, sort_by=sort_by, sort_order=sort_order
    )
    return base.Page(items=_with_counts(result.items), page=result.page, limit=result.limit, total=result.total)


def get_product(product_id: str) -> Product:
    return require(product_repository.find_by_id(product_id), "Product", product_id)


def create_product(ctx: RequestContext, data: dict, *, commit: bool = True) -> Product:
    data = dict(data)
    data["slug"] = resolve_slug(data)
    with atomic("A product with this slug already exists", commit=commit):
        ensure_slug_free(product_repository.find_by_slug, data["slug"], None, label="Product")
        if data.get("sort_order") is None:
            data["sort_order"] = next_sort_order(product_repository.find_active())
        product = product_repository.create(data)
        audit_service.record(ctx, "product.create", "product", product.id, {"name": product.name, "slug": product.slug})
    logger.info("Created product %s (%s)", product.id, product.slug)
    return product


def update_product(ctx: RequestContext, product_id: str, patch: dict, *, commit: bool = True) -> Product:
    product = get_product(product_id)
    patch = sanitize(patch, UPDATABLE_FIELDS)
    if "slug" in patch and patch["slug"] != product.slug:
        validate_slug_format(patch["slug"])
        ensure_slug_free(product_repository.find_by_slug, patch["slug"], None, label="Product", exclude_id=product.id)
    with atomic("A product with this slug already exists", commit=commit):
        product = product_repository.update(product_id, patch)
        audit_service.record(ctx, "product.update", "product", product_id, patch)
    return product


def delete_product(ctx: RequestContext, product_id: str, *, commit: bool = True) -> None:
    """Deletes the product and, through the cascade, everything below it."""
    product = get_product(product_id)
    with atomic(commit=commit):
        audit_service.record(ctx, "product.delete", "product", product_id, {"slug": product.slug})
        product_repository.delete(product_id)
    logger.info("Deleted product %s", product_id)


def check_slug(slug: str, exclude_id: str | None = None) -> dict:
    return slug_availability(lambda s: product_repository.find_by_slug(s), slug, None, exclude_id)
