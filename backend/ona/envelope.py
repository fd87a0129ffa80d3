# Overview: Response envelope builders shared by every blueprint.

from __future__ import annotations

from typing import Any, Iterable

from .errors import ServiceError
from .time_utils import to_utc_z, utcnow


def _timestamp() -> str:
    return to_utc_z(utcnow())


def success(data: Any = None, message: str | None = None, status: int = 200):
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    body["timestamp"] = _timestamp()
    return body, status


def created(data: Any, message: str | None = None):
    return success(data, message, status=201)


def failure(err: ServiceError):
    return {
        "success": False,
        "error": err.to_dict(),
        "timestamp": _timestamp(),
    }, err.status


def pagination_block(*, page: int, limit: int, total: int) -> dict:
    total_pages = -(-total // limit) if limit else 0
    has_next = page < total_pages
    has_prev = page > 1
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNextPage": has_next,
        "hasPrevPage": has_prev,
        "nextPage": page + 1 if has_next else None,
        "prevPage": page - 1 if has_prev else None,
    }


def paginated(page, items: Iterable[Any], message: str | None = None):
    """Wrap a repositories.base.Page (or anything with page/limit/total)."""
    return success(
        {
            "items": list(items),
            "pagination": pagination_block(page=page.page, limit=page.limit, total=page.total),
        },
        message,
    )
