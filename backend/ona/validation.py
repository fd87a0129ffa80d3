from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationFailed
from .models import Category, Component, ComponentVersion, License, Product, Subcategory
from .models.common import (
    ACCESS_TYPES,
    COMPONENT_STATUSES,
    CSS_FRAMEWORKS,
    FRAMEWORKS,
    LICENSE_TIERS,
    PAYMENT_STATUSES,
)
from .repositories.base import BASE_SORT_FIELDS, DEFAULT_LIMIT, MAX_LIMIT
from .time_utils import parse_iso_datetime

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def is_uuid(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def is_valid_slug(value: Any) -> bool:
    return isinstance(value, str) and bool(SLUG_PATTERN.match(value))


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: column keys clients may set (security boundary)
    - required_on_create: fields required for POST
    - choices: enum-like fields and their allowed values
    - ranges: inclusive (min, max) bounds for numeric fields; None = open
    - slug_fields: fields that must match SLUG_PATTERN
    - uuid_fields: foreign keys that must look like UUIDs
    - string_lists: JSON columns that must hold a list of strings
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    choices: dict[str, tuple[str, ...]] = field(default_factory=dict)
    ranges: dict[str, tuple[Any, Any]] = field(default_factory=dict)
    slug_fields: frozenset[str] = frozenset({"slug"})
    uuid_fields: frozenset[str] = frozenset()
    string_lists: frozenset[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_value(col, value: Any, policy: ModelValidationPolicy):
    coltype = col.type
    key = col.key

    if value is None:
        return None

    # Integers - reject bools, floats, and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, bool):
            raise ValueError("must be an integer")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or "e" in stripped.lower() or "." in stripped:
                raise ValueError("must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValueError("must be an integer")
        raise ValueError("must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0"):
            return value.strip().lower() in ("true", "1")
        raise ValueError("must be a boolean")

    if isinstance(coltype, Numeric):
        if isinstance(value, bool):
            raise ValueError("must be a number")
        try:
            number = Decimal(str(value))
            if not number.is_finite():
                raise ValueError("must be a number")
            return number.quantize(Decimal(1).scaleb(-(coltype.scale or 0)))
        except (ArithmeticError, ValueError):
            raise ValueError("must be a number")

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValueError("must be an ISO-8601 datetime")
            if dt is None:
                raise ValueError("must be an ISO-8601 datetime")
            return dt
        raise ValueError("must be a datetime")

    if isinstance(coltype, JSON):
        if key in policy.string_lists:
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise ValueError("must be a list of strings")
            return [v.strip() for v in value if v.strip()]
        return value

    if isinstance(coltype, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValueError("must be a string")
        return str(value).strip()

    return value


def _check_rules(key: str, val: Any, col, policy: ModelValidationPolicy) -> str | None:
    if val is None:
        return None

    if isinstance(col.type, (String, Text)) and isinstance(val, str):
        if not col.nullable and val == "":
            return "cannot be blank"
        if isinstance(col.type, String) and col.type.length and len(val) > col.type.length:
            return f"exceeds max length {col.type.length}"

    if key in policy.choices and val not in policy.choices[key]:
        return f"must be one of: {', '.join(policy.choices[key])}"

    if key in policy.slug_fields and not is_valid_slug(val):
        return "must contain lowercase letters, digits, and single hyphens"

    if key in policy.uuid_fields and not is_uuid(val):
        return "must be a valid UUID"

    if key in policy.ranges:
        low, high = policy.ranges[key]
        try:
            if low is not None and val < low:
                return f"must be >= {low}"
            if high is not None and val > high:
                return f"must be <= {high}"
        except (ArithmeticError, TypeError):
            return "must be a number"

    return None


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - the policy (writable fields, enums, ranges, slug/uuid formats)
    - required_on_create (if partial=False)

    Keys may be camelCase (as the frontends send them) or snake_case.
    Returns a patch dict keyed by column name. All problems are collected and
    raised together as ValidationFailed with field-keyed details.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload", {"body": "must be a JSON object"})

    cols = _columns_by_key(model)
    errors: dict[str, str] = {}
    normalized: dict[str, tuple[str, Any]] = {}

    for raw_key, raw in payload.items():
        key = to_snake(raw_key)
        if key not in policy.writable_fields or key not in cols:
            errors[raw_key] = "field not allowed"
            continue
        normalized[key] = (raw_key, raw)

    if not partial:
        for key in sorted(policy.required_on_create):
            if key not in normalized:
                errors[key] = "is required"

    patch: dict = {}
    for key, (raw_key, raw) in normalized.items():
        col = cols[key]
        if raw is None:
            if not col.nullable:
                errors[raw_key] = "cannot be null"
            else:
                patch[key] = None
            continue
        try:
            val = _coerce_value(col, raw, policy)
        except ValueError as exc:
            errors[raw_key] = str(exc)
            continue
        problem = _check_rules(key, val, col, policy)
        if problem:
            errors[raw_key] = problem
            continue
        patch[key] = val

    if errors:
        raise ValidationFailed("Validation failed", errors)
    return patch


# -- Entity policies --

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "slug", "description", "sort_order", "is_active"}),
    required_on_create=frozenset({"name"}),
    ranges={"sort_order": (0, None)},
)

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"product_id", "name", "slug", "description", "icon_name", "sort_order", "is_active"}),
    required_on_create=frozenset({"product_id", "name"}),
    ranges={"sort_order": (0, None)},
    uuid_fields=frozenset({"product_id"}),
)

SUBCATEGORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"category_id", "name", "slug", "description", "sort_order", "is_active"}),
    required_on_create=frozenset({"category_id", "name"}),
    ranges={"sort_order": (0, None)},
    uuid_fields=frozenset({"category_id"}),
)

COMPONENT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "subcategory_id", "name", "slug", "description", "is_free", "required_tier", "access_type",
        "status", "is_new", "is_featured", "conversion_rate", "tested_companies",
        "preview_image_large", "preview_image_small", "preview_video_url", "tags", "sort_order",
    }),
    required_on_create=frozenset({"subcategory_id", "name"}),
    choices={
        "required_tier": LICENSE_TIERS,
        "access_type": ACCESS_TYPES,
        "status": COMPONENT_STATUSES,
    },
    ranges={"sort_order": (0, None), "conversion_rate": (0, 100)},
    uuid_fields=frozenset({"subcategory_id"}),
    string_lists=frozenset({"tags", "tested_companies"}),
)

VERSION_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "version_number", "framework", "css_framework", "code_preview", "code_full", "code_encrypted",
        "dependencies", "config_required", "supports_dark_mode", "dark_mode_code", "integrations",
        "integration_code", "files", "is_default",
    }),
    required_on_create=frozenset({"framework", "css_framework", "code_preview"}),
    choices={"framework": FRAMEWORKS, "css_framework": CSS_FRAMEWORKS},
    slug_fields=frozenset(),
)

LICENSE_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({
        "user_id", "tier", "amount_paid", "currency", "payment_status", "seats_allowed",
        "valid_until", "is_lifetime", "is_early_bird", "discount_percentage", "discount_code",
        "stripe_payment_id", "stripe_customer_id", "notes",
    }),
    required_on_create=frozenset({"user_id", "tier"}),
    choices={"tier": LICENSE_TIERS, "payment_status": PAYMENT_STATUSES},
    ranges={"amount_paid": (0, None), "seats_allowed": (1, None), "discount_percentage": (0, 100)},
    slug_fields=frozenset(),
    uuid_fields=frozenset({"user_id"}),
)

MODEL_POLICIES = {
    Product: PRODUCT_POLICY,
    Category: CATEGORY_POLICY,
    Subcategory: SUBCATEGORY_POLICY,
    Component: COMPONENT_POLICY,
    ComponentVersion: VERSION_POLICY,
    License: LICENSE_POLICY,
}


def validate_create(model, payload: dict) -> dict:
    return validate_payload(model=model, payload=payload, policy=MODEL_POLICIES[model], partial=False)


def validate_update(model, payload: dict, *, immutable: tuple[str, ...] = ()) -> dict:
    """Partial validation; fields in `immutable` (e.g. the parent id) are refused."""
    patch = validate_payload(model=model, payload=payload, policy=MODEL_POLICIES[model], partial=True)
    blocked = {name: "cannot be changed here" for name in immutable if name in patch}
    if blocked:
        raise ValidationFailed("Validation failed", blocked)
    return patch


# -- Query-string and action schemas --

def parse_bool(value: Any, name: str = "value") -> bool | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("true", "1", "yes"):
        return True
    if text in ("false", "0", "no"):
        return False
    raise ValidationFailed.field(name, f"{name} must be true or false")


def _parse_int(value: Any, name: str, default: int, low: int, high: int | None) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationFailed.field(name, f"{name} must be an integer")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationFailed.field(name, f"{name} must be an integer")
    if number < low or (high is not None and number > high):
        bound = f"between {low} and {high}" if high is not None else f">= {low}"
        raise ValidationFailed.field(name, f"{name} must be {bound}")
    return number


@dataclass
class SearchParams:
    page: int = 1
    limit: int = DEFAULT_LIMIT
    sort_by: str | None = None
    sort_order: str = "asc"
    filters: dict[str, Any] = field(default_factory=dict)


FILTER_TYPES = ("uuid", "bool", "str", "float", "choice")


def parse_search(
    args,
    *,
    sort_fields: dict[str, str] | None = None,
    filters: dict[str, Any] | None = None,
) -> SearchParams:
    """
    Validate pagination, sorting, and filter query parameters.

    `filters` maps a camelCase query parameter to a type: "uuid", "bool",
    "str", "float", or a tuple of allowed values.
    """
    sort_fields = sort_fields or BASE_SORT_FIELDS
    errors: dict[str, str] = {}
    params = SearchParams()

    for name, default, low, high in (("page", 1, 1, None), ("limit", DEFAULT_LIMIT, 1, MAX_LIMIT)):
        try:
            setattr(params, name, _parse_int(args.get(name), name, default, low, high))
        except ValidationFailed as exc:
            errors.update(exc.details)

    sort_by = args.get("sortBy")
    if sort_by:
        if sort_by not in sort_fields:
            errors["sortBy"] = f"sortBy must be one of: {', '.join(sort_fields)}"
        else:
            params.sort_by = sort_by
    sort_order = (args.get("sortOrder") or "asc").lower()
    if sort_order not in ("asc", "desc"):
        errors["sortOrder"] = "sortOrder must be asc or desc"
    else:
        params.sort_order = sort_order

    for name, kind in (filters or {}).items():
        raw = args.get(name)
        if raw is None or raw == "":
            continue
        if kind == "uuid":
            if not is_uuid(raw):
                errors[name] = f"{name} must be a valid UUID"
                continue
            params.filters[to_snake(name)] = raw
        elif kind == "bool":
            try:
                params.filters[to_snake(name)] = parse_bool(raw, name)
            except ValidationFailed as exc:
                errors.update(exc.details)
        elif kind == "float":
            try:
                params.filters[to_snake(name)] = float(raw)
            except ValueError:
                errors[name] = f"{name} must be a number"
        elif isinstance(kind, tuple):
            if raw not in kind:
                errors[name] = f"{name} must be one of: {', '.join(kind)}"
                continue
            params.filters[to_snake(name)] = raw
        else:
            text = str(raw).strip()
            if len(text) > 255:
                errors[name] = f"{name} exceeds max length 255"
                continue
            params.filters[to_snake(name)] = text

    if errors:
        raise ValidationFailed("Invalid query parameters", errors)
    return params


@dataclass(frozen=True)
class ReorderItem:
    id: str
    sort_order: int


def parse_reorder(payload: Any, key: str) -> list[ReorderItem]:
    """Non-empty array of {id: uuid, sortOrder: int >= 0} under payload[key]."""
    items = payload.get(key) if isinstance(payload, dict) else None
    if not isinstance(items, list) or not items:
        raise ValidationFailed.field(key, f"{key} must be a non-empty array")

    errors: dict[str, str] = {}
    parsed: list[ReorderItem] = []
    for index, item in enumerate(items):
        prefix = f"{key}.{index}"
        if not isinstance(item, dict):
            errors[prefix] = "must be an object"
            continue
        item_id = item.get("id")
        sort_order = item.get("sortOrder", item.get("sort_order"))
        if not is_uuid(item_id):
            errors[f"{prefix}.id"] = "must be a valid UUID"
        if isinstance(sort_order, bool) or not isinstance(sort_order, int) or sort_order < 0:
            errors[f"{prefix}.sortOrder"] = "must be an integer >= 0"
        if f"{prefix}.id" not in errors and f"{prefix}.sortOrder" not in errors:
            parsed.append(ReorderItem(id=item_id, sort_order=sort_order))

    if errors:
        raise ValidationFailed("Validation failed", errors)
    return parsed


@dataclass(frozen=True)
class BatchRequest:
    operation: str
    ids: list[str]
    data: dict


def parse_batch(payload: Any, *, ids_key: str, operations: tuple[str, ...]) -> BatchRequest:
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload", {"body": "must be a JSON object"})
    errors: dict[str, str] = {}

    operation = payload.get("operation")
    if operation not in operations:
        errors["operation"] = f"operation must be one of: {', '.join(operations)}"

    ids = payload.get(ids_key)
    if not isinstance(ids, list) or not ids:
        errors[ids_key] = f"{ids_key} must be a non-empty array"
    elif not all(isinstance(i, str) and i for i in ids):
        errors[ids_key] = f"{ids_key} must contain string ids"

    data = payload.get("data") or {}
    if not isinstance(data, dict):
        errors["data"] = "data must be an object"

    if errors:
        raise ValidationFailed("Validation failed", errors)
    # Duplicates are kept: each occurrence is one processed item.
    return BatchRequest(operation=operation, ids=list(ids), data=data)


@dataclass(frozen=True)
class SlugCheck:
    parent_id: str | None
    slug: str
    exclude_id: str | None


def parse_check_slug(payload: Any, *, parent_key: str, parent_required: bool = True) -> SlugCheck:
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload", {"body": "must be a JSON object"})
    errors: dict[str, str] = {}
    parent_id = payload.get(parent_key)
    if parent_id is None and parent_required:
        errors[parent_key] = "is required"
    elif parent_id is not None and not is_uuid(parent_id):
        errors[parent_key] = "must be a valid UUID"
    slug = payload.get("slug")
    if not isinstance(slug, str) or not slug.strip():
        errors["slug"] = "is required"
    exclude_id = payload.get("excludeId")
    if exclude_id is not None and not isinstance(exclude_id, str):
        errors["excludeId"] = "must be a string"
    if errors:
        raise ValidationFailed("Validation failed", errors)
    return SlugCheck(parent_id=parent_id, slug=slug.strip(), exclude_id=exclude_id)


def require_json_object(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise ValidationFailed("Invalid JSON payload", {"body": "must be a JSON object"})
    return payload
