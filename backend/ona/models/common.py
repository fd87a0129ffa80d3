# Overview: Shared column helpers and enumerated values for catalog models.

from __future__ import annotations

import uuid

from ..extensions import db

LICENSE_TIERS = ("free", "pro", "team", "enterprise")
TIER_RANK = {tier: rank for rank, tier in enumerate(LICENSE_TIERS, start=1)}

COMPONENT_STATUSES = ("draft", "published", "archived", "deprecated")
ACCESS_TYPES = ("preview_only", "copy", "full_access", "download")
FRAMEWORKS = ("html", "react", "vue", "svelte", "alpine", "angular")
CSS_FRAMEWORKS = ("tailwind_v3", "tailwind_v4", "vanilla_css")
USER_ROLES = ("user", "admin", "super_admin")
PAYMENT_STATUSES = ("pending", "completed", "failed", "refunded", "disputed")
TOKEN_TYPES = ("session", "api_key")


def new_id() -> str:
    return str(uuid.uuid4())


def id_column():
    return db.Column(db.String(36), primary_key=True, default=new_id)


def one_of(column: str, values: tuple[str, ...], name: str) -> db.CheckConstraint:
    """CHECK (column IN (...)) so enum-like strings stay closed in the database too."""
    quoted = ", ".join(f"'{v}'" for v in values)
    return db.CheckConstraint(f"{column} IN ({quoted})", name=name)


def decimal_to_float(value):
    return float(value) if value is not None else None
