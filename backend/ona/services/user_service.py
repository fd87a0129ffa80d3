# Overview: Service-layer operations for the signed-in user (profile, licenses, subscription, favorites).

from __future__ import annotations

import logging

from ..context import RequestContext
from ..errors import UnauthorizedError, ValidationFailed
from ..models import User
from ..models.common import CSS_FRAMEWORKS, FRAMEWORKS, LICENSE_TIERS
from ..repositories import activity_repository, base, license_repository, user_repository
from . import component_service, license_service
from .common import require
from .concurrency import atomic

logger = logging.getLogger(__name__)

MAX_API_CALLS = {"free": 100, "pro": 1000, "team": 5000, "enterprise": 50000}
PROFILE_FIELDS = ("full_name", "avatar_url", "preferred_framework", "preferred_css")


def _current_user(ctx: RequestContext) -> User:
    if not ctx.is_authenticated:
        raise UnauthorizedError("Authentication required")
    return require(user_repository.find_by_id(ctx.user_id), "User", ctx.user_id)


def get_profile(ctx: RequestContext) -> dict:
    user = _current_user(ctx)
    data = user.to_dict()
    data["subscription"] = subscription(ctx)
    return data


def update_preferences(ctx: RequestContext, patch: dict) -> User:
    user = _current_user(ctx)
    unknown = sorted(set(patch) - set(PROFILE_FIELDS))
    if unknown:
        raise ValidationFailed("Validation failed", {name: "field not allowed" for name in unknown})
    if "preferred_framework" in patch and patch["preferred_framework"] not in FRAMEWORKS:
        raise ValidationFailed.field("preferredFramework", f"must be one of: {', '.join(FRAMEWORKS)}")
    if "preferred_css" in patch and patch["preferred_css"] not in CSS_FRAMEWORKS:
        raise ValidationFailed.field("preferredCss", f"must be one of: {', '.join(CSS_FRAMEWORKS)}")
    with atomic():
        user = user_repository.update(user.id, patch)
    return user


def list_licenses(ctx: RequestContext) -> list[dict]:
    user = _current_user(ctx)
    return [lic.to_dict() for lic in license_repository.find_by_user(user.id)]


def subscription(ctx: RequestContext) -> dict:
    user = _current_user(ctx)
    best = license_service.highest_license(user.id)
    tier = best.tier if best else "free"
    return {
        "hasActiveSubscription": user_repository.has_active_subscription(user.id),
        "tier": tier,
        "licenseId": best.id if best else None,
        "validUntil": best.to_dict()["validUntil"] if best else None,
        "isLifetime": best.is_lifetime if best else False,
        "teamSeats": best.seats_allowed if best else 1,
        "usedSeats": best.seats_used if best else 0,
    }


def permissions(ctx: RequestContext) -> dict:
    info = subscription(ctx)
    tier = info["tier"]
    return {
        "canAccessPremium": info["hasActiveSubscription"],
        "canManageUsers": ctx.is_admin,
        "canManageComponents": ctx.is_admin,
        "canManageCategories": ctx.is_admin,
        "maxApiCalls": MAX_API_CALLS.get(tier, MAX_API_CALLS["free"]),
        "teamSeats": info["teamSeats"],
        "accessibleTiers": [t for t in LICENSE_TIERS if license_service.check_user_access(ctx.user_id, t)],
    }


def list_favorites(ctx: RequestContext, *, page: int, limit: int) -> base.Page:
    user = _current_user(ctx)
    viewer = component_service.viewer_for(ctx)
    result = activity_repository.favorite_components(user.id, page=page, limit=limit)
    return result.map(lambda c: component_service.annotate(c, viewer))


def add_favorite(ctx: RequestContext, component_id: str) -> dict:
    """Idempotent: favoriting twice keeps a single row."""
    user = _current_user(ctx)
    component_service.get_component(component_id)
    if activity_repository.find_favorite(user.id, component_id) is None:
        with atomic("Component is already a favorite"):
            activity_repository.add_favorite(user.id, component_id)
    return {"componentId": component_id, "isFavorite": True}


def remove_favorite(ctx: RequestContext, component_id: str) -> dict:
    user = _current_user(ctx)
    with atomic():
        activity_repository.remove_favorite(user.id, component_id)
    return {"componentId": component_id, "isFavorite": False}
