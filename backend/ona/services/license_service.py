# Overview: Service-layer operations for licenses; issuing, validation, tier checks, and payment state.

"""
License keys look like ONA-1A2B-3C4D-5E6F (three random 2-byte segments,
uppercase hex). Tier comparison uses TIER_RANK: free < pro < team < enterprise.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from typing import TYPE_CHECKING

from ..context import RequestContext
from ..errors import BadRequestError, ConflictError, InternalError, ValidationFailed
from ..models import License
from ..models.common import LICENSE_TIERS, PAYMENT_STATUSES, TIER_RANK
from ..repositories import base, license_repository, user_repository
from ..time_utils import is_past, utcnow
from . import audit_service
from .common import require
from .concurrency import atomic

if TYPE_CHECKING:
    from ..integrations import CheckoutSession

logger = logging.getLogger(__name__)

KEY_PREFIX = "ONA"
KEY_ATTEMPTS = 10
DEFAULT_SEATS = {"free": 1, "pro": 1, "team": 5, "enterprise": 25}
TERM_LENGTH = timedelta(days=365)


def generate_license_key() -> str:
    segments = [secrets.token_hex(2).upper() for _ in range(3)]
    return "-".join([KEY_PREFIX, *segments])


def _unique_license_key() -> str:
    for _ in range(KEY_ATTEMPTS):
        key = generate_license_key()
        if license_repository.find_by_key(key) is None:
            return key
    raise InternalError("Could not generate a unique license key")


def issue_license(
    ctx: RequestContext,
    *,
    user_id: str,
    tier: str,
    amount_paid: int = 0,
    currency: str = "USD",
    payment_status: str = "completed",
    seats_allowed: int | None = None,
    is_lifetime: bool = True,
    stripe_payment_id: str | None = None,
    stripe_customer_id: str | None = None,
    discount_percentage: int = 0,
    discount_code: str | None = None,
    notes: str | None = None,
    commit: bool = True,
) -> License:
    if tier not in LICENSE_TIERS:
        raise ValidationFailed.field("tier", f"tier must be one of: {', '.join(LICENSE_TIERS)}")
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationFailed.field("paymentStatus", f"paymentStatus must be one of: {', '.join(PAYMENT_STATUSES)}")
    require(user_repository.find_by_id(user_id), "User", user_id)
    if stripe_payment_id and license_repository.find_by_stripe_payment_id(stripe_payment_id) is not None:
        raise ConflictError("A license already exists for this payment", details={"stripePaymentId": stripe_payment_id})

    now = utcnow()
    data = {
        "user_id": user_id,
        "license_key": _unique_license_key(),
        "tier": tier,
        "stripe_payment_id": stripe_payment_id,
        "stripe_customer_id": stripe_customer_id,
        "amount_paid": amount_paid,
        "currency": (currency or "USD").upper(),
        "payment_status": payment_status,
        "seats_allowed": seats_allowed or DEFAULT_SEATS[tier],
        "seats_used": 0,
        "valid_from": now,
        "valid_until": None if is_lifetime else now + TERM_LENGTH,
        "is_lifetime": is_lifetime,
        "is_active": True,
        "discount_percentage": discount_percentage,
        "discount_code": discount_code,
        "notes": notes,
    }
    with atomic("A license already exists for this payment", commit=commit):
        lic = license_repository.create(data)
        audit_service.record(ctx, "license.issue", "license", lic.id, {"userId": user_id, "tier": tier})
    logger.info("Issued %s license %s for user %s", tier, lic.id, user_id)
    return lic


def get_license(license_id: str) -> License:
    return require(license_repository.find_by_id(license_id), "License", license_id)


def validate_license(license_key: str) -> dict:
    """{valid, reason, license} without raising for an invalid key."""
    lic = license_repository.find_by_key((license_key or "").strip())
    if lic is None:
        return {"valid": False, "reason": "License not found", "license": None}
    if not lic.is_active:
        return {"valid": False, "reason": "License deactivated", "license": lic.to_dict()}
    if lic.payment_status != "completed":
        return {"valid": False, "reason": "Payment not confirmed", "license": lic.to_dict()}
    if not lic.is_lifetime and is_past(lic.valid_until):
        return {"valid": False, "reason": "License expired", "license": lic.to_dict()}
    return {"valid": True, "reason": None, "license": lic.to_dict()}


def highest_license(user_id: str) -> License | None:
    licenses = license_repository.find_active_by_user(user_id)
    if not licenses:
        return None
    return max(licenses, key=lambda lic: TIER_RANK.get(lic.tier, 0))


def user_tier_rank(user_id: str | None) -> int:
    """Rank of the best usable license; 0 when the user has none."""
    if user_id is None:
        return 0
    best = highest_license(user_id)
    return TIER_RANK.get(best.tier, 0) if best else 0


def tier_satisfies(user_rank: int, required_tier: str) -> bool:
    return user_rank >= TIER_RANK.get(required_tier, TIER_RANK["pro"])


def check_user_access(user_id: str, required_tier: str) -> bool:
    if required_tier == "free":
        return True
    return tier_satisfies(user_tier_rank(user_id), required_tier)


def list_licenses(*, page: int, limit: int, user_id: str | None = None, tier: str | None = None,
                  is_active: bool | None = None) -> base.Page:
    return license_repository.paginate(page=page, limit=limit, user_id=user_id, tier=tier, is_active=is_active)


def deactivate_license(ctx: RequestContext, license_id: str, reason: str | None = None) -> License:
    get_license(license_id)
    with atomic():
        lic = license_repository.deactivate(license_id, reason)
        audit_service.record(ctx, "license.deactivate", "license", license_id, {"reason": reason})
    logger.info("Deactivated license %s", license_id)
    return lic


def reactivate_license(ctx: RequestContext, license_id: str) -> License:
    get_license(license_id)
    with atomic():
        lic = license_repository.reactivate(license_id)
        audit_service.record(ctx, "license.reactivate", "license", license_id)
    return lic


def mark_payment(ctx: RequestContext, license_id: str, payment_status: str) -> License:
    if payment_status not in PAYMENT_STATUSES:
        raise ValidationFailed.field("paymentStatus", f"paymentStatus must be one of: {', '.join(PAYMENT_STATUSES)}")
    get_license(license_id)
    with atomic():
        lic = license_repository.update(license_id, {"payment_status": payment_status})
        audit_service.record(ctx, "license.payment", "license", license_id, {"paymentStatus": payment_status})
    return lic


def assign_seat(ctx: RequestContext, license_id: str) -> License:
    lic = get_license(license_id)
    if lic.seats_used >= lic.seats_allowed:
        raise ConflictError("No seats left on this license", details={"seatsAllowed": lic.seats_allowed})
    with atomic("No seats left on this license"):
        lic = license_repository.update_seats_used(license_id, lic.seats_used + 1)
        audit_service.record(ctx, "license.seat", "license", license_id, {"seatsUsed": lic.seats_used})
    return lic


def complete_checkout(ctx: RequestContext, checkout: "CheckoutSession") -> License:
    """
    Turn a paid checkout session into a license.

    Completing the same session twice returns the license issued the first time.
    """
    if checkout.status != "paid":
        raise BadRequestError("Payment has not been completed", details={"status": checkout.status})
    existing = license_repository.find_by_stripe_payment_id(checkout.payment_id)
    if existing is not None:
        return existing
    return issue_license(
        ctx,
        user_id=checkout.user_id,
        tier=checkout.tier,
        amount_paid=checkout.amount_cents,
        currency=checkout.currency,
        payment_status="completed",
        stripe_payment_id=checkout.payment_id,
        stripe_customer_id=checkout.customer_id,
    )


def license_stats() -> dict:
    return license_repository.statistics()
