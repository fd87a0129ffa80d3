# Overview: Flask API routes for checkout and license validation; the payment provider is reached through ona.integrations.

from flask import Blueprint, request

from ..decorators import optional_auth, read_json, require_auth
from ..envelope import created, success
from ..errors import ForbiddenError, ValidationFailed
from ..integrations import payment_provider
from ..services import license_service

public_payment_bp = Blueprint("public_payment", __name__, url_prefix="/api/public")


def _optional_url(data: dict, key: str):
    value = data.get(key)
    if value is not None and (not isinstance(value, str) or not value.startswith(("http://", "https://"))):
        raise ValidationFailed.field(key, f"{key} must be an http(s) URL")
    return value


@public_payment_bp.post("/payment/checkout")
@require_auth
def create_checkout(ctx):
    """Body: {tier, successUrl?, cancelUrl?}."""
    data = read_json()
    tier = data.get("tier")
    if not isinstance(tier, str):
        raise ValidationFailed.field("tier", "tier is required")
    checkout = payment_provider().create_checkout_session(
        ctx.user, tier, _optional_url(data, "successUrl"), _optional_url(data, "cancelUrl"),
    )
    return created(checkout.to_dict(), "Checkout session created")


@public_payment_bp.post("/payment/complete")
@require_auth
def complete_checkout(ctx):
    """Body: {sessionId}. Completing the same session twice returns the same license."""
    session_id = read_json().get("sessionId")
    if not isinstance(session_id, str) or not session_id:
        raise ValidationFailed.field("sessionId", "sessionId is required")
    checkout = payment_provider().retrieve_session(session_id)
    if checkout.user_id != ctx.user_id and not ctx.is_admin:
        raise ForbiddenError("Checkout session belongs to another user")
    lic = license_service.complete_checkout(ctx, checkout)
    return success(lic.to_dict(), "License issued")


@public_payment_bp.get("/licenses/validate")
@optional_auth
def validate_license(ctx):
    key = request.args.get("key", "").strip()
    if not key:
        raise ValidationFailed.field("key", "key is required")
    return success(license_service.validate_license(key))
