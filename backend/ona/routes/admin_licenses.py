# Overview: Flask API routes for admin license operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..decorators import read_json, require_admin
from ..envelope import created, paginated, success
from ..errors import ValidationFailed
from ..models import License
from ..models.common import LICENSE_TIERS
from ..services import license_service
from ..validation import parse_search, validate_create

admin_licenses_bp = Blueprint("admin_licenses", __name__, url_prefix="/api/admin/licenses")

LICENSE_FILTERS = {"userId": "uuid", "tier": LICENSE_TIERS, "isActive": "bool"}
ISSUE_FIELDS = (
    "user_id", "tier", "amount_paid", "currency", "payment_status", "seats_allowed", "is_lifetime",
    "stripe_payment_id", "stripe_customer_id", "discount_percentage", "discount_code", "notes",
)


@admin_licenses_bp.get("")
@require_admin
def list_licenses(ctx):
    params = parse_search(request.args, filters=LICENSE_FILTERS)
    result = license_service.list_licenses(page=params.page, limit=params.limit, **params.filters)
    return paginated(result, [lic.to_dict() for lic in result.items])


@admin_licenses_bp.post("")
@require_admin
def issue_license(ctx):
    """Manual grant (support, partners); paid licenses come from /api/public/payment/complete."""
    data = validate_create(License, read_json())
    unsupported = sorted(set(data) - set(ISSUE_FIELDS))
    if unsupported:
        raise ValidationFailed("Validation failed", {name: "cannot be set when issuing" for name in unsupported})
    lic = license_service.issue_license(ctx, **data)
    return created(lic.to_dict(), "License issued")


@admin_licenses_bp.get("/stats")
@require_admin
def license_stats(ctx):
    return success(license_service.license_stats())


@admin_licenses_bp.get("/<license_id>")
@require_admin
def get_license(ctx, license_id):
    return success(license_service.get_license(license_id).to_dict())


@admin_licenses_bp.post("/<license_id>/deactivate")
@require_admin
def deactivate_license(ctx, license_id):
    reason = read_json(required=False).get("reason")
    lic = license_service.deactivate_license(ctx, license_id, reason)
    return success(lic.to_dict(), "License deactivated")


@admin_licenses_bp.post("/<license_id>/reactivate")
@require_admin
def reactivate_license(ctx, license_id):
    lic = license_service.reactivate_license(ctx, license_id)
    return success(lic.to_dict(), "License reactivated")


@admin_licenses_bp.post("/<license_id>/payment")
@require_admin
def mark_payment(ctx, license_id):
    lic = license_service.mark_payment(ctx, license_id, read_json().get("paymentStatus"))
    return success(lic.to_dict(), "Payment status updated")


@admin_licenses_bp.post("/<license_id>/seats")
@require_admin
def assign_seat(ctx, license_id):
    lic = license_service.assign_seat(ctx, license_id)
    return success(lic.to_dict(), "Seat assigned")
