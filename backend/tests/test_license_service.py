"""
License tests: issuing, key validation, seats, tier ranking, and
checkout completion.
"""

import re
from datetime import timedelta

import pytest

from ona.errors import BadRequestError, ConflictError, NotFoundError, ValidationFailed
from ona.integrations import CheckoutSession
from ona.models import AuditLog, License
from ona.repositories import license_repository
from ona.services import license_service
from ona.time_utils import utcnow

KEY_RE = re.compile(r"^ONA-[0-9A-F]{4}-[0-9A-F]{4}-[0-9A-F]{4}$")


def _checkout(user, status="paid", payment_id="pi_test_1", tier="pro"):
    return CheckoutSession(
        id="cs_test_1", user_id=user.id, tier=tier, amount_cents=14900, currency="usd",
        status=status, url="http://localhost/checkout/cs_test_1", payment_id=payment_id,
        customer_id="cus_test_1",
    )


# =============================================================================
# ISSUING
# =============================================================================


class TestIssueLicense:
    def test_key_format(self):
        assert KEY_RE.match(license_service.generate_license_key())

    def test_defaults(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="team")
        assert KEY_RE.match(lic.license_key)
        assert lic.seats_allowed == 5
        assert lic.seats_used == 0
        assert lic.is_lifetime is True and lic.valid_until is None
        assert lic.payment_status == "completed"

    def test_term_license_gets_expiry(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", is_lifetime=False)
        assert lic.valid_until > utcnow() + timedelta(days=364)

    def test_unknown_tier(self, admin_ctx, regular_user):
        with pytest.raises(ValidationFailed):
            license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="platinum")

    def test_unknown_user(self, admin_ctx, db_session):
        with pytest.raises(NotFoundError):
            license_service.issue_license(admin_ctx, user_id="6a1d2c3b-4e5f-4a7b-8c9d-0e1f2a3b4c5d", tier="pro")

    def test_duplicate_payment_id(self, admin_ctx, regular_user):
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", stripe_payment_id="pi_1")
        with pytest.raises(ConflictError):
            license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", stripe_payment_id="pi_1")

    def test_issue_is_audited(self, admin_ctx, regular_user, db_session):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        entry = db_session.query(AuditLog).filter_by(action="license.issue").one()
        assert entry.entity_id == lic.id
        assert entry.changes == {"userId": regular_user.id, "tier": "pro"}


# =============================================================================
# VALIDATION
# =============================================================================


class TestValidateLicense:
    """validate_license never raises; it reports why a key is unusable."""

    def test_valid(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        result = license_service.validate_license(f"  {lic.license_key} ")
        assert result["valid"] is True
        assert result["license"]["tier"] == "pro"

    def test_unknown_key(self, db_session):
        assert license_service.validate_license("ONA-0000-0000-0000") == {
            "valid": False, "reason": "License not found", "license": None,
        }

    def test_deactivated(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        license_service.deactivate_license(admin_ctx, lic.id, "chargeback")
        assert license_service.validate_license(lic.license_key)["reason"] == "License deactivated"
        assert license_service.get_license(lic.id).notes == "Deactivated: chargeback"

    def test_pending_payment(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", payment_status="pending")
        assert license_service.validate_license(lic.license_key)["reason"] == "Payment not confirmed"
        license_service.mark_payment(admin_ctx, lic.id, "completed")
        assert license_service.validate_license(lic.license_key)["valid"] is True

    def test_expired(self, admin_ctx, regular_user, db_session):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", is_lifetime=False)
        license_repository.update(lic.id, {"valid_until": utcnow() - timedelta(days=1)})
        db_session.commit()
        assert license_service.validate_license(lic.license_key)["reason"] == "License expired"
        assert license_service.user_tier_rank(regular_user.id) == 0

    def test_reactivate(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        license_service.deactivate_license(admin_ctx, lic.id)
        license_service.reactivate_license(admin_ctx, lic.id)
        assert license_service.validate_license(lic.license_key)["valid"] is True


# =============================================================================
# TIERS AND SEATS
# =============================================================================


class TestTiersAndSeats:
    def test_rank_without_license(self, regular_user):
        assert license_service.user_tier_rank(regular_user.id) == 0
        assert license_service.user_tier_rank(None) == 0

    def test_highest_tier_wins(self, admin_ctx, regular_user):
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro")
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="enterprise")
        assert license_service.highest_license(regular_user.id).tier == "enterprise"
        assert license_service.check_user_access(regular_user.id, "team") is True

    @pytest.mark.parametrize(
        "owned,required,allowed",
        [("pro", "pro", True), ("pro", "team", False), ("team", "pro", True), ("free", "pro", False)],
    )
    def test_check_user_access(self, admin_ctx, regular_user, owned, required, allowed):
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier=owned)
        assert license_service.check_user_access(regular_user.id, required) is allowed

    def test_free_needs_no_license(self, regular_user):
        assert license_service.check_user_access(regular_user.id, "free") is True

    def test_assign_seat_until_full(self, admin_ctx, regular_user):
        lic = license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", seats_allowed=2)
        license_service.assign_seat(admin_ctx, lic.id)
        assert license_service.assign_seat(admin_ctx, lic.id).seats_used == 2
        with pytest.raises(ConflictError):
            license_service.assign_seat(admin_ctx, lic.id)

    def test_stats(self, admin_ctx, regular_user):
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="pro", amount_paid=14900)
        license_service.issue_license(admin_ctx, user_id=regular_user.id, tier="team", payment_status="pending",
                                      amount_paid=29900)
        stats = license_service.license_stats()
        assert stats["total"] == 2
        assert stats["byTier"] == {"pro": 1, "team": 1}
        assert stats["totalRevenue"] == 14900


# =============================================================================
# CHECKOUT
# =============================================================================


class TestCompleteCheckout:
    def test_paid_session_issues_license(self, user_ctx, regular_user):
        lic = license_service.complete_checkout(user_ctx, _checkout(regular_user))
        assert lic.tier == "pro"
        assert lic.amount_paid == 14900
        assert lic.currency == "USD"
        assert lic.stripe_payment_id == "pi_test_1"

    def test_idempotent(self, user_ctx, regular_user, db_session):
        first = license_service.complete_checkout(user_ctx, _checkout(regular_user))
        again = license_service.complete_checkout(user_ctx, _checkout(regular_user))
        assert again.id == first.id
        assert db_session.query(License).count() == 1

    def test_unpaid_session(self, user_ctx, regular_user):
        with pytest.raises(BadRequestError) as exc:
            license_service.complete_checkout(user_ctx, _checkout(regular_user, status="open"))
        assert exc.value.details == {"status": "open"}
