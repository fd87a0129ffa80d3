from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .common import LICENSE_TIERS, PAYMENT_STATUSES, id_column, one_of


class License(db.Model):
    """
    A purchased (or granted) license tier for one user.

    valid_until is NULL for lifetime licenses. The seat and discount checks
    live in the database so a bad update fails even outside the service layer.
    """
    __tablename__ = "licenses"
    __table_args__ = (
        db.UniqueConstraint("license_key", name="uq_licenses_license_key"),
        db.UniqueConstraint("stripe_payment_id", name="uq_licenses_stripe_payment"),
        db.Index("ix_licenses_user_active", "user_id", "is_active"),
        db.CheckConstraint("seats_used <= seats_allowed", name="ck_licenses_seats"),
        db.CheckConstraint(
            "discount_percentage >= 0 AND discount_percentage <= 100",
            name="ck_licenses_discount",
        ),
        one_of("tier", LICENSE_TIERS, "ck_licenses_tier"),
        one_of("payment_status", PAYMENT_STATUSES, "ck_licenses_payment_status"),
    )

    id = id_column()
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    license_key = db.Column(db.String(255), nullable=False)
    tier = db.Column(db.String(16), nullable=False)

    stripe_payment_id = db.Column(db.String(255), nullable=True)
    stripe_customer_id = db.Column(db.String(255), nullable=True)
    amount_paid = db.Column(db.Integer, nullable=False, default=0)  # cents
    currency = db.Column(db.String(3), nullable=False, default="USD")
    payment_status = db.Column(db.String(16), nullable=False, default="pending")

    seats_allowed = db.Column(db.Integer, nullable=False, default=1)
    seats_used = db.Column(db.Integer, nullable=False, default=0)

    valid_from = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    valid_until = db.Column(db.DateTime(timezone=True), nullable=True)
    is_lifetime = db.Column(db.Boolean, nullable=False, default=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    is_early_bird = db.Column(db.Boolean, nullable=False, default=False)
    discount_percentage = db.Column(db.Integer, nullable=False, default=0)
    discount_code = db.Column(db.String(50), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, server_default=db.func.now())

    user = db.relationship("User", back_populates="licenses")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "licenseKey": self.license_key,
            "tier": self.tier,
            "amountPaid": self.amount_paid,
            "currency": self.currency,
            "paymentStatus": self.payment_status,
            "seatsAllowed": self.seats_allowed,
            "seatsUsed": self.seats_used,
            "validFrom": to_utc_z(self.valid_from),
            "validUntil": to_utc_z(self.valid_until),
            "isLifetime": self.is_lifetime,
            "isActive": self.is_active,
            "isEarlyBird": self.is_early_bird,
            "discountPercentage": self.discount_percentage,
            "discountCode": self.discount_code,
            "createdAt": to_utc_z(self.created_at),
        }
