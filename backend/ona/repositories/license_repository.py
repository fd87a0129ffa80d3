from __future__ import annotations

from ..extensions import db
from ..models import License
from ..time_utils import utcnow
from . import base


def find_by_id(license_id: str) -> License | None:
    return db.session.get(License, license_id)


def find_by_key(license_key: str) -> License | None:
    return db.session.query(License).filter(License.license_key == license_key).first()


def find_by_stripe_payment_id(payment_id: str) -> License | None:
    return db.session.query(License).filter(License.stripe_payment_id == payment_id).first()


def find_by_user(user_id: str) -> list[License]:
    return (
        db.session.query(License)
        .filter(License.user_id == user_id)
        .order_by(License.created_at.desc(), License.id.asc())
        .all()
    )


def _usable_filters(now):
    return (
        License.is_active.is_(True),
        License.payment_status == "completed",
        db.or_(License.is_lifetime.is_(True), License.valid_until.is_(None), License.valid_until > now),
    )


def find_active_by_user(user_id: str) -> list[License]:
    """Active, paid, unexpired licenses of a user."""
    return (
        db.session.query(License)
        .filter(License.user_id == user_id, *_usable_filters(utcnow()))
        .order_by(License.created_at.desc(), License.id.asc())
        .all()
    )


def has_usable_license(user_id: str) -> bool:
    query = db.session.query(License.id).filter(License.user_id == user_id, *_usable_filters(utcnow()))
    return db.session.query(query.exists()).scalar()


def count_active_by_tier() -> dict[str, int]:
    return base.grouped_counts(License.tier, None, (License.is_active.is_(True),))


def total_revenue() -> int:
    value = (
        db.session.query(db.func.coalesce(db.func.sum(License.amount_paid), 0))
        .filter(License.payment_status == "completed")
        .scalar()
    )
    return int(value or 0)


def statistics() -> dict:
    total = db.session.query(License).count()
    active = db.session.query(License).filter(License.is_active.is_(True)).count()
    return {
        "total": total,
        "active": active,
        "byTier": count_active_by_tier(),
        "totalRevenue": total_revenue(),
    }


def paginate(*, page: int, limit: int, user_id: str | None = None, tier: str | None = None,
             is_active: bool | None = None) -> base.Page:
    query = db.session.query(License)
    if user_id is not None:
        query = query.filter(License.user_id == user_id)
    if tier is not None:
        query = query.filter(License.tier == tier)
    if is_active is not None:
        query = query.filter(License.is_active.is_(is_active))
    query = query.order_by(License.created_at.desc(), License.id.asc())
    return base.paginate(query, page=page, limit=limit)


def create(data: dict) -> License:
    return base.add(License(**data))


def update(license_id: str, patch: dict) -> License | None:
    lic = find_by_id(license_id)
    if lic is None:
        return None
    return base.apply_patch(lic, patch)


def deactivate(license_id: str, reason: str | None = None) -> License | None:
    lic = find_by_id(license_id)
    if lic is None:
        return None
    patch: dict = {"is_active": False}
    if reason:
        stamp = f"Deactivated: {reason}"
        patch["notes"] = f"{lic.notes}\n{stamp}" if lic.notes else stamp
    return base.apply_patch(lic, patch)


def reactivate(license_id: str) -> License | None:
    return update(license_id, {"is_active": True})


def update_seats_used(license_id: str, seats_used: int) -> License | None:
    return update(license_id, {"seats_used": seats_used})
