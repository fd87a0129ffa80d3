from __future__ import annotations

from ..extensions import db
from ..models import User
from . import base, license_repository


def find_by_id(user_id: str) -> User | None:
    return db.session.get(User, user_id)


def find_by_email(email: str) -> User | None:
    return db.session.query(User).filter(db.func.lower(User.email) == email.strip().lower()).first()


def find_by_username(username: str) -> User | None:
    return db.session.query(User).filter(User.username == username).first()


def find_by_role(role: str) -> list[User]:
    return (
        db.session.query(User)
        .filter(User.role == role, User.deleted_at.is_(None))
        .order_by(User.email.asc())
        .all()
    )


def paginate(*, page: int, limit: int, role: str | None = None, search: str | None = None) -> base.Page:
    query = db.session.query(User).filter(User.deleted_at.is_(None))
    if role is not None:
        query = query.filter(User.role == role)
    if search:
        term = search.lower()
        query = query.filter(
            db.or_(
                db.func.lower(User.email).contains(term, autoescape=True),
                db.func.lower(db.func.coalesce(User.username, "")).contains(term, autoescape=True),
            )
        )
    query = query.order_by(User.created_at.desc(), User.id.asc())
    return base.paginate(query, page=page, limit=limit)


def create(data: dict) -> User:
    return base.add(User(**data))


def update(user_id: str, patch: dict) -> User | None:
    user = find_by_id(user_id)
    if user is None:
        return None
    return base.apply_patch(user, patch)


def has_active_subscription(user_id: str) -> bool:
    """True when the user holds an active, paid, unexpired license."""
    return license_repository.has_usable_license(user_id)
