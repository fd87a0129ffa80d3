# Overview: Data access for user interaction rows (views, copies, favorites).

from __future__ import annotations

from datetime import datetime

from ..extensions import db
from ..models import Component, ComponentCopy, ComponentView, UserFavorite
from . import base


def add_view(data: dict) -> ComponentView:
    return base.add(ComponentView(**data))


def add_copy(data: dict) -> ComponentCopy:
    return base.add(ComponentCopy(**data))


def count_views(component_id: str, *, since: datetime | None = None) -> int:
    query = db.session.query(ComponentView).filter(ComponentView.component_id == component_id)
    if since is not None:
        query = query.filter(ComponentView.viewed_at >= since)
    return query.count()


def count_unique_viewers(component_id: str) -> int:
    return (
        db.session.query(db.func.count(db.distinct(ComponentView.user_id)))
        .filter(ComponentView.component_id == component_id, ComponentView.user_id.isnot(None))
        .scalar()
        or 0
    )


def count_copies(component_id: str, *, since: datetime | None = None) -> int:
    query = db.session.query(ComponentCopy).filter(ComponentCopy.component_id == component_id)
    if since is not None:
        query = query.filter(ComponentCopy.copied_at >= since)
    return query.count()


def find_favorite(user_id: str, component_id: str) -> UserFavorite | None:
    return (
        db.session.query(UserFavorite)
        .filter(UserFavorite.user_id == user_id, UserFavorite.component_id == component_id)
        .first()
    )


def add_favorite(user_id: str, component_id: str) -> UserFavorite:
    return base.add(UserFavorite(user_id=user_id, component_id=component_id))


def remove_favorite(user_id: str, component_id: str) -> bool:
    deleted = (
        db.session.query(UserFavorite)
        .filter(UserFavorite.user_id == user_id, UserFavorite.component_id == component_id)
        .delete(synchronize_session=False)
    )
    return deleted > 0


def favorite_components(user_id: str, *, page: int, limit: int) -> base.Page:
    query = (
        db.session.query(Component)
        .join(UserFavorite, UserFavorite.component_id == Component.id)
        .filter(UserFavorite.user_id == user_id)
        .order_by(UserFavorite.created_at.desc(), Component.id.asc())
    )
    return base.paginate(query, page=page, limit=limit)


def count_favorites(component_id: str) -> int:
    return db.session.query(UserFavorite).filter(UserFavorite.component_id == component_id).count()
