from __future__ import annotations

from sqlalchemy import update as sa_update

from ..extensions import db
from ..models import ComponentVersion
from . import base


def find_by_id(version_id: str) -> ComponentVersion | None:
    return db.session.get(ComponentVersion, version_id)


def _newest_first(query):
    return query.order_by(ComponentVersion.created_at.desc(), ComponentVersion.id.desc())


def find_by_component(component_id: str) -> list[ComponentVersion]:
    return _newest_first(
        db.session.query(ComponentVersion).filter(ComponentVersion.component_id == component_id)
    ).all()


def find_latest(component_id: str) -> ComponentVersion | None:
    return _newest_first(
        db.session.query(ComponentVersion).filter(ComponentVersion.component_id == component_id)
    ).first()


def find_default(component_id: str) -> ComponentVersion | None:
    return (
        db.session.query(ComponentVersion)
        .filter(ComponentVersion.component_id == component_id, ComponentVersion.is_default.is_(True))
        .first()
    )


def find_by_framework(component_id: str, framework: str, css_framework: str | None = None) -> list[ComponentVersion]:
    query = db.session.query(ComponentVersion).filter(
        ComponentVersion.component_id == component_id,
        ComponentVersion.framework == framework,
    )
    if css_framework is not None:
        query = query.filter(ComponentVersion.css_framework == css_framework)
    return _newest_first(query).all()


def find_by_version(component_id: str, framework: str, css_framework: str, version_number: str) -> ComponentVersion | None:
    return (
        db.session.query(ComponentVersion)
        .filter(
            ComponentVersion.component_id == component_id,
            ComponentVersion.framework == framework,
            ComponentVersion.css_framework == css_framework,
            ComponentVersion.version_number == version_number,
        )
        .first()
    )


def version_numbers(component_id: str, framework: str) -> list[str]:
    rows = (
        db.session.query(ComponentVersion.version_number)
        .filter(ComponentVersion.component_id == component_id, ComponentVersion.framework == framework)
        .all()
    )
    return [number for (number,) in rows]


def paginate(component_id: str, *, page: int, limit: int, framework: str | None = None,
             css_framework: str | None = None) -> base.Page:
    query = db.session.query(ComponentVersion).filter(ComponentVersion.component_id == component_id)
    if framework is not None:
        query = query.filter(ComponentVersion.framework == framework)
    if css_framework is not None:
        query = query.filter(ComponentVersion.css_framework == css_framework)
    return base.paginate(_newest_first(query), page=page, limit=limit)


def clear_default(component_id: str, exclude_id: str | None = None) -> int:
    """
    Unset is_default on every version of a component in one UPDATE.

    Must run before the new default row is flushed, otherwise the partial
    unique index sees two defaults.
    """
    stmt = sa_update(ComponentVersion).where(
        ComponentVersion.component_id == component_id,
        ComponentVersion.is_default.is_(True),
    )
    if exclude_id is not None:
        stmt = stmt.where(ComponentVersion.id != exclude_id)
    result = db.session.execute(
        stmt.values(is_default=False).execution_options(synchronize_session="fetch")
    )
    return result.rowcount


def create(data: dict) -> ComponentVersion:
    if data.get("is_default"):
        clear_default(data["component_id"])
    return base.add(ComponentVersion(**data))


def update(version_id: str, patch: dict) -> ComponentVersion | None:
    version = find_by_id(version_id)
    if version is None:
        return None
    if patch.get("is_default"):
        clear_default(version.component_id, exclude_id=version.id)
    return base.apply_patch(version, patch)


def set_as_default(version_id: str) -> bool:
    version = find_by_id(version_id)
    if version is None:
        return False
    clear_default(version.component_id, exclude_id=version.id)
    base.apply_patch(version, {"is_default": True})
    return True


def delete(version_id: str) -> bool:
    return base.delete_by_id(ComponentVersion, version_id)


def framework_stats(component_id: str | None = None) -> list[dict]:
    query = db.session.query(
        ComponentVersion.framework,
        ComponentVersion.css_framework,
        db.func.count(ComponentVersion.id),
    )
    if component_id is not None:
        query = query.filter(ComponentVersion.component_id == component_id)
    rows = (
        query.group_by(ComponentVersion.framework, ComponentVersion.css_framework)
        .order_by(ComponentVersion.framework.asc(), ComponentVersion.css_framework.asc())
        .all()
    )
    return [{"framework": fw, "cssFramework": css, "count": count} for fw, css, count in rows]


def lock_component_versions(component_id: str) -> list[ComponentVersion]:
    """SELECT ... FOR UPDATE on a component's versions (a no-op on SQLite)."""
    return (
        db.session.query(ComponentVersion)
        .filter(ComponentVersion.component_id == component_id)
        .with_for_update()
        .all()
    )
