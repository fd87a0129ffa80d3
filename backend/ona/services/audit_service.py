# Overview: Append-only audit trail for admin mutations.

"""
Audit entries are added to the caller's session and committed with the
change they describe, so a rolled-back operation leaves no entry behind.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from ..context import RequestContext
from ..extensions import db
from ..models import AuditLog
from ..repositories import base
from ..time_utils import to_utc_z, utcnow


def _jsonable(value: Any):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return to_utc_z(value)
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    return value


def record(
    ctx: RequestContext | None,
    action: str,
    entity_type: str,
    entity_id: str | None = None,
    changes: dict | None = None,
) -> AuditLog:
    ctx = ctx or RequestContext.system()
    entry = AuditLog(
        user_id=ctx.user_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        changes=_jsonable(changes) if changes else None,
        ip_address=ctx.ip_address,
        user_agent=ctx.user_agent,
        created_at=utcnow(),
    )
    db.session.add(entry)
    return entry


def list_entries(
    *,
    page: int,
    limit: int,
    entity_type: str | None = None,
    entity_id: str | None = None,
    action: str | None = None,
    user_id: str | None = None,
) -> base.Page:
    query = db.session.query(AuditLog)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    return base.paginate(query, page=page, limit=limit)


def count_recent(action: str, *, entity_id: str, since: datetime) -> int:
    return (
        db.session.query(AuditLog)
        .filter(
            AuditLog.action == action,
            AuditLog.entity_id == entity_id,
            AuditLog.created_at >= since,
        )
        .count()
    )


def latest(action: str, *, entity_id: str) -> AuditLog | None:
    return (
        db.session.query(AuditLog)
        .filter(AuditLog.action == action, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .first()
    )
