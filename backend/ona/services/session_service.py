# Overview: Bearer token issue, validation, and revocation.

"""
Session Token Management

Tokens are 32 random bytes (64 hex chars) handed to the client once; only
their SHA-256 hash is stored in auth_tokens.

- session tokens: absolute deadline (SESSION_ABSOLUTE_HOURS) and idle
  timeout (SESSION_IDLE_HOURS), both from app config
- api_key tokens: absolute deadline only, issued from the CLI for scripts
  and the client wrapper
- revocation is explicit (logout) or automatic (idle, deactivated user)
"""

from __future__ import annotations

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import AuthToken, User
from ..time_utils import utcnow

DEFAULT_ABSOLUTE_HOURS = 24
DEFAULT_IDLE_HOURS = 2


@dataclass
class SessionInfo:
    user: User
    session: AuthToken


def _absolute_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_ABSOLUTE_HOURS", DEFAULT_ABSOLUTE_HOURS))


def _idle_timeout() -> timedelta:
    return timedelta(hours=current_app.config.get("SESSION_IDLE_HOURS", DEFAULT_IDLE_HOURS))


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough here: tokens are high-entropy, unlike passwords."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def create_session(
    user_id: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
    *,
    token_type: str = "session",
    lifetime: timedelta | None = None,
    commit: bool = True,
) -> tuple[AuthToken, str]:
    """
    Returns (token_record, plaintext_token).
    The client receives the plaintext token; the database keeps the hash.
    """
    plaintext = generate_token()
    now = utcnow()
    record = AuthToken(
        user_id=user_id,
        token_hash=hash_token(plaintext),
        token_type=token_type,
        created_at=now,
        last_used_at=now,
        expires_at=now + (lifetime or _absolute_timeout()),
        user_agent=(user_agent or "")[:512] or None,
        ip_address=ip_address,
    )
    db.session.add(record)
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return record, plaintext


def issue_api_key(user_id: str, *, days: int = 365) -> tuple[AuthToken, str]:
    return create_session(user_id, user_agent="api-key", token_type="api_key", lifetime=timedelta(days=days))


def _revoke(record: AuthToken, now) -> None:
    record.revoked_at = now
    db.session.commit()


def validate_session(token: str) -> SessionInfo | None:
    """
    Returns None when the token is unknown, revoked, past its deadline,
    idle for too long, or belongs to an inactive or deleted user.

    Touches last_used_at on success.
    """
    if not token:
        return None
    now = utcnow()
    record = (
        db.session.query(AuthToken)
        .filter(AuthToken.token_hash == hash_token(token), AuthToken.revoked_at.is_(None))
        .first()
    )
    if record is None:
        return None

    if record.expires_at < now:
        return None

    if record.token_type == "session" and now - record.last_used_at > _idle_timeout():
        _revoke(record, now)
        return None

    user = record.user
    if user is None or not user.is_active or user.deleted_at is not None:
        _revoke(record, now)
        return None

    record.last_used_at = now
    db.session.commit()
    return SessionInfo(user=user, session=record)


def revoke_session(token: str) -> bool:
    record = (
        db.session.query(AuthToken)
        .filter(AuthToken.token_hash == hash_token(token), AuthToken.revoked_at.is_(None))
        .first()
    )
    if record is None:
        return False
    _revoke(record, utcnow())
    return True


def revoke_all_user_sessions(user_id: str) -> int:
    now = utcnow()
    records = (
        db.session.query(AuthToken)
        .filter(AuthToken.user_id == user_id, AuthToken.revoked_at.is_(None))
        .all()
    )
    for record in records:
        record.revoked_at = now
    db.session.commit()
    return len(records)


def cleanup_expired_sessions(*, older_than_days: int = 30) -> int:
    """Delete tokens that are expired or revoked and older than the cutoff."""
    cutoff = utcnow() - timedelta(days=older_than_days)
    deleted = (
        db.session.query(AuthToken)
        .filter(
            db.or_(AuthToken.expires_at < utcnow(), AuthToken.revoked_at.isnot(None)),
            AuthToken.created_at < cutoff,
        )
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted
