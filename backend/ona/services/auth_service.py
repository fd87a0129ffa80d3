# Overview: Local password authentication, account creation, and login throttling.

"""
Authentication Service

- Passwords hashed with bcrypt (cost from BCRYPT_ROUNDS, default 12)
- Minimum 8 characters with upper, lower, and digit
- Session tokens are managed by session_service
- Failed logins are written to audit_logs as "auth.login_failed"; after
  LOGIN_MAX_FAILED_ATTEMPTS inside LOCKOUT_WINDOW the identifier is locked
  for LOCKOUT_WINDOW and login raises RATE_LIMIT_EXCEEDED
"""

from __future__ import annotations

import logging
import re
from datetime import timedelta

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..context import RequestContext
from ..errors import ConflictError, RateLimitError, UnauthorizedError, ValidationFailed, translate_integrity_error
from ..extensions import db
from ..models import User
from ..models.common import USER_ROLES
from ..repositories import user_repository
from ..time_utils import utcnow
from . import audit_service, session_service

logger = logging.getLogger(__name__)

LOCKOUT_WINDOW = timedelta(minutes=15)
LOGIN_FAILED = "auth.login_failed"


def validate_password_strength(password: str) -> None:
    if not isinstance(password, str) or len(password) < 8:
        raise ValidationFailed.field("password", "Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        raise ValidationFailed.field("password", "Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValidationFailed.field("password", "Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValidationFailed.field("password", "Password must contain at least one digit")


def hash_password(password: str) -> str:
    validate_password_strength(password)
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_user(
    *,
    email: str,
    password: str | None = None,
    role: str = "user",
    username: str | None = None,
    full_name: str | None = None,
    commit: bool = True,
) -> User:
    email = (email or "").strip().lower()
    if not email or "@" not in email:
        raise ValidationFailed.field("email", "A valid email is required")
    if role not in USER_ROLES:
        raise ValidationFailed.field("role", f"role must be one of: {', '.join(USER_ROLES)}")
    if user_repository.find_by_email(email) is not None:
        raise ConflictError("A user with this email already exists", details={"email": email})
    if username and user_repository.find_by_username(username) is not None:
        raise ConflictError("A user with this username already exists", details={"username": username})

    data = {
        "email": email,
        "username": username,
        "full_name": full_name,
        "role": role,
        "password_hash": hash_password(password) if password else None,
    }
    try:
        user = user_repository.create(data)
        if commit:
            db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise translate_integrity_error(exc, "User already exists") from exc
    logger.info("Created user %s (%s)", user.id, role)
    return user


def _recent_failures(identifier: str) -> int:
    return audit_service.count_recent(LOGIN_FAILED, entity_id=identifier, since=utcnow() - LOCKOUT_WINDOW)


def lockout_status(identifier: str) -> dict:
    max_attempts = current_app.config.get("LOGIN_MAX_FAILED_ATTEMPTS", 5)
    failures = _recent_failures(identifier)
    seconds = None
    if failures >= max_attempts:
        last = audit_service.latest(LOGIN_FAILED, entity_id=identifier)
        if last is not None:
            remaining = (last.created_at + LOCKOUT_WINDOW) - utcnow()
            seconds = max(int(remaining.total_seconds()), 0) or None
    return {
        "locked": seconds is not None,
        "failedAttempts": failures,
        "maxAttempts": max_attempts,
        "secondsUntilUnlock": seconds,
    }


def _record_failure(ctx: RequestContext, identifier: str, user: User | None, reason: str) -> None:
    entry = audit_service.record(ctx, LOGIN_FAILED, "user", identifier, {"reason": reason})
    entry.user_id = user.id if user else None
    db.session.commit()


def authenticate(identifier: str, password: str, *, ctx: RequestContext | None = None) -> User:
    """
    Verify credentials for an email or username.

    Raises RATE_LIMIT_EXCEEDED while the identifier is locked and
    UNAUTHORIZED for bad credentials (without saying which part was wrong).
    """
    ctx = ctx or RequestContext.system()
    identifier = (identifier or "").strip().lower()
    if not identifier or not password:
        raise ValidationFailed("Email and password are required", {"email": "is required", "password": "is required"})

    status = lockout_status(identifier)
    if status["locked"]:
        raise RateLimitError(
            "Too many failed login attempts",
            details={"retryAfterSeconds": status["secondsUntilUnlock"]},
        )

    user = user_repository.find_by_email(identifier) or user_repository.find_by_username(identifier)
    if user is None or not user.is_active or user.deleted_at is not None:
        _record_failure(ctx, identifier, None, "Unknown or inactive account")
        raise UnauthorizedError("Invalid credentials")
    if not verify_password(password, user.password_hash):
        _record_failure(ctx, identifier, user, "Invalid password")
        raise UnauthorizedError("Invalid credentials")

    user.last_login_at = utcnow()
    audit_service.record(ctx, "auth.login", "user", user.id)
    db.session.commit()
    return user


def login(identifier: str, password: str, *, ctx: RequestContext | None = None) -> dict:
    ctx = ctx or RequestContext.system()
    user = authenticate(identifier, password, ctx=ctx)
    record, token = session_service.create_session(
        user.id, user_agent=ctx.user_agent, ip_address=ctx.ip_address
    )
    logger.info("User %s logged in", user.id)
    return {"token": token, "expiresAt": record.to_dict()["expiresAt"], "user": user.to_dict()}


def logout(token: str, *, ctx: RequestContext) -> bool:
    revoked = session_service.revoke_session(token)
    if revoked and ctx.user_id:
        audit_service.record(ctx, "auth.logout", "user", ctx.user_id)
        db.session.commit()
    return revoked
