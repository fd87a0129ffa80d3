# backend/ona/routes/system.py
"""
System health and version endpoints.

Health checks cover the database, the session table, and the catalog
itself; any unhealthy check turns the response into a 503.
"""

import sys
import time

from flask import Blueprint, current_app

from ..envelope import success
from ..extensions import db
from ..models import AuthToken, Category, Component, Product, User
from ..time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def _elapsed(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def check_database_health() -> dict:
    """Connectivity plus one count per core table."""
    start_time = time.time()
    try:
        details = {
            "products": db.session.query(Product).count(),
            "categories": db.session.query(Category).count(),
            "components": db.session.query(Component).count(),
            "users": db.session.query(User).count(),
        }
        return {"status": "healthy", "latencyMs": _elapsed(start_time), "details": details}
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latencyMs": _elapsed(start_time), "error": "Database error"}


def check_session_service_health() -> dict:
    start_time = time.time()
    try:
        now = utcnow()
        active = db.session.query(AuthToken).filter(
            AuthToken.revoked_at.is_(None), AuthToken.expires_at > now
        ).count()
        expired = db.session.query(AuthToken).filter(
            AuthToken.revoked_at.is_(None), AuthToken.expires_at <= now
        ).count()
        return {
            "status": "healthy",
            "latencyMs": _elapsed(start_time),
            "details": {"activeSessions": active, "expiredPendingCleanup": expired},
        }
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Session service health check failed")
        return {"status": "unhealthy", "latencyMs": _elapsed(start_time), "error": "Session service error"}


def check_catalog_health() -> dict:
    """Degraded (still 200) when nothing is published yet."""
    start_time = time.time()
    try:
        published = db.session.query(Component).filter(Component.status == "published").count()
        admins = db.session.query(User).filter(User.role.in_(("admin", "super_admin"))).count()
        details = {"publishedComponents": published, "admins": admins}
        if not admins:
            return {"status": "degraded", "latencyMs": _elapsed(start_time),
                    "warning": "No administrator account", "details": details}
        if not published:
            return {"status": "degraded", "latencyMs": _elapsed(start_time),
                    "warning": "No published components", "details": details}
        return {"status": "healthy", "latencyMs": _elapsed(start_time), "details": details}
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Catalog health check failed")
        return {"status": "unhealthy", "latencyMs": _elapsed(start_time), "error": "Catalog error"}


@system_bp.get("/health")
def health():
    start_time = time.time()
    checks = {
        "database": check_database_health(),
        "sessionService": check_session_service_health(),
        "catalog": check_catalog_health(),
    }
    statuses = [check["status"] for check in checks.values()]
    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    body, status = success(
        {"status": overall, "totalLatencyMs": _elapsed(start_time), "checks": checks},
        status=http_status,
    )
    body["success"] = http_status == 200
    return body, status


@system_bp.get("/version")
def version():
    """Non-sensitive deployment info; no secrets, credentials or paths."""
    return success({
        "apiVersion": current_app.config["API_VERSION"],
        "environment": "development" if current_app.debug else "production",
        "pythonVersion": sys.version.split()[0],
        "serverTime": utcnow().isoformat() + "Z",
    })
