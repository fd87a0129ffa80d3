# backend/ona/config.py
from __future__ import annotations
import os


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file in the instance folder unless DATABASE_URL points at Postgres
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///ona.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Frontends allowed to call the API from a browser (docs site + admin)
    CORS_ORIGINS = _split_csv(os.environ.get("CORS_ORIGINS")) or [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:3001",
    ]

    # Session tokens
    SESSION_ABSOLUTE_HOURS = int(os.environ.get("SESSION_ABSOLUTE_HOURS", "24"))
    SESSION_IDLE_HOURS = int(os.environ.get("SESSION_IDLE_HOURS", "2"))
    LOGIN_MAX_FAILED_ATTEMPTS = int(os.environ.get("LOGIN_MAX_FAILED_ATTEMPTS", "5"))
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Collaborators (see ona.integrations)
    AUTH_PROVIDER = os.environ.get("AUTH_PROVIDER", "token")
    PAYMENT_PROVIDER = os.environ.get("PAYMENT_PROVIDER", "local")
    FILE_STORE = os.environ.get("FILE_STORE", "local")

    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_UPLOAD_BYTES = int(os.environ.get("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))
    PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:5000")

    # Prices in cents per license tier, used by the checkout flow
    TIER_PRICES_CENTS = {
        "pro": int(os.environ.get("PRICE_PRO_CENTS", "14900")),
        "team": int(os.environ.get("PRICE_TEAM_CENTS", "39900")),
        "enterprise": int(os.environ.get("PRICE_ENTERPRISE_CENTS", "99900")),
    }

    API_VERSION = "1.0.0"
