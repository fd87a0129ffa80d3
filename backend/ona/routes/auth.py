# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/ona/routes/auth.py
"""
Password login for admin and API users.

- Login is throttled per identifier (RATE_LIMIT_EXCEEDED once locked out)
- Tokens are opaque; send them as "Authorization: Bearer <token>"
- There is no self-registration; accounts come from `flask users create-admin`
"""

from flask import Blueprint, request

from ..decorators import optional_auth, read_json, require_auth
from ..envelope import success
from ..errors import ValidationFailed
from ..services import auth_service, user_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@optional_auth
def login_route(ctx):
    data = read_json()
    identifier = data.get("identifier") or data.get("email") or data.get("username")
    password = data.get("password")

    errors = {}
    if not isinstance(identifier, str) or not identifier.strip():
        errors["email"] = "email or username is required"
    if not isinstance(password, str) or not password:
        errors["password"] = "password is required"
    if errors:
        raise ValidationFailed("Validation failed", errors)

    return success(auth_service.login(identifier.strip(), password, ctx=ctx), "Logged in")


@auth_bp.post("/logout")
@require_auth
def logout_route(ctx):
    token = request.headers.get("Authorization", "").split(" ", 1)[-1].strip()
    auth_service.logout(token, ctx=ctx)
    return success(None, "Logged out")


@auth_bp.get("/me")
@require_auth
def me_route(ctx):
    return success({
        "user": ctx.user.to_dict(),
        "session": ctx.session.to_dict() if ctx.session is not None else None,
        "subscription": user_service.subscription(ctx),
    })
