# Overview: Request-context decorators for API routes.

"""
Every decorator builds a RequestContext and hands it to the view as the
`ctx` keyword argument:

- optional_auth: anonymous callers allowed; ctx.user is None for them
- require_auth: 401 UNAUTHORIZED without a valid bearer token
- require_admin: require_auth, then 403 FORBIDDEN unless role is admin/super_admin

Failures raise ServiceError subclasses; the app-level error handler turns
them into the error envelope.

read_json() is the one place request bodies are parsed.
"""

from dataclasses import replace
from functools import wraps

from flask import request

from .context import RequestContext
from .errors import BadRequestError, ForbiddenError, UnauthorizedError
from .integrations import auth_provider
from .validation import require_json_object


def _client_ip() -> str | None:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()[:45]
    return request.remote_addr


def build_context() -> RequestContext:
    session_ctx = auth_provider().get_session(request.headers) or RequestContext()
    return replace(
        session_ctx,
        ip_address=_client_ip(),
        user_agent=(request.headers.get("User-Agent") or "")[:512] or None,
    )


def optional_auth(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        kwargs["ctx"] = build_context()
        return f(*args, **kwargs)
    return decorated_function


def require_auth(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = build_context()
        if not ctx.is_authenticated:
            raise UnauthorizedError("Authentication required")
        kwargs["ctx"] = ctx
        return f(*args, **kwargs)
    return decorated_function


def require_admin(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        ctx = build_context()
        if not ctx.is_authenticated:
            raise UnauthorizedError("Authentication required")
        if not ctx.is_admin:
            raise ForbiddenError("Administrator access required")
        kwargs["ctx"] = ctx
        return f(*args, **kwargs)
    return decorated_function


def read_json(*, required: bool = True) -> dict:
    """JSON object body; malformed JSON is BAD_REQUEST, a non-object body is VALIDATION_ERROR."""
    if not request.get_data(cache=True):
        if required:
            raise BadRequestError("Request body must be a JSON object")
        return {}
    payload = request.get_json(force=True, silent=True)
    if payload is None:
        raise BadRequestError("Malformed JSON body")
    return require_json_object(payload)
