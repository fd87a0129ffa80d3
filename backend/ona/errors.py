# Overview: Closed error taxonomy shared by services, routes, and the API client.

"""
Service errors carry a code from ErrorCode and a fixed HTTP status.

Repositories never translate driver errors. Services catch IntegrityError
and re-raise a ConflictError; the Flask error handler registered in
create_app() turns any ServiceError into the error envelope.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from sqlalchemy.exc import IntegrityError


class ErrorCode(str, Enum):
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self]


HTTP_STATUS = {
    ErrorCode.BAD_REQUEST: 400,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.PREMIUM_REQUIRED: 402,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONFLICT: 409,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.INTERNAL_ERROR: 500,
}


class ServiceError(Exception):
    """Base class for every error a service may raise on purpose."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    @property
    def status(self) -> int:
        return self.code.http_status

    def to_dict(self) -> dict:
        body = {"message": self.message, "code": self.code.value}
        if self.details is not None:
            body["details"] = self.details
        return body


class BadRequestError(ServiceError):
    code = ErrorCode.BAD_REQUEST


class UnauthorizedError(ServiceError):
    code = ErrorCode.UNAUTHORIZED


class PremiumRequiredError(ServiceError):
    code = ErrorCode.PREMIUM_REQUIRED


class ForbiddenError(ServiceError):
    code = ErrorCode.FORBIDDEN


class NotFoundError(ServiceError):
    code = ErrorCode.NOT_FOUND

    @classmethod
    def for_entity(cls, label: str, entity_id: Any = None) -> "NotFoundError":
        if entity_id is None:
            return cls(f"{label} not found")
        return cls(f"{label} not found", details={"id": str(entity_id)})


class ConflictError(ServiceError):
    code = ErrorCode.CONFLICT


class ValidationFailed(ServiceError):
    """Schema-level rejection; details maps field name -> message."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(self, message: str = "Validation failed", details: dict | None = None):
        super().__init__(message, details or {})

    @classmethod
    def field(cls, name: str, message: str) -> "ValidationFailed":
        return cls(message, {name: message})


class RateLimitError(ServiceError):
    code = ErrorCode.RATE_LIMIT_EXCEEDED


class InternalError(ServiceError):
    code = ErrorCode.INTERNAL_ERROR


def translate_integrity_error(exc: IntegrityError, message: str) -> ConflictError:
    """Map a constraint violation to CONFLICT without exposing driver text."""
    return ConflictError(message, details={"constraint": _constraint_hint(exc)})


def _constraint_hint(exc: IntegrityError) -> str:
    text = str(getattr(exc, "orig", exc)).lower()
    if "unique" in text or "duplicate" in text:
        return "unique"
    if "foreign key" in text:
        return "foreign_key"
    if "check" in text:
        return "check"
    if "not null" in text:
        return "not_null"
    return "integrity"
