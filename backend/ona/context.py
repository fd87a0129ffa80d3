# Overview: Explicit per-request context handed from decorators to services.

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import AuthToken, User

ADMIN_ROLES = frozenset({"admin", "super_admin"})


@dataclass(frozen=True)
class RequestContext:
    """
    Who is calling and from where.

    Built once per request by ona.decorators and passed to the view as the
    `ctx` keyword argument. Services receive it as a parameter instead of
    reading flask.g, so the same service call works from routes, the CLI,
    and tests.
    """
    user: "User | None" = None
    session: "AuthToken | None" = None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_admin(self) -> bool:
        return self.user is not None and self.user.role in ADMIN_ROLES

    @property
    def user_id(self) -> str | None:
        return self.user.id if self.user is not None else None

    @classmethod
    def system(cls) -> "RequestContext":
        """Context for CLI commands and maintenance jobs (no user)."""
        return cls(user_agent="ona-cli")


ANONYMOUS = RequestContext()
