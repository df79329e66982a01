"""Per-request user context.

Services never read the current user or the clock from globals; every call
receives a ``UserContext``. The auth middleware builds one per request and
stores it on ``g``; tests and CLI commands build their own.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from flask import g

from ideaboard.core.exceptions import NotFoundError


def _utc_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserContext:
    user_id: str
    clock: Callable[[], datetime] = field(default=_utc_clock, compare=False)
    source: str = "api"

    def now(self) -> datetime:
        return self.clock()

    def owns(self, row) -> bool:
        return row is not None and getattr(row, "user_id", None) == self.user_id

    def require_owned(self, row, resource: str, resource_id=None):
        """Return ``row`` if it belongs to this user, else raise NotFoundError."""
        if not self.owns(row):
            raise NotFoundError(resource=resource, resource_id=resource_id, user_id=self.user_id)
        return row


def current_context() -> UserContext:
    """The context installed by the auth middleware for this request."""
    ctx = getattr(g, "user_context", None)
    if ctx is None:
        raise RuntimeError("No user context on this request")
    return ctx
