"""
Rate limiting configuration.

Applies per-blueprint limits using Flask-Limiter. The Limiter instance is
created in ideaboard/__init__.py with no default limits; this module applies
limits per route category.

Usage:
    from ideaboard.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

from ideaboard.auth import resolve_user_id

logger = logging.getLogger(__name__)

WEBHOOK_LIMIT = "30/minute"
WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

WRITE_METHODS = ["POST", "PUT", "PATCH", "DELETE"]

_API_BLUEPRINTS = ("ideas", "milestones", "projects", "profile")


def rate_limit_key():
    """Calling user id when the headers name one, else remote IP.

    Flask-Limiter checks limits in its own before_request hook, which runs
    ahead of the auth hook, so the user is resolved from the headers here.
    """
    ctx = getattr(g, "user_context", None)
    user_id = ctx.user_id if ctx is not None else resolve_user_id()
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits:
        - Chat-bot webhook: 30/minute per sender IP
        - Write endpoints:  60/minute (POST/PUT/PATCH/DELETE)
        - Read endpoints:   200/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    bp = app.blueprints.get("webhooks")
    if bp:
        limiter.limit(WEBHOOK_LIMIT)(bp)

    for bp_name in _API_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT, key_func=rate_limit_key, methods=WRITE_METHODS)(bp)
            limiter.limit(READ_LIMIT, key_func=rate_limit_key, methods=["GET"])(bp)

    bp = app.blueprints.get("health_bp")
    if bp:
        limiter.exempt(bp)

    app.logger.info(
        "Rate limiter configured - webhook: %s, write: %s, read: %s",
        WEBHOOK_LIMIT, WRITE_LIMIT, READ_LIMIT,
    )
