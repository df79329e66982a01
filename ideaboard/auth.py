"""
IdeaBoard
Authentication middleware.

Provides:
    - API key authentication via X-API-Key header, each key bound to a user id
    - A per-request ``UserContext`` on ``g.user_context``
    - CSRF mitigation for state-changing requests (JSON Content-Type)

Security model:
    - All /api/v1/* endpoints require a valid API key, except health probes
      and the chat-bot webhook (which checks its own shared secret)
    - With auth disabled (development/testing) the user id comes from the
      X-User-Id header, falling back to DEFAULT_USER_ID

Configuration (env vars):
    API_KEYS          - comma-separated "<key>:<user_id>" pairs
    API_AUTH_ENABLED  - set to "false" to disable auth (development only)
"""

import logging
import os

from flask import current_app, g, jsonify, request

from ideaboard.context import UserContext
from ideaboard.utils.errors import E, api_error

logger = logging.getLogger(__name__)

_PUBLIC_PREFIXES = ("/api/v1/health", "/api/v1/webhooks/")


def _parse_api_keys() -> dict[str, str]:
    """
    Parse API_KEYS env var into {key: user_id} mapping.

    Format: "key1:user-a,key2:user-b". Entries without a user id are ignored.
    """
    raw = os.getenv("API_KEYS", "") or current_app.config.get("API_KEYS", "")
    if not raw.strip():
        return {}

    keys = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        if ":" not in entry:
            logger.warning("API key entry without user id ignored")
            continue
        key, user_id = entry.rsplit(":", 1)
        if key.strip() and user_id.strip():
            keys[key.strip()] = user_id.strip()
    return keys


def _is_auth_enabled() -> bool:
    """Check whether authentication is enabled (env var or app config)."""
    env_val = os.getenv("API_AUTH_ENABLED", "")
    if env_val:
        return env_val.lower() not in ("false", "0", "no", "off")
    return str(current_app.config.get("API_AUTH_ENABLED", "true")).lower() not in (
        "false", "0", "no", "off",
    )


def resolve_user_id():
    """User id named by the request headers, or None when they name nobody.

    Reads headers only, so it also works in hooks that run before
    ``init_auth`` has set ``g.user_context`` (the rate-limit key function).
    """
    if not _is_auth_enabled():
        return request.headers.get("X-User-Id", "").strip() or current_app.config["DEFAULT_USER_ID"]
    api_key = request.headers.get("X-API-Key", "").strip()
    if not api_key:
        return None
    return _parse_api_keys().get(api_key)


def _check_content_type():
    """
    For state-changing requests (POST/PUT/PATCH/DELETE), require
    Content-Type: application/json. HTML forms cannot send that content
    type, which makes this a lightweight CSRF mitigation.
    """
    if request.method in ("POST", "PUT", "PATCH", "DELETE"):
        ct = request.content_type or ""
        if "application/json" not in ct and request.content_length and request.content_length > 0:
            return jsonify({
                "error": "Content-Type must be application/json for state-changing requests"
            }), 415
    return None


def init_auth(app):
    """
    Install authentication middleware on the Flask app.

    Attaches a before_request hook for /api/v1/ routes that resolves the
    calling user and stores a UserContext on ``g``.
    """
    @app.before_request
    def _before_request_auth():
        if not request.path.startswith("/api/v1/"):
            return None
        if request.method == "OPTIONS":
            return None

        csrf_error = _check_content_type()
        if csrf_error:
            return csrf_error

        if request.path.startswith(_PUBLIC_PREFIXES):
            return None

        if not _is_auth_enabled():
            g.user_context = UserContext(user_id=resolve_user_id())
            return None

        api_key = request.headers.get("X-API-Key", "").strip()
        if not api_key:
            return api_error(E.UNAUTHENTICATED, "Authentication required. Provide X-API-Key header.")

        api_keys = _parse_api_keys()
        if not api_keys:
            logger.error("API_KEYS is not configured but API_AUTH_ENABLED=true")
            return api_error(E.INTERNAL, "Server authentication not configured")

        user_id = api_keys.get(api_key)
        if user_id is None:
            logger.warning("Invalid API key attempt: %s...", api_key[:8])
            return api_error(E.UNAUTHENTICATED, "Invalid API key")

        g.user_context = UserContext(user_id=user_id)
        return None

    with app.app_context():
        logger.info("Auth middleware installed (enabled=%s)", _is_auth_enabled())
