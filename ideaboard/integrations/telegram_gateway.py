"""
Telegram Bot API gateway.

All outbound calls to api.telegram.org go through this class. The webhook
handler uses it to reply to the chat that sent an idea.

  - Timeout: MESSAGING_TIMEOUT seconds (configurable per call)
  - No retry: a failed reply is logged and the webhook still answers
  - Structured result returned to the caller; never raises on HTTP or
    network errors

Testability: pass a mock `session` to TelegramGateway() in tests, or patch
``telegram_gateway.send_message``.
"""

from __future__ import annotations

import logging
import time

import requests

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_API_BASE = "https://api.telegram.org"


class GatewayResult:
    """Structured return value from TelegramGateway calls.

    Attributes:
        ok:             True if Telegram accepted the call (HTTP 2xx and "ok": true).
        status_code:    HTTP status code (None if network-level failure).
        data:           Parsed JSON response body, else None.
        error:          Human-readable error message or None.
        duration_ms:    Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def __repr__(self) -> str:
        return f"<GatewayResult ok={self.ok} status={self.status_code}>"


class TelegramGateway:
    """Telegram Bot API gateway.

    Usage:
        from ideaboard.integrations.telegram_gateway import telegram_gateway
        result = telegram_gateway.send_message(42, "Saved!", token=token)
    """

    def __init__(self, session: requests.Session | None = None) -> None:
        self._session: requests.Session | None = session

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _method_url(self, base_url: str, token: str, method: str) -> str:
        return f"{(base_url or _DEFAULT_API_BASE).rstrip('/')}/bot{token}/{method}"

    def send_message(
        self,
        chat_id: int | str,
        text: str,
        *,
        token: str | None,
        base_url: str = _DEFAULT_API_BASE,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> GatewayResult:
        """POST /bot<token>/sendMessage.

        Returns:
            GatewayResult - always returns (never raises). Callers check .ok.
        """
        if not token:
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error="TELEGRAM_BOT_TOKEN is not configured", duration_ms=0,
            )

        url = self._method_url(base_url, token, "sendMessage")
        t0 = time.perf_counter()
        try:
            resp = self.session.post(
                url, json={"chat_id": chat_id, "text": text}, timeout=timeout,
            )
        except requests.Timeout:
            logger.warning("Telegram sendMessage timed out chat_id=%s", chat_id)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=f"Request timed out after {timeout}s",
                duration_ms=int(timeout * 1000),
            )
        except requests.RequestException as exc:
            logger.warning("Telegram network error chat_id=%s error=%s", chat_id, exc)
            return GatewayResult(
                ok=False, status_code=None, data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )
        duration_ms = int((time.perf_counter() - t0) * 1000)

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}

        if resp.ok and data.get("ok", True):
            return GatewayResult(
                ok=True, status_code=resp.status_code, data=data,
                error=None, duration_ms=duration_ms,
            )

        error = data.get("description") or f"HTTP {resp.status_code}: {resp.text[:500]}"
        logger.warning(
            "Telegram sendMessage failed status=%s chat_id=%s error=%s",
            resp.status_code, chat_id, error,
        )
        return GatewayResult(
            ok=False, status_code=resp.status_code, data=data or None,
            error=error, duration_ms=duration_ms,
        )


# Module-level singleton
telegram_gateway = TelegramGateway()
