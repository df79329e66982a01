"""ideaboard.integrations - External service gateway modules.

All outbound HTTP calls to third-party APIs go through a gateway in this
package, never via bare `requests` calls in services or blueprints.

Every gateway call:
  - Carries an explicit timeout
  - Returns a structured result instead of raising on HTTP/network errors
  - Logs failures with enough context to trace the request

Current gateways:
  telegram_gateway.TelegramGateway - Telegram Bot API (sendMessage replies)
"""
