"""
IdeaBoard
Webhook Blueprint - chat-bot idea capture.

Endpoints:
    POST /api/v1/webhooks/telegram - Telegram update → idea + chat reply

Not behind API-key auth. When TELEGRAM_WEBHOOK_SECRET is set, the
X-Telegram-Bot-Api-Secret-Token header must match it.

Response contract:
    200 {"success": true, "message": "Webhook received"} - processed or ignored
    500 {"success": false, "error": ...}                  - idea could not be stored
The chat reply is best-effort and never changes the response.
"""

import hmac
import logging

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from ideaboard.context import UserContext
from ideaboard.integrations.telegram_gateway import telegram_gateway
from ideaboard.models import db
from ideaboard.services import capture_service

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhooks", __name__, url_prefix="/api/v1/webhooks")

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def _secret_ok() -> bool:
    expected = current_app.config.get("TELEGRAM_WEBHOOK_SECRET") or ""
    if not expected:
        return True
    provided = request.headers.get(SECRET_HEADER, "")
    return hmac.compare_digest(provided.encode(), expected.encode())


def _reply(chat_id, text):
    if chat_id is None:
        return
    cfg = current_app.config
    result = telegram_gateway.send_message(
        chat_id, text,
        token=cfg.get("TELEGRAM_BOT_TOKEN"),
        base_url=cfg.get("TELEGRAM_API_BASE"),
        timeout=cfg.get("MESSAGING_TIMEOUT", 10.0),
    )
    if not result.ok:
        logger.warning("Telegram reply to chat=%s failed: %s", chat_id, result.error)


@webhook_bp.route("/telegram", methods=["POST"])
def telegram_webhook():
    if not _secret_ok():
        logger.warning("Telegram webhook rejected: bad secret token")
        return jsonify({"success": False, "error": "Invalid webhook secret"}), 401

    incoming = capture_service.extract_message(request.get_json(silent=True) or {})
    if incoming is None:
        logger.info("Telegram update without message text ignored")
        return jsonify({"success": True, "message": "Webhook received"}), 200

    owner_id = current_app.config.get("WEBHOOK_OWNER_ID")
    if not owner_id:
        logger.error("WEBHOOK_OWNER_ID is not configured; cannot store Telegram idea")
        return jsonify({"success": False, "error": "Webhook owner not configured"}), 500

    ctx = UserContext(user_id=owner_id, source="telegram")
    try:
        idea = capture_service.capture_from_message(ctx, incoming)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception("Error storing Telegram idea chat=%s", incoming.chat_id)
        _reply(incoming.chat_id, capture_service.failure_reply())
        return jsonify({"success": False, "error": "Internal Server Error"}), 500

    logger.info("Telegram idea %s stored for chat=%s", idea.id, incoming.chat_id)
    _reply(incoming.chat_id, capture_service.success_reply(idea))
    return jsonify({"success": True, "message": "Webhook received", "idea_id": idea.id}), 200
