"""Chat-bot capture.

Turns a Telegram update into an idea. Only ``message.text`` is used; edited
messages, callbacks and media without a caption are acknowledged and
ignored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from ideaboard.context import UserContext
from ideaboard.core.exceptions import ValidationError
from ideaboard.models.idea import Idea
from ideaboard.services import idea_service

logger = logging.getLogger(__name__)

CAPTURE_CATEGORY = "random"


@dataclass
class IncomingMessage:
    chat_id: int | str | None
    text: str


def extract_message(payload) -> IncomingMessage | None:
    """Pull ``{message: {text, chat: {id}}}`` out of an update.

    Returns None when there is nothing to capture.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Webhook payload must be a JSON object")
    message = payload.get("message")
    if not isinstance(message, dict):
        return None
    text = message.get("text") or message.get("caption") or ""
    if not isinstance(text, str) or not text.strip():
        return None
    chat = message.get("chat") or {}
    chat_id = chat.get("id") if isinstance(chat, dict) else None
    return IncomingMessage(chat_id=chat_id, text=text)


def capture_from_message(ctx: UserContext, incoming: IncomingMessage) -> Idea:
    return idea_service.capture_idea(
        ctx, incoming.text, source="telegram", category=CAPTURE_CATEGORY,
    )


def success_reply(idea: Idea) -> str:
    return f'💡 Idea saved: "{idea.title}"'


def failure_reply() -> str:
    return "⚠️ Sorry, your idea could not be saved. Please try again."
