"""Telegram-to-core message mapping adapter.

This keeps Telethon-specific details out of the core pipeline: a Telethon
message is reduced to the raw ``{id, text, entities, replyMarkup}`` payload
that ``InboundMessage.from_payload`` understands.
"""

from __future__ import annotations

from typing import Any, Optional

from telethon.tl.custom import Message

from core.models import InboundMessage


def _entities(message: Message) -> list[dict[str, Any]]:
    return [
        {"url": getattr(entity, "url", None)}
        for entity in getattr(message, "entities", None) or []
    ]


def _reply_markup(message: Message) -> dict[str, Any]:
    # Only inline keyboards carry rows of buttons with URLs.
    markup = getattr(message, "reply_markup", None)
    rows = []
    for row in getattr(markup, "rows", None) or []:
        buttons = [{"url": getattr(button, "url", None)} for button in getattr(row, "buttons", None) or []]
        rows.append({"buttons": buttons})
    return {"rows": rows}


def _message_text(message: Message) -> str:
    # Extractors match on markdown (**bold**, `code`), which Telethon renders
    # into .text with the default parse mode. raw_text is the plain fallback.
    text: Optional[str] = getattr(message, "text", None)
    if text is None:
        text = getattr(message, "raw_text", None)
    return text or ""


def to_payload(message: Message) -> dict[str, Any]:
    """Return the raw payload shape for a Telethon Message."""

    return {
        "id": getattr(message, "id", None),
        "text": _message_text(message),
        "entities": _entities(message),
        "replyMarkup": _reply_markup(message),
    }


def build_message(message: Message) -> InboundMessage:
    """Build a core InboundMessage from a Telethon Message."""

    return InboundMessage.from_payload(to_payload(message))
