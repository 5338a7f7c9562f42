"""Helpers for working with channel source keys.

A source key is either ``@username`` (lowercased) or ``chat_id:<int>``.
"""

from __future__ import annotations

from typing import Union

CHAT_ID_PREFIX = "chat_id:"


def normalize_source_key(raw_value: str) -> str:
    """Return the canonical form of a configured source key.

    Raises ValueError for anything that is neither a username nor a chat id.
    """

    value = (raw_value or "").strip()
    if value.startswith("@"):
        username = value[1:]
        if not username or not username.replace("_", "a").isalnum():
            raise ValueError(f"Invalid username source key: {raw_value!r}")
        return f"@{username.lower()}"
    if value.startswith(CHAT_ID_PREFIX):
        chat_value = value[len(CHAT_ID_PREFIX) :]
        try:
            return f"{CHAT_ID_PREFIX}{int(chat_value)}"
        except ValueError:
            raise ValueError(f"chat_id must be numeric: {raw_value!r}") from None
    raise ValueError(f"source_key must start with @ or chat_id: {raw_value!r}")


def entity_ref(source_key: str) -> Union[str, int]:
    """Return what the Telegram client accepts to resolve the chat entity."""

    if source_key.startswith(CHAT_ID_PREFIX):
        return int(source_key.split(CHAT_ID_PREFIX, 1)[1])
    return source_key
