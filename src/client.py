"""Telegram client factory for tokenscope.

We explicitly manage the client's lifecycle (connect/disconnect) so it is
obvious when the session is created and when it ends. This avoids implicit
context-manager behavior for a long-running poller.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv
from telethon import TelegramClient
from telethon.sessions import StringSession


def _env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def build_client() -> TelegramClient:
    """Create a Telethon client from environment variables.

    API_ID/API_HASH (or TELEGRAM_API_ID/TELEGRAM_API_HASH) are required.
    TELEGRAM_STRING_SESSION selects a portable string session, which suits
    hosts without a persistent disk; otherwise SESSION_NAME (default
    "tokenscope") names a local .session file.
    """

    load_dotenv()

    api_id = _env("API_ID", "TELEGRAM_API_ID")
    api_hash = _env("API_HASH", "TELEGRAM_API_HASH")
    string_session = os.getenv("TELEGRAM_STRING_SESSION")
    session_name = os.getenv("SESSION_NAME", "tokenscope")

    # Fail fast on missing credentials to avoid an ambiguous login prompt.
    if not api_id or not api_hash:
        raise RuntimeError("Missing API_ID or API_HASH in environment")

    logger = logging.getLogger(__name__)
    if string_session:
        logger.info("Initializing Telegram client with a string session")
        session = StringSession(string_session)
    else:
        logger.info("Initializing Telegram client with session file %s", session_name)
        session = session_name

    return TelegramClient(session, int(api_id), api_hash, connection_retries=5, request_retries=3)
