"""Static configuration for tokenscope.

All user-editable settings (channels, polling, queue, API, logging) live in
a single JSON file for quick edits without touching Python. Secrets and the
database location come from the environment (.env).
"""

import json
import logging
import os

from dotenv import load_dotenv

from core.config import ChannelConfig, DedupConfig, PollingConfig, QueueConfig
from core.extractors import EXTRACTORS
from core.source_keys import normalize_source_key

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

# Where to store the SQLite database. DB_PATH may point at a mounted volume.
DB_PATH = os.getenv("DB_PATH") or os.path.join(PROJECT_ROOT, "tokens.db")
if not os.path.isabs(DB_PATH):
    DB_PATH = os.path.join(PROJECT_ROOT, DB_PATH)

# Channels and runtime settings are loaded from config.json so users can
# enable/disable channels and tweak cadence without editing code.
CONFIG_PATH = os.getenv("TOKENSCOPE_CONFIG") or os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_channels(raw_channels: list[dict]) -> list[ChannelConfig]:
    """Keep enabled channels whose extract method is known."""

    logger = logging.getLogger(__name__)
    channels: list[ChannelConfig] = []
    for entry in raw_channels:
        if not entry.get("enabled", True):
            continue
        name = entry.get("name")
        source_key = entry.get("source_key")
        extract_method = entry.get("extract_method")
        if not name or not source_key:
            continue
        if extract_method not in EXTRACTORS:
            # The channel stays unregistered; the router drops its messages.
            logger.warning("Unknown extract_method %r for channel %s", extract_method, name)
        channels.append(
            ChannelConfig(
                name=name,
                source_key=normalize_source_key(source_key),
                extract_method=extract_method or "",
            )
        )
    return channels


_CONFIG = _load_json_config()

CHANNELS = _normalize_channels(_CONFIG.get("channels", []))

# Polling cadence: every channel polls on the same interval, offset by
# index * stagger_seconds to avoid a burst of requests on each tick.
_polling = _CONFIG.get("polling", {})
POLLING = PollingConfig(
    interval_seconds=float(_polling.get("interval_seconds", 30)),
    stagger_seconds=float(_polling.get("stagger_seconds", 2)),
    messages_per_poll=int(_polling.get("messages_per_poll", 5)),
)

# Update queue retries: attempts include the first try; the delay doubles.
_queue = _CONFIG.get("queue", {})
QUEUE = QueueConfig(
    max_attempts=int(_queue.get("max_attempts", 3)),
    backoff_seconds=float(_queue.get("backoff_seconds", 1.0)),
)

# Seen-transfer fingerprints older than ttl_days are purged at startup.
_dedup = _CONFIG.get("dedup", {})
DEDUP = DedupConfig(ttl_days=int(_dedup.get("ttl_days", 0)))

# Read/import HTTP API.
_api = _CONFIG.get("api", {})
API_ENABLED = bool(_api.get("enabled", True))
API_HOST = _api.get("host", "127.0.0.1")
API_PORT = int(os.getenv("PORT") or _api.get("port", 3000))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
