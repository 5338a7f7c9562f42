"""Dispatch router (core domain).

This module is integration-agnostic. It maps a channel to its extractor and
hands any resulting update to a sink, enabling other frontends or adapters
without changes here.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional, Protocol

from core.extractors import Extractor
from core.models import InboundMessage, TokenUpdate
from core.ports import SourceStatePort

LOGGER = logging.getLogger(__name__)

EXCERPT_CHARS = 120


class UpdateSink(Protocol):
    def submit(self, update: TokenUpdate) -> None:
        ...

    def mark_processed(self, channel_key: str, message_id: int) -> None:
        ...


def _excerpt(text: str, limit: int = EXCERPT_CHARS) -> str:
    flat = " ".join(text.split())
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."


class DispatchRouter:
    """Routes inbound messages to the extractor registered for their channel.

    ``state`` is only read, once per channel, to seed the processed-message
    marker. Advancing the marker is the sink's job, so it is persisted after
    the update it follows.
    """

    def __init__(
        self,
        extractors: Mapping[str, Extractor],
        sink: UpdateSink,
        state: Optional[SourceStatePort] = None,
    ) -> None:
        self._extractors = dict(extractors)
        self._sink = sink
        self._state = state
        self._last_ids: dict[str, int] = {}

    @property
    def channels(self) -> list[str]:
        return sorted(self._extractors)

    def _last_id(self, channel_key: str) -> int:
        if channel_key in self._last_ids:
            return self._last_ids[channel_key]
        if self._state is None:
            return 0
        try:
            last_id = self._state.get_last_id(channel_key) or 0
        except Exception:
            # Not cached: the next message tries the store again.
            LOGGER.exception("Could not read the last processed id for %s", channel_key)
            return 0
        self._last_ids[channel_key] = last_id
        return last_id

    def dispatch(self, channel_key: str, message: InboundMessage) -> Optional[TokenUpdate]:
        """Process one message; never raises for bad input."""

        extractor = self._extractors.get(channel_key)
        if extractor is None:
            LOGGER.warning("No extractor registered for %s, dropping message", channel_key)
            return None

        # Media-only messages without captions carry nothing to extract.
        if not (message.text or "").strip():
            return None

        # Message-level idempotency: ids grow monotonically per chat, so
        # anything at or below the marker has already been handled.
        message_id = message.message_id
        if message_id is not None and message_id <= self._last_id(channel_key):
            return None

        update = None
        try:
            update = extractor(message)
        except Exception:
            LOGGER.exception(
                "Extractor failed for %s on message %r",
                channel_key,
                _excerpt(message.text),
            )

        if update is not None:
            self._sink.submit(update)
            LOGGER.info(
                "Queued %s update for %s from %s",
                update.source or "token",
                update.contract_address,
                channel_key,
            )

        if message_id is not None:
            self._last_ids[channel_key] = message_id
            # Queued behind the update, so a crash before the update is
            # applied leaves the marker behind and the message is replayed.
            self._sink.mark_processed(channel_key, message_id)
        return update
