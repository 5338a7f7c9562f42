"""Periodic channel polling adapter.

Each monitored channel gets its own task on a fixed interval, offset by a
per-channel phase so the channels do not all hit Telegram at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from adapters.telegram_mapper import build_message
from core.config import ChannelConfig, PollingConfig
from core.router import DispatchRouter
from core.source_keys import entity_ref

LOGGER = logging.getLogger(__name__)


class ChannelPoller:
    """Fetch the newest messages of each channel and feed them to the router."""

    def __init__(
        self,
        client,
        router: DispatchRouter,
        channels: Sequence[ChannelConfig],
        polling: PollingConfig,
    ) -> None:
        self._client = client
        self._router = router
        self._channels = list(channels)
        self._polling = polling
        self._entities: dict[str, Any] = {}
        self._tasks: list[asyncio.Task] = []

    async def _resolve(self, channel: ChannelConfig) -> Any:
        if channel.source_key not in self._entities:
            self._entities[channel.source_key] = await self._client.get_entity(
                entity_ref(channel.source_key)
            )
        return self._entities[channel.source_key]

    async def poll_once(self, channel: ChannelConfig) -> int:
        """Fetch one window of messages and dispatch them oldest first."""

        entity = await self._resolve(channel)
        messages = []
        async for message in self._client.iter_messages(entity, limit=self._polling.messages_per_poll):
            if message is not None:
                messages.append(message)
        LOGGER.debug("Got %s messages from %s", len(messages), channel.name)

        handled = 0
        for message in reversed(messages):
            self._router.dispatch(channel.name, build_message(message))
            handled += 1
        return handled

    async def _poll_loop(self, channel: ChannelConfig, phase: float) -> None:
        if phase > 0:
            await asyncio.sleep(phase)
        while True:
            try:
                await self.poll_once(channel)
            except asyncio.CancelledError:
                raise
            except Exception:
                # Unreachable channel or transient network error: try next tick.
                self._entities.pop(channel.source_key, None)
                LOGGER.exception("Error polling %s", channel.name)
            await asyncio.sleep(self._polling.interval_seconds)

    async def run(self) -> None:
        """Run all channel loops until cancelled."""

        if not self._channels:
            LOGGER.warning("No channels configured, nothing to poll")
            return
        for index, channel in enumerate(self._channels):
            LOGGER.info("Setting up polling for %s (%s)", channel.name, channel.source_key)
            phase = index * self._polling.stagger_seconds
            self._tasks.append(asyncio.create_task(self._poll_loop(channel, phase)))
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
