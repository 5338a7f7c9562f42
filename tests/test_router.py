from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Optional

from adapters.sqlite_storage import SQLiteTokenStore
from core.extractors import EXTRACTORS
from core.models import InboundMessage, TokenUpdate
from core.router import DispatchRouter
from core.tracker import TokenTracker
from core.update_queue import UpdateQueue

ADDRESS = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"
VOLUME_TEXT = f"🔔 Foo | FOO\nCA: {ADDRESS}"


class FakeSink:
    def __init__(self) -> None:
        self.updates: list[TokenUpdate] = []
        self.marks: list[tuple[str, int]] = []

    def submit(self, update: TokenUpdate) -> None:
        self.updates.append(update)

    def mark_processed(self, channel_key: str, message_id: int) -> None:
        self.marks.append((channel_key, message_id))


class FakeState:
    def __init__(self, last_ids: Optional[dict[str, int]] = None) -> None:
        self.last_ids = dict(last_ids or {})
        self.reads = 0

    def get_last_id(self, source_key: str) -> Optional[int]:
        self.reads += 1
        return self.last_ids.get(source_key)

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        raise AssertionError("the router must not write markers directly")


class LockedState:
    def get_last_id(self, source_key: str) -> Optional[int]:
        raise sqlite3.OperationalError("database is locked")

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        raise sqlite3.OperationalError("database is locked")


def _always_update(message: InboundMessage) -> TokenUpdate:
    return TokenUpdate(contract_address=ADDRESS, high_volume=True, source="volume_tracker")


def _broken(message: InboundMessage) -> TokenUpdate:
    raise KeyError("group")


def test_unroutable_channel_is_dropped(caplog) -> None:
    sink = FakeSink()
    router = DispatchRouter({"volume": _always_update}, sink)
    with caplog.at_level(logging.WARNING):
        assert router.dispatch("unknown", InboundMessage(text="hello", message_id=1)) is None
    assert sink.updates == []
    assert sink.marks == []
    assert "unknown" in caplog.text


def test_update_reaches_sink_before_marker() -> None:
    sink = FakeSink()
    router = DispatchRouter({"volume": _always_update}, sink)
    update = router.dispatch("volume", InboundMessage(text="🔔 Foo | FOO", message_id=3))
    assert update is not None
    assert sink.updates == [update]
    assert sink.marks == [("volume", 3)]
    assert router.channels == ["volume"]


def test_empty_text_is_ignored() -> None:
    sink = FakeSink()
    router = DispatchRouter({"volume": _always_update}, sink)
    assert router.dispatch("volume", InboundMessage(text="   ", message_id=2)) is None
    assert sink.updates == []


def test_extractor_fault_is_logged_and_contained(caplog) -> None:
    sink = FakeSink()
    router = DispatchRouter({"broken": _broken, "volume": _always_update}, sink, FakeState())
    text = "x" * 500
    with caplog.at_level(logging.ERROR):
        assert router.dispatch("broken", InboundMessage(text=text, message_id=7)) is None
    assert "broken" in caplog.text
    assert text not in caplog.text
    assert sink.marks == [("broken", 7)]

    assert router.dispatch("volume", InboundMessage(text="next", message_id=1)) is not None
    assert len(sink.updates) == 1


def test_processed_messages_are_skipped() -> None:
    sink = FakeSink()
    state = FakeState({"volume": 5})
    router = DispatchRouter({"volume": _always_update}, sink, state)

    assert router.dispatch("volume", InboundMessage(text="a", message_id=5)) is None
    assert router.dispatch("volume", InboundMessage(text="b", message_id=4)) is None
    assert router.dispatch("volume", InboundMessage(text="c", message_id=6)) is not None
    assert router.dispatch("volume", InboundMessage(text="c", message_id=6)) is None
    assert router.dispatch("volume", InboundMessage(text="d", message_id=7)) is not None
    assert len(sink.updates) == 2
    assert sink.marks == [("volume", 6), ("volume", 7)]
    # The stored marker is read once, then tracked in memory.
    assert state.reads == 1


def test_messages_without_id_are_always_handled() -> None:
    sink = FakeSink()
    router = DispatchRouter({"volume": _always_update}, sink, FakeState())
    router.dispatch("volume", InboundMessage(text="a"))
    router.dispatch("volume", InboundMessage(text="a"))
    assert len(sink.updates) == 2
    assert sink.marks == []


def test_unreadable_marker_does_not_escape_dispatch(caplog) -> None:
    sink = FakeSink()
    router = DispatchRouter({"volume": _always_update}, sink, LockedState())
    with caplog.at_level(logging.ERROR):
        update = router.dispatch("volume", InboundMessage(text="a", message_id=9))
    assert update is not None
    assert sink.marks == [("volume", 9)]
    assert "database is locked" in caplog.text


def _store_router(tmp_path, queue: UpdateQueue) -> tuple[SQLiteTokenStore, TokenTracker, DispatchRouter]:
    store = SQLiteTokenStore(str(tmp_path / "tokens.db"))
    tracker = TokenTracker(store, queue)
    tracker.start()
    router = DispatchRouter({"volume": EXTRACTORS["volume_tracker"]}, sink=tracker, state=store)
    return store, tracker, router


def test_marker_only_advances_with_the_queue(tmp_path) -> None:
    store, tracker, router = _store_router(tmp_path, UpdateQueue())

    async def _run() -> None:
        router.dispatch("volume", InboundMessage(text=VOLUME_TEXT, message_id=42))
        # Nothing is applied until the drain worker runs.
        assert store.get_last_id("volume") is None
        assert store.get_by_address(ADDRESS) is None
        await tracker.queue.join()

    asyncio.run(_run())
    assert store.get_last_id("volume") == 42
    assert store.get_by_address(ADDRESS).high_volume is True


def test_unapplied_update_is_replayed_after_restart(tmp_path) -> None:
    store, tracker, router = _store_router(tmp_path, UpdateQueue())
    message = InboundMessage(text=VOLUME_TEXT, message_id=42)

    async def _crash() -> None:
        router.dispatch("volume", message)
        # Simulate a crash: drop the queued work before it is drained.
        tracker.queue._pending.clear()

    asyncio.run(_crash())
    assert store.get_last_id("volume") is None

    _, restarted, replay_router = _store_router(tmp_path, UpdateQueue())

    async def _replay() -> None:
        assert replay_router.dispatch("volume", message) is not None
        await restarted.queue.join()

    asyncio.run(_replay())
    assert store.get_by_address(ADDRESS).high_volume is True
    assert store.get_last_id("volume") == 42


def test_failing_store_does_not_escape_dispatch(tmp_path) -> None:
    store = SQLiteTokenStore(str(tmp_path / "tokens.db"))
    tracker = TokenTracker(store, UpdateQueue(max_attempts=1))
    # Schema never created: every store call fails.
    router = DispatchRouter({"volume": EXTRACTORS["volume_tracker"]}, sink=tracker, state=store)

    async def _run() -> None:
        assert router.dispatch("volume", InboundMessage(text=VOLUME_TEXT, message_id=1)) is not None
        assert router.dispatch("volume", InboundMessage(text=VOLUME_TEXT, message_id=2)) is not None
        await tracker.queue.join()

    asyncio.run(_run())
    assert tracker.queue.failed == 4
