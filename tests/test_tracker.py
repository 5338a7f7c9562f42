from __future__ import annotations

import asyncio

from adapters.sqlite_storage import SQLiteTokenStore
from core.config import DedupConfig
from core.extractors import EXTRACTORS
from core.models import InboundMessage, TokenRecord, TokenUpdate
from core.router import DispatchRouter
from core.tracker import TokenTracker
from core.update_queue import UpdateQueue

ADDRESS = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"
OTHER_ADDRESS = "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr"

WALLET_TEXT = "🐳 Smart wallet sent 10 🌱 FOO ($5) to 🤓 Whale One"
GOD_MODE_URL = f"https://app.nansen.ai/token-god-mode?tokenAddress={ADDRESS}"


class FailingStore:
    def __init__(self) -> None:
        self.initialized = False
        self.cleanups: list[int] = []

    def init_db(self) -> None:
        self.initialized = True

    def cleanup_seen(self, ttl_days: int) -> int:
        self.cleanups.append(ttl_days)
        return 0

    def bulk_replace(self, records) -> int:
        raise RuntimeError("database is locked")


def _tracker(tmp_path) -> TokenTracker:
    tracker = TokenTracker(SQLiteTokenStore(str(tmp_path / "tokens.db")), UpdateQueue(max_attempts=1))
    tracker.start()
    return tracker


def _router(tracker: TokenTracker) -> DispatchRouter:
    return DispatchRouter(
        {"volume": EXTRACTORS["volume_tracker"], "wallet": EXTRACTORS["wallet_tracker"]},
        sink=tracker,
    )


def test_volume_message_end_to_end(tmp_path) -> None:
    tracker = _tracker(tmp_path)

    async def _run() -> None:
        router = _router(tracker)
        router.dispatch("volume", InboundMessage(text=f"🔔 Foo | FOO\nCA: {ADDRESS}"))
        await tracker.queue.join()

    asyncio.run(_run())
    record = tracker.get_token(ADDRESS)
    assert record.token_name == "Foo"
    assert record.ticker == "FOO"
    assert record.high_volume is True
    assert record.score == 10


def test_same_wallet_message_twice_counts_once(tmp_path) -> None:
    tracker = _tracker(tmp_path)
    message = InboundMessage(text=WALLET_TEXT, entity_urls=(GOD_MODE_URL,))

    async def _run() -> None:
        router = _router(tracker)
        router.dispatch("wallet", message)
        router.dispatch("wallet", message)
        await tracker.stop()

    asyncio.run(_run())
    assert tracker.get_token(ADDRESS).smart_money_buys == 1


def test_apply_reports_no_change(tmp_path) -> None:
    tracker = _tracker(tmp_path)
    message = InboundMessage(text=f"🔔 Foo | FOO\nCA: {ADDRESS}")
    update = EXTRACTORS["volume_tracker"](message)

    async def _run() -> tuple:
        return await tracker.apply(update), await tracker.apply(update)

    first, second = asyncio.run(_run())
    assert first is not None
    assert second is None


def test_import_tokens_recomputes_scores(tmp_path) -> None:
    tracker = _tracker(tmp_path)
    rows = [
        {"contractAddress": ADDRESS, "totalCalls": 1, "score": 999},
        {"contractAddress": OTHER_ADDRESS, "earlyTrending": "YES", "hype": "Small"},
    ]

    assert asyncio.run(tracker.import_tokens(rows)) is True
    tokens = tracker.list_tokens()
    assert [token.contract_address for token in tokens] == [OTHER_ADDRESS, ADDRESS]
    assert [token.score for token in tokens] == [40, 10]


def test_import_tokens_rejects_invalid_rows(tmp_path) -> None:
    tracker = _tracker(tmp_path)
    rows = [{"contractAddress": ADDRESS}, {"contractAddress": OTHER_ADDRESS, "hype": "Huge"}]

    assert asyncio.run(tracker.import_tokens(rows)) is False
    assert tracker.list_tokens() == []


def test_import_records_reports_store_failure() -> None:
    store = FailingStore()
    tracker = TokenTracker(store, UpdateQueue(max_attempts=1))
    records = [TokenRecord(contract_address=ADDRESS)]

    assert asyncio.run(tracker.import_records(records)) is False


def test_start_runs_cleanup_only_with_ttl() -> None:
    store = FailingStore()
    TokenTracker(store).start()
    assert store.initialized
    assert store.cleanups == []

    TokenTracker(store, dedup_config=DedupConfig(ttl_days=7)).start()
    assert store.cleanups == [7]


def test_queued_updates_for_one_address_apply_in_order(tmp_path) -> None:
    tracker = _tracker(tmp_path)

    async def _run() -> None:
        tracker.submit(TokenUpdate(contract_address=ADDRESS, total_calls=3))
        tracker.submit(TokenUpdate(contract_address=ADDRESS, smart_money_wallets=("Whale One",)))
        tracker.submit(TokenUpdate(contract_address=ADDRESS, total_calls=4))
        await tracker.queue.join()

    asyncio.run(_run())
    record = tracker.get_token(ADDRESS)
    assert record.total_calls == 4
    assert record.smart_money_buys == 1
    assert record.score == 60


def test_mark_processed_is_queued_behind_updates(tmp_path) -> None:
    tracker = _tracker(tmp_path)
    store = SQLiteTokenStore(str(tmp_path / "tokens.db"))

    async def _run() -> None:
        tracker.submit(TokenUpdate(contract_address=ADDRESS, high_volume=True))
        tracker.mark_processed("volume", 11)
        assert len(tracker.queue) == 2
        await tracker.queue.join()

    asyncio.run(_run())
    assert store.get_last_id("volume") == 11
    assert tracker.get_token(ADDRESS).high_volume is True
