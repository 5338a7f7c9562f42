"""Token tracker service.

Owns the token store and its update queue, and exposes the lifecycle, the
write path used by the router, and the read/import operations used by the
API and the dashboard.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any, Iterable, Mapping, Optional, Sequence

from core.config import DedupConfig
from core.models import TokenRecord, TokenUpdate, parse_records
from core.ports import TokenStorePort
from core.update_queue import UpdateQueue

LOGGER = logging.getLogger(__name__)


class TokenTracker:
    """Service object wrapping the store behind the single-writer queue."""

    def __init__(
        self,
        store: TokenStorePort,
        queue: Optional[UpdateQueue] = None,
        dedup_config: Optional[DedupConfig] = None,
    ) -> None:
        self._store = store
        self._queue = queue or UpdateQueue()
        self._dedup = dedup_config or DedupConfig(ttl_days=0)

    @property
    def queue(self) -> UpdateQueue:
        return self._queue

    def start(self) -> None:
        """Create the schema and expire old seen-transfer fingerprints."""

        self._store.init_db()
        if self._dedup.ttl_days > 0:
            removed = self._store.cleanup_seen(self._dedup.ttl_days)
            LOGGER.info("Seen-transfer cleanup removed %s fingerprints", removed)

    async def stop(self) -> None:
        """Drain pending updates; the store has no connection to close."""

        pending = len(self._queue)
        if pending:
            LOGGER.info("Draining %s pending updates", pending)
        await self._queue.close()

    def submit(self, update: TokenUpdate) -> None:
        """Queue a merge and return immediately."""

        self._queue.enqueue(partial(self._store.upsert_merge, update), label=update.contract_address)

    def mark_processed(self, channel_key: str, message_id: int) -> None:
        """Queue the channel marker behind whatever was queued for the message."""

        self._queue.enqueue(
            partial(self._store.set_last_id, channel_key, message_id),
            label=f"{channel_key}#{message_id}",
        )

    async def apply(self, update: TokenUpdate) -> Optional[TokenRecord]:
        """Queue a merge and wait for it; None means nothing changed."""

        return await self._queue.submit(
            partial(self._store.upsert_merge, update), label=update.contract_address
        )

    def list_tokens(self) -> list[TokenRecord]:
        return self._store.list_all_ordered_by_score_desc()

    def get_token(self, contract_address: str) -> Optional[TokenRecord]:
        return self._store.get_by_address(contract_address)

    async def import_tokens(self, rows: Iterable[Mapping[str, Any]]) -> bool:
        """Replace or insert records wholesale; False on invalid data or store failure."""

        try:
            records = parse_records(rows)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Import rejected: %s", exc)
            return False
        return await self.import_records(records)

    async def import_records(self, records: Sequence[TokenRecord]) -> bool:
        """Full-overwrite import of already parsed records through the queue."""

        try:
            count = await self._queue.submit(partial(self._store.bulk_replace, records), label="import")
        except Exception:
            LOGGER.exception("Import failed")
            return False
        LOGGER.info("Imported %s tokens", count)
        return True
