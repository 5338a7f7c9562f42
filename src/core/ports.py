"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for storage so that the core can be
reused with different backends.
"""

from __future__ import annotations

from typing import Iterable, Optional, Protocol

from core.models import TokenRecord, TokenUpdate


class SourceStatePort(Protocol):
    """Per-channel message idempotency markers."""

    def get_last_id(self, source_key: str) -> Optional[int]:
        ...

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        ...


class TokenStorePort(SourceStatePort, Protocol):
    """Keyed token store with merge-on-write semantics.

    The store also keeps the per-channel markers so they can be written
    through the same queue as the updates they follow.

    Writers are expected to go through the update queue, which guarantees a
    single writer at a time.
    """

    def init_db(self) -> None:
        ...

    def upsert_merge(self, update: TokenUpdate) -> Optional[TokenRecord]:
        """Merge an update; return the new record, or None when unchanged."""
        ...

    def get_by_address(self, contract_address: str) -> Optional[TokenRecord]:
        ...

    def list_all_ordered_by_score_desc(self) -> list[TokenRecord]:
        ...

    def bulk_replace(self, records: Iterable[TokenRecord]) -> int:
        ...

    def cleanup_seen(self, ttl_days: int) -> int:
        ...
