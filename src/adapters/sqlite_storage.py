"""SQLite storage adapter.

Implements the core TokenStorePort and SourceStatePort using a simple
SQLite database.
"""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterable, Iterator, Optional

from core.dedup import compute_transfer_fingerprint
from core.merge import merge_update
from core.models import (
    HypeLevel,
    SecurityScore,
    TokenRecord,
    TokenUpdate,
    flag_to_text,
    text_to_flag,
)

_TOKEN_COLUMNS = (
    "contractAddress",
    "tokenName",
    "ticker",
    "description",
    "securityScore",
    "smartMoneyBuys",
    "earlyTrending",
    "hype",
    "totalCalls",
    "dexscreenerHot",
    "highVolume",
    "score",
)

_UPSERT_TOKEN_SQL = (
    "INSERT INTO tokens ("
    + ", ".join(_TOKEN_COLUMNS)
    + ") VALUES ("
    + ", ".join("?" for _ in _TOKEN_COLUMNS)
    + ") ON CONFLICT(contractAddress) DO UPDATE SET "
    + ", ".join(f"{column} = excluded.{column}" for column in _TOKEN_COLUMNS[1:])
)


def _record_params(record: TokenRecord) -> tuple:
    return (
        record.contract_address,
        record.token_name,
        record.ticker,
        record.description,
        record.security_score.value if record.security_score else None,
        record.smart_money_buys,
        flag_to_text(record.early_trending),
        record.hype.value,
        record.total_calls,
        flag_to_text(record.dexscreener_hot),
        flag_to_text(record.high_volume),
        record.score,
    )


def _record_from_row(row: sqlite3.Row) -> TokenRecord:
    return TokenRecord(
        contract_address=row["contractAddress"],
        token_name=row["tokenName"],
        ticker=row["ticker"],
        description=row["description"],
        security_score=SecurityScore(row["securityScore"]) if row["securityScore"] else None,
        smart_money_buys=int(row["smartMoneyBuys"] or 0),
        early_trending=text_to_flag(row["earlyTrending"]),
        hype=HypeLevel(row["hype"]) if row["hype"] else HypeLevel.NONE,
        total_calls=int(row["totalCalls"] or 0),
        dexscreener_hot=text_to_flag(row["dexscreenerHot"]),
        high_volume=text_to_flag(row["highVolume"]),
    )


class SQLiteTokenStore:
    """Thin SQLite wrapper that satisfies the TokenStorePort contract."""

    def __init__(self, db_path: str, busy_timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._busy_timeout = busy_timeout

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        # One short-lived connection per call: commit or roll back, then close.
        conn = sqlite3.connect(self._db_path, timeout=self._busy_timeout)
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - tokens: one row per contract address with the denormalized score
        - seen_transfers: fingerprints of (address, wallet) pairs already counted
        - sources_state: per-channel last_message_id for idempotency
        """

        directory = os.path.dirname(os.path.abspath(self._db_path))
        os.makedirs(directory, exist_ok=True)

        with self._connect() as conn:
            # WAL lets the dashboard read while the drain worker writes.
            conn.execute("PRAGMA journal_mode=WAL")
            conn.execute("PRAGMA synchronous=NORMAL")
            # tokens keeps the accumulated signals per address. The score is
            # stored denormalized for ORDER BY reads and always written in the
            # same statement as the fields it derives from. rowid order doubles
            # as insertion order for score ties.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tokens (
                    contractAddress TEXT PRIMARY KEY,
                    tokenName TEXT,
                    ticker TEXT,
                    description TEXT,
                    securityScore TEXT,
                    smartMoneyBuys INTEGER NOT NULL DEFAULT 0,
                    earlyTrending TEXT NOT NULL DEFAULT 'NO',
                    hype TEXT NOT NULL DEFAULT 'None',
                    totalCalls INTEGER NOT NULL DEFAULT 0,
                    dexscreenerHot TEXT NOT NULL DEFAULT 'NO',
                    highVolume TEXT NOT NULL DEFAULT 'NO',
                    score INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            # seen_transfers makes a smart-money buy count once per wallet.
            # Fields:
            # - fingerprint: SHA-256 of address + recipient (PRIMARY KEY)
            # - contract_address: kept for debugging and manual cleanup
            # - first_seen: timestamp of first observation for TTL cleanup
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS seen_transfers (
                    fingerprint TEXT PRIMARY KEY,
                    contract_address TEXT NOT NULL,
                    first_seen TIMESTAMP NOT NULL
                )
                """
            )
            # sources_state keeps a single counter per channel so we can
            # restart without reprocessing the messages still in the window.
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS sources_state (
                    source_key TEXT PRIMARY KEY,
                    last_message_id INTEGER NOT NULL
                )
                """
            )

    def upsert_merge(self, update: TokenUpdate) -> Optional[TokenRecord]:
        """Merge a partial update into the stored record.

        Reading, counting new wallet pairs, and writing happen in a single
        transaction. Returns the merged record, or None when the merge left
        the record unchanged and nothing was written.
        """

        now = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            # Take the write lock before reading so the merge never works
            # from a stale snapshot.
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute(
                "SELECT * FROM tokens WHERE contractAddress = ?",
                (update.contract_address,),
            ).fetchone()
            existing = _record_from_row(row) if row else None

            new_buys = 0
            for wallet in update.smart_money_wallets:
                cur = conn.execute(
                    """
                    INSERT OR IGNORE INTO seen_transfers (fingerprint, contract_address, first_seen)
                    VALUES (?, ?, ?)
                    """,
                    (compute_transfer_fingerprint(update.contract_address, wallet), update.contract_address, now),
                )
                new_buys += cur.rowcount

            merged = merge_update(existing, update, new_buys)
            if existing is not None and merged == existing:
                return None

            conn.execute(_UPSERT_TOKEN_SQL, _record_params(merged))
        return merged

    def get_by_address(self, contract_address: str) -> Optional[TokenRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM tokens WHERE contractAddress = ?",
                (contract_address,),
            ).fetchone()
        return _record_from_row(row) if row else None

    def list_all_ordered_by_score_desc(self) -> list[TokenRecord]:
        """Return every token, highest score first, ties in insertion order."""

        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tokens ORDER BY score DESC, rowid ASC").fetchall()
        return [_record_from_row(row) for row in rows]

    def bulk_replace(self, records: Iterable[TokenRecord]) -> int:
        """Overwrite or insert each record wholesale in one transaction."""

        params = [_record_params(record) for record in records]
        with self._connect() as conn:
            conn.executemany(_UPSERT_TOKEN_SQL, params)
        return len(params)

    def cleanup_seen(self, ttl_days: int) -> int:
        """Delete old transfer fingerprints and return the number removed."""

        cutoff = datetime.now(timezone.utc) - timedelta(days=ttl_days)
        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM seen_transfers WHERE first_seen < ?",
                (cutoff.isoformat(),),
            )
            return cur.rowcount

    def get_last_id(self, source_key: str) -> Optional[int]:
        """Return the last processed message_id for a channel, if any."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT last_message_id FROM sources_state WHERE source_key = ?",
                (source_key,),
            ).fetchone()
        return int(row["last_message_id"]) if row else None

    def set_last_id(self, source_key: str, last_message_id: int) -> None:
        """Upsert the last processed message_id for a channel."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO sources_state (source_key, last_message_id)
                VALUES (?, ?)
                ON CONFLICT(source_key) DO UPDATE SET last_message_id = excluded.last_message_id
                """,
                (source_key, last_message_id),
            )
