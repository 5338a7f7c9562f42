"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChannelConfig:
    """One monitored channel and the extractor that understands it."""

    name: str
    source_key: str
    extract_method: str


@dataclass(frozen=True)
class PollingConfig:
    """Polling cadence shared by all channel tasks."""

    interval_seconds: float
    stagger_seconds: float
    messages_per_poll: int


@dataclass(frozen=True)
class QueueConfig:
    """Retry settings for the update queue drain worker."""

    max_attempts: int
    backoff_seconds: float


@dataclass(frozen=True)
class DedupConfig:
    """Seen-transfer fingerprint retention. ttl_days <= 0 keeps them forever."""

    ttl_days: int
