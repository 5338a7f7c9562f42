"""Seen-transfer fingerprints (core domain).

A smart-money buy counts once per (token, recipient wallet) pair. The pair is
reduced to a stable fingerprint so the store can keep the set compactly.
"""

from __future__ import annotations

import hashlib
import re


def _collapse_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def normalize_wallet(wallet: str) -> str:
    """Normalize a recipient label for deterministic fingerprinting."""

    return _collapse_whitespace(wallet)


def compute_transfer_fingerprint(contract_address: str, wallet: str) -> str:
    """Return the fingerprint of one (address, recipient) pair."""

    payload = f"{contract_address}\n{normalize_wallet(wallet)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
