"""Deterministic token scoring (core domain)."""

from __future__ import annotations

from typing import Optional

# Per-call weight is fixed; it never depends on which extractor wrote totalCalls.
CALL_WEIGHT = 10
SMART_MONEY_WEIGHT = 20
EARLY_TRENDING_BONUS = 30
DEXSCREENER_HOT_BONUS = 20
HIGH_VOLUME_BONUS = 10

SECURITY_TERMS = {"Bad": -30, "Good": 10, "Neutral": 0}
HYPE_TERMS = {"High": 30, "Medium": 20, "Small": 10, "None": 0}


def compute_score(
    *,
    security_score: Optional[str],
    smart_money_buys: int,
    early_trending: bool,
    hype: str,
    total_calls: int,
    dexscreener_hot: bool,
    high_volume: bool,
) -> int:
    """Return the integer score for a token's accumulated fields.

    The score is a pure function of the fields: two records with equal
    fields always score the same regardless of how they were built up.
    """

    score = SECURITY_TERMS.get(security_score or "", 0)
    score += smart_money_buys * SMART_MONEY_WEIGHT
    score += HYPE_TERMS.get(hype, 0)
    score += total_calls * CALL_WEIGHT
    if early_trending:
        score += EARLY_TRENDING_BONUS
    if dexscreener_hot:
        score += DEXSCREENER_HOT_BONUS
    if high_volume:
        score += HIGH_VOLUME_BONUS
    return score
