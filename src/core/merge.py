"""Field-level merge policy for token records (core domain)."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from core.models import TokenRecord, TokenUpdate


def merge_update(
    existing: Optional[TokenRecord],
    update: TokenUpdate,
    new_smart_money_buys: int = 0,
) -> TokenRecord:
    """Apply a partial update on top of a stored record.

    Policies per field:
    - name, ticker, description, security score: coalesce (None never clears)
    - early trending, dexscreener hot, high volume: one-way flip to YES
    - hype: last write wins, downgrades included
    - total calls: absolute value from the latest message
    - smart money buys: incremented by the number of new wallet pairs,
      which the store counts against its seen-transfer set
    """

    if new_smart_money_buys < 0:
        raise ValueError("new_smart_money_buys must be >= 0")

    base = existing or TokenRecord(contract_address=update.contract_address)
    if base.contract_address != update.contract_address:
        raise ValueError(
            f"Address mismatch: {base.contract_address} != {update.contract_address}"
        )

    return replace(
        base,
        token_name=_coalesce(update.token_name, base.token_name),
        ticker=_coalesce(update.ticker, base.ticker),
        description=_coalesce(update.description, base.description),
        security_score=_coalesce(update.security_score, base.security_score),
        smart_money_buys=base.smart_money_buys + new_smart_money_buys,
        early_trending=base.early_trending or update.early_trending,
        hype=update.hype if update.hype is not None else base.hype,
        total_calls=update.total_calls if update.total_calls is not None else base.total_calls,
        dexscreener_hot=base.dexscreener_hot or update.dexscreener_hot,
        high_volume=base.high_volume or update.high_volume,
    )


def _coalesce(incoming, current):
    return incoming if incoming is not None else current
