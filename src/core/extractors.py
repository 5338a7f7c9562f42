"""Per-channel signal extractors (core domain).

Each extractor recognizes one message shape and turns it into a partial
``TokenUpdate``. Extractors are pure: no I/O, no shared state. A message that
does not have the expected shape, or only part of it, yields ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.addresses import ADDRESS_PATTERN, collect_urls, first_address_in_urls
from core.models import HypeLevel, InboundMessage, SecurityScore, TokenUpdate

Extractor = Callable[[InboundMessage], Optional[TokenUpdate]]

_CA_RE = re.compile(rf"CA:\s*`?({ADDRESS_PATTERN})`?")
_BOLD_CA_RE = re.compile(rf"\*\*CA:\*\*\s*`?({ADDRESS_PATTERN})`?")
_BACKTICK_ADDRESS_RE = re.compile(rf"`({ADDRESS_PATTERN})`")
_TOKEN_PATH_RE = re.compile(rf"token/({ADDRESS_PATTERN})")

# call tracker
_CALL_LINK_RE = re.compile(rf"\[([^\]]+)\]\s*\(({ADDRESS_PATTERN})\)")
_TOTAL_CALLS_RE = re.compile(r"Total calls:\s*(?:\*\*)?\s*(\d+)", re.IGNORECASE)
_FIRST_CALL_RE = re.compile(r"\bfirst call\b", re.IGNORECASE)

# dexscreener hot pairs
DEXSCREENER_TRIGGER = "has just entered Solana Dexscreener hot pairs"
_DEX_NAME_RE = re.compile(r"🐤\s*(.*?)\s*\[(.*?)\]")

# hype tracker
_HYPE_CONTRACT_RES = [
    re.compile(rf"Contract:.*?`({ADDRESS_PATTERN})`"),
    re.compile(rf"Contract:\s*({ADDRESS_PATTERN})"),
    re.compile(rf"📋.*?Contract:.*?`({ADDRESS_PATTERN})`"),
]
_HYPE_LEVELS = [
    ("Small Hype", HypeLevel.SMALL),
    ("Medium Hype", HypeLevel.MEDIUM),
    ("High Hype", HypeLevel.HIGH),
]

# liquidity tracker
_LIQUIDITY_NAME_RE = re.compile(r"\*\*(.*?)\s*—\s*(.*?)\*\*")
_SECURITY_RE = re.compile(
    r"🧠\s*\*\*Score:\s*(Good|Bad|Neutral)(?:\s*\([0-9]+\))?\s*[🟢🔴🟡]+\*\*"
)
_DESCRIPTION_RE = re.compile(
    r"\*\*💵 Price:.*?\n\n(.*?)\n\n\*\*⚙️? Security", re.DOTALL
)

# volume tracker
VOLUME_MARKER = "🔔"
_VOLUME_NAME_RE = re.compile(r"🔔(.*?)\|\s*(\S+)")

# wallet tracker
_TRANSFER_RE = re.compile(
    r"sent ([\d,]+(?:\.\d+)?)\s+🌱\s+([A-Z0-9]+)\s+\(\$([0-9,.]+)\)\s+to\s+🤓\s+(.+)$"
)
_GOD_MODE_MARKER = "token-god-mode"
_GOD_MODE_ADDRESS_RE = re.compile(rf"tokenAddress=({ADDRESS_PATTERN})", re.IGNORECASE)


@dataclass(frozen=True)
class Transfer:
    """One parsed transfer notification line."""

    amount: str
    symbol: str
    usd_value: str
    recipient: str


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip().strip("*").strip()
    return cleaned or None


def _first_group(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(1)
    return None


def extract_call(message: InboundMessage) -> Optional[TokenUpdate]:
    """Call tracker: address plus "Total calls: N" or "first call" phrasing.

    The call count is absolute, so re-delivery of the same message is
    idempotent; the store skips the write when the value did not change.
    """

    text = message.text or ""
    token_name = None
    link_match = _CALL_LINK_RE.search(text)
    if link_match:
        token_name = _clean(link_match.group(1))
        address = link_match.group(2)
    else:
        address = _first_group([_BOLD_CA_RE, _CA_RE, _BACKTICK_ADDRESS_RE], text)
    if not address:
        return None

    calls_match = _TOTAL_CALLS_RE.search(text)
    if calls_match:
        total_calls = int(calls_match.group(1))
    elif _FIRST_CALL_RE.search(text):
        total_calls = 1
    else:
        return None

    return TokenUpdate(
        contract_address=address,
        token_name=token_name,
        total_calls=total_calls,
        source="call_tracker",
    )


def extract_dexscreener_hot(message: InboundMessage) -> Optional[TokenUpdate]:
    """Dexscreener hot pairs: "🐤 Name [TICKER]" plus "CA: <address>"."""

    text = message.text or ""
    if DEXSCREENER_TRIGGER not in text:
        return None

    name_match = _DEX_NAME_RE.search(text)
    address_match = _CA_RE.search(text)
    if not name_match or not address_match:
        return None
    token_name = _clean(name_match.group(1))
    ticker = _clean(name_match.group(2))
    if not token_name or not ticker:
        return None

    return TokenUpdate(
        contract_address=address_match.group(1),
        token_name=token_name,
        ticker=ticker,
        dexscreener_hot=True,
        source="dexscreener_hot",
    )


def extract_early_trending(message: InboundMessage) -> Optional[TokenUpdate]:
    """Early trending: the address is only resolved through embedded URLs."""

    text = message.text or ""
    if "New" not in text or "Trending" not in text:
        return None

    address = first_address_in_urls(collect_urls(message))
    if not address:
        return None
    return TokenUpdate(contract_address=address, early_trending=True, source="early_trending")


def extract_hype(message: InboundMessage) -> Optional[TokenUpdate]:
    """Hype tracker: level from "<Level> Hype", address from a Contract label."""

    text = message.text or ""
    if "Hype Detected" not in text:
        return None

    level = None
    for phrase, candidate in _HYPE_LEVELS:
        if phrase in text:
            level = candidate
            break
    address = _first_group(_HYPE_CONTRACT_RES, text)
    if level is None or not address:
        return None
    return TokenUpdate(contract_address=address, hype=level, source="hype_tracker")


def extract_security_score(text: str) -> Optional[SecurityScore]:
    match = _SECURITY_RE.search(text)
    if not match:
        return None
    return SecurityScore(match.group(1))


def extract_liquidity(message: InboundMessage) -> Optional[TokenUpdate]:
    """Liquidity tracker: name, ticker, security verdict and description.

    Only the backticked address is required; every other field is optional
    and left to the coalesce merge when absent.
    """

    text = message.text or ""
    address_match = _BACKTICK_ADDRESS_RE.search(text)
    if not address_match:
        return None

    token_name = ticker = description = None
    name_match = _LIQUIDITY_NAME_RE.search(text)
    if name_match:
        token_name = _clean(name_match.group(1))
        ticker = _clean(name_match.group(2))
    description_match = _DESCRIPTION_RE.search(text)
    if description_match:
        description = _clean(description_match.group(1))

    return TokenUpdate(
        contract_address=address_match.group(1).strip(),
        token_name=token_name,
        ticker=ticker,
        description=description,
        security_score=extract_security_score(text),
        source="liquidity_tracker",
    )


def extract_volume(message: InboundMessage) -> Optional[TokenUpdate]:
    """Volume tracker: "🔔 Name | TICKER" plus a CA label or token URL path."""

    text = message.text or ""
    if not text.startswith(VOLUME_MARKER):
        return None

    name_match = _VOLUME_NAME_RE.search(text)
    address = _first_group([_BOLD_CA_RE, _CA_RE, _TOKEN_PATH_RE], text)
    if not name_match or not address:
        return None
    token_name = _clean(name_match.group(1))
    ticker = _clean(name_match.group(2))
    if not token_name or not ticker:
        return None

    return TokenUpdate(
        contract_address=address,
        token_name=token_name,
        ticker=ticker,
        high_volume=True,
        source="volume_tracker",
    )


def parse_transfers(text: str) -> List[Transfer]:
    """Return every transfer notification line found in the text."""

    transfers: List[Transfer] = []
    for line in (text or "").split("\n"):
        match = _TRANSFER_RE.search(line)
        if not match:
            continue
        recipient = match.group(4).strip()
        if not recipient:
            continue
        transfers.append(
            Transfer(
                amount=match.group(1).replace(",", ""),
                symbol=match.group(2),
                usd_value=match.group(3).replace(",", ""),
                recipient=recipient,
            )
        )
    return transfers


def _god_mode_address(urls: List[str]) -> Optional[str]:
    for url in urls:
        if _GOD_MODE_MARKER not in url:
            continue
        match = _GOD_MODE_ADDRESS_RE.search(url)
        if match:
            return match.group(1)
    return None


def extract_wallet_transfers(message: InboundMessage) -> Optional[TokenUpdate]:
    """Wallet tracker: smart-money transfers into one token.

    Recipients are reported as-is; counting each (address, recipient) pair
    only once is the store's job.
    """

    transfers = parse_transfers(message.text or "")
    if not transfers:
        return None
    address = _god_mode_address(collect_urls(message))
    if not address:
        return None

    recipients: List[str] = []
    for transfer in transfers:
        if transfer.recipient not in recipients:
            recipients.append(transfer.recipient)
    return TokenUpdate(
        contract_address=address,
        smart_money_wallets=tuple(recipients),
        source="wallet_tracker",
    )


EXTRACTORS: Dict[str, Extractor] = {
    "call_tracker": extract_call,
    "dexscreener_hot": extract_dexscreener_hot,
    "early_trending": extract_early_trending,
    "hype_tracker": extract_hype,
    "liquidity_tracker": extract_liquidity,
    "volume_tracker": extract_volume,
    "wallet_tracker": extract_wallet_transfers,
}


def build_extractor_map(channels) -> Dict[str, Extractor]:
    """Map channel names to extractors; unknown extract methods are skipped.

    Returns only the resolvable channels so the router can log and drop the
    rest as unroutable.
    """

    mapping: Dict[str, Extractor] = {}
    for channel in channels:
        extractor = EXTRACTORS.get(channel.extract_method)
        if extractor is None:
            continue
        mapping[channel.name] = extractor
    return mapping
