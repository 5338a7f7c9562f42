"""Contract address patterns and URL helpers (core domain)."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from core.models import InboundMessage

# Shape-only match: base58-like run of 32+ chars ending in "pump" or 11 more chars.
ADDRESS_PATTERN = r"[A-Za-z0-9]{32,}(?:pump|[A-Za-z0-9]{11})"

_TEXT_URL_RE = re.compile(r"https?://[^\s)\]]+")

URL_ADDRESS_PATTERNS = [
    re.compile(rf"tokenAddress=({ADDRESS_PATTERN})", re.IGNORECASE),
    re.compile(rf"token/({ADDRESS_PATTERN})", re.IGNORECASE),
    re.compile(rf"start=\d*_?({ADDRESS_PATTERN})", re.IGNORECASE),
]


def collect_urls(message: InboundMessage) -> list[str]:
    """Return candidate URLs: inline text links, then entities, then buttons."""

    urls = _TEXT_URL_RE.findall(message.text or "")
    urls.extend(message.entity_urls)
    urls.extend(message.button_urls)
    return urls


def address_from_url(url: Optional[str]) -> Optional[str]:
    """Extract a contract address from one of the known URL shapes."""

    if not url:
        return None
    for pattern in URL_ADDRESS_PATTERNS:
        match = pattern.search(url)
        if match:
            return match.group(1)
    return None


def first_address_in_urls(urls: Iterable[str]) -> Optional[str]:
    for url in urls:
        address = address_from_url(url)
        if address:
            return address
    return None
