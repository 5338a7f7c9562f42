from __future__ import annotations

from core.addresses import address_from_url, collect_urls, first_address_in_urls
from core.models import InboundMessage

ADDRESS = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"


def test_collect_urls_order() -> None:
    message = InboundMessage(
        text="see https://example.com/a and (https://example.com/b)",
        entity_urls=("https://entity.example",),
        button_urls=("https://button.example",),
    )
    assert collect_urls(message) == [
        "https://example.com/a",
        "https://example.com/b",
        "https://entity.example",
        "https://button.example",
    ]


def test_address_from_url_shapes() -> None:
    assert address_from_url(f"https://x.io/?chain=sol&tokenAddress={ADDRESS}") == ADDRESS
    assert address_from_url(f"https://dexscreener.com/solana/token/{ADDRESS}") == ADDRESS
    assert address_from_url(f"https://t.me/bot?start={ADDRESS}") == ADDRESS
    assert address_from_url(f"https://t.me/bot?start=42_{ADDRESS}") == ADDRESS


def test_address_from_url_misses() -> None:
    assert address_from_url(None) is None
    assert address_from_url("") is None
    assert address_from_url("https://example.com/token/short") is None


def test_first_address_in_urls_skips_non_matching() -> None:
    urls = ["https://example.com", f"https://dexscreener.com/solana/token/{ADDRESS}"]
    assert first_address_in_urls(urls) == ADDRESS
    assert first_address_in_urls([]) is None
