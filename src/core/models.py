"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from core.scoring import compute_score

YES = "YES"
NO = "NO"


class SecurityScore(str, Enum):
    GOOD = "Good"
    BAD = "Bad"
    NEUTRAL = "Neutral"


class HypeLevel(str, Enum):
    NONE = "None"
    SMALL = "Small"
    MEDIUM = "Medium"
    HIGH = "High"


def flag_to_text(value: bool) -> str:
    return YES if value else NO


def text_to_flag(value: Any) -> bool:
    """Accept YES/NO strings (any case) or plain booleans."""

    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str):
        normalized = value.strip().upper()
        if normalized in {YES, "TRUE", "1"}:
            return True
        if normalized in {NO, "FALSE", "0", ""}:
            return False
    raise ValueError(f"Invalid flag value: {value!r}")


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _non_negative_int(value: Any, field_name: str) -> int:
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field_name} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer") from None
    if number < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return number


@dataclass(frozen=True)
class InboundMessage:
    """Minimal message shape consumed by the extractors."""

    text: str
    entity_urls: tuple[str, ...] = ()
    button_urls: tuple[str, ...] = ()
    message_id: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "InboundMessage":
        """Build a message from the raw {text, entities, replyMarkup} shape."""

        entity_urls = [
            entity["url"]
            for entity in payload.get("entities") or []
            if entity and entity.get("url")
        ]
        button_urls: list[str] = []
        markup = payload.get("replyMarkup") or {}
        for row in markup.get("rows") or []:
            for button in row.get("buttons") or []:
                if button and button.get("url"):
                    button_urls.append(button["url"])
        message_id = payload.get("id")
        return cls(
            text=payload.get("text") or "",
            entity_urls=tuple(entity_urls),
            button_urls=tuple(button_urls),
            message_id=int(message_id) if message_id is not None else None,
        )


@dataclass(frozen=True)
class TokenUpdate:
    """Partial update produced by one extractor for one contract address.

    ``None`` and ``False`` mean "leave the stored value alone"; how a present
    value is combined with the stored one is decided by ``core.merge``.
    """

    contract_address: str
    token_name: Optional[str] = None
    ticker: Optional[str] = None
    description: Optional[str] = None
    security_score: Optional[SecurityScore] = None
    smart_money_wallets: tuple[str, ...] = ()
    early_trending: bool = False
    hype: Optional[HypeLevel] = None
    total_calls: Optional[int] = None
    dexscreener_hot: bool = False
    high_volume: bool = False
    source: str = ""


@dataclass(frozen=True)
class TokenRecord:
    """Accumulated signals for one contract address."""

    contract_address: str
    token_name: Optional[str] = None
    ticker: Optional[str] = None
    description: Optional[str] = None
    security_score: Optional[SecurityScore] = None
    smart_money_buys: int = 0
    early_trending: bool = False
    hype: HypeLevel = HypeLevel.NONE
    total_calls: int = 0
    dexscreener_hot: bool = False
    high_volume: bool = False

    @property
    def score(self) -> int:
        return compute_score(
            security_score=self.security_score.value if self.security_score else None,
            smart_money_buys=self.smart_money_buys,
            early_trending=self.early_trending,
            hype=self.hype.value,
            total_calls=self.total_calls,
            dexscreener_hot=self.dexscreener_hot,
            high_volume=self.high_volume,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the public camelCase keys and YES/NO flags."""

        return {
            "contractAddress": self.contract_address,
            "tokenName": self.token_name,
            "ticker": self.ticker,
            "description": self.description,
            "securityScore": self.security_score.value if self.security_score else None,
            "smartMoneyBuys": self.smart_money_buys,
            "earlyTrending": flag_to_text(self.early_trending),
            "hype": self.hype.value,
            "totalCalls": self.total_calls,
            "dexscreenerHot": flag_to_text(self.dexscreener_hot),
            "highVolume": flag_to_text(self.high_volume),
            "score": self.score,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TokenRecord":
        """Parse a record-like mapping (import payloads, database rows).

        Any ``score`` key is ignored; the score is always derived.
        Raises ValueError on a missing address or an invalid field value.
        """

        if not isinstance(data, Mapping):
            raise ValueError("token record must be an object")
        address = _optional_text(data.get("contractAddress"))
        if not address:
            raise ValueError("contractAddress is required")

        raw_security = _optional_text(data.get("securityScore"))
        raw_hype = _optional_text(data.get("hype"))
        try:
            security = SecurityScore(raw_security) if raw_security else None
            hype = HypeLevel(raw_hype) if raw_hype else HypeLevel.NONE
        except ValueError as exc:
            raise ValueError(f"{address}: {exc}") from None

        return cls(
            contract_address=address,
            token_name=_optional_text(data.get("tokenName")),
            ticker=_optional_text(data.get("ticker")),
            description=_optional_text(data.get("description")),
            security_score=security,
            smart_money_buys=_non_negative_int(data.get("smartMoneyBuys"), "smartMoneyBuys"),
            early_trending=text_to_flag(data.get("earlyTrending")),
            hype=hype,
            total_calls=_non_negative_int(data.get("totalCalls"), "totalCalls"),
            dexscreener_hot=text_to_flag(data.get("dexscreenerHot")),
            high_volume=text_to_flag(data.get("highVolume")),
        )


def parse_records(rows: Iterable[Mapping[str, Any]]) -> list[TokenRecord]:
    """Parse every row or raise ValueError for the first invalid one."""

    return [TokenRecord.from_dict(row) for row in rows]
