from __future__ import annotations

import pytest

from core.models import HypeLevel, InboundMessage, SecurityScore, TokenRecord, parse_records

ADDRESS = "9BB6NFEcjBCtnNLFko2FqVQBq8HHM13kCyYcdQbgpump"


def test_from_payload_flattens_entities_and_buttons() -> None:
    payload = {
        "id": 42,
        "text": "hello",
        "entities": [{"url": "https://a.example"}, {"type": "bold"}],
        "replyMarkup": {
            "rows": [
                {"buttons": [{"url": "https://b.example"}, {"text": "no url"}]},
                {"buttons": [{"url": "https://c.example"}]},
            ]
        },
    }
    message = InboundMessage.from_payload(payload)
    assert message.message_id == 42
    assert message.text == "hello"
    assert message.entity_urls == ("https://a.example",)
    assert message.button_urls == ("https://b.example", "https://c.example")


def test_from_payload_tolerates_missing_parts() -> None:
    message = InboundMessage.from_payload({})
    assert message.text == ""
    assert message.entity_urls == ()
    assert message.button_urls == ()
    assert message.message_id is None


def test_to_dict_uses_public_keys_and_flags() -> None:
    record = TokenRecord(
        contract_address=ADDRESS,
        ticker="FOO",
        security_score=SecurityScore.NEUTRAL,
        dexscreener_hot=True,
    )
    data = record.to_dict()
    assert data["contractAddress"] == ADDRESS
    assert data["tokenName"] is None
    assert data["securityScore"] == "Neutral"
    assert data["dexscreenerHot"] == "YES"
    assert data["earlyTrending"] == "NO"
    assert data["hype"] == "None"
    assert data["score"] == 20


def test_from_dict_ignores_score_and_parses_flags() -> None:
    record = TokenRecord.from_dict(
        {
            "contractAddress": ADDRESS,
            "tokenName": "Foo",
            "hype": "Medium",
            "totalCalls": "4",
            "earlyTrending": "yes",
            "highVolume": True,
            "score": 9999,
        }
    )
    assert record.token_name == "Foo"
    assert record.hype == HypeLevel.MEDIUM
    assert record.total_calls == 4
    assert record.early_trending is True
    assert record.high_volume is True
    assert record.dexscreener_hot is False
    assert record.score == 20 + 40 + 30 + 10


@pytest.mark.parametrize(
    "row",
    [
        {},
        {"contractAddress": "  "},
        {"contractAddress": ADDRESS, "hype": "Huge"},
        {"contractAddress": ADDRESS, "securityScore": "Great"},
        {"contractAddress": ADDRESS, "totalCalls": -1},
        {"contractAddress": ADDRESS, "totalCalls": 5.7},
        {"contractAddress": ADDRESS, "smartMoneyBuys": 0.5},
        {"contractAddress": ADDRESS, "smartMoneyBuys": "many"},
        {"contractAddress": ADDRESS, "highVolume": "maybe"},
        "not a mapping",
    ],
)
def test_from_dict_rejects_invalid_rows(row) -> None:
    with pytest.raises(ValueError):
        TokenRecord.from_dict(row)


def test_parse_records_stops_at_first_invalid_row() -> None:
    with pytest.raises(ValueError):
        parse_records([{"contractAddress": ADDRESS}, {"hype": "High"}])
    assert len(parse_records([{"contractAddress": ADDRESS}])) == 1


def test_from_dict_accepts_whole_floats() -> None:
    record = TokenRecord.from_dict({"contractAddress": ADDRESS, "totalCalls": 4.0})
    assert record.total_calls == 4
