"""
Unit tests for nips.nip01 module.

Tests:
- parse_relay_message() for EVENT, NOTICE, EOSE and CLOSED frames
- Malformed JSON, wrong shapes and invalid events map to UnrecognizedMessage
- Bytes input decoding
- build_req() / build_close() framing
"""

import json

import pytest

from geofeed.nips.nip01 import (
    ClosedMessage,
    EoseMessage,
    EventMessage,
    NoticeMessage,
    UnrecognizedMessage,
    build_close,
    build_req,
    parse_relay_message,
)
from tests.conftest import make_event


class TestParseRelayMessage:
    """parse_relay_message() variants."""

    def test_event(self):
        event = make_event("e1")
        message = parse_relay_message(json.dumps(["EVENT", "geo_u4", event.to_dict()]))
        assert isinstance(message, EventMessage)
        assert message.subscription_id == "geo_u4"
        assert message.event == event

    def test_notice(self):
        assert parse_relay_message('["NOTICE","rate limited"]') == NoticeMessage("rate limited")

    def test_eose(self):
        assert parse_relay_message('["EOSE","geo_9"]') == EoseMessage("geo_9")

    def test_closed_with_reason(self):
        assert parse_relay_message('["CLOSED","geo_9","error: bye"]') == ClosedMessage(
            "geo_9", "error: bye"
        )

    def test_closed_without_reason(self):
        assert parse_relay_message('["CLOSED","geo_9"]') == ClosedMessage("geo_9", "")

    def test_bytes_input(self):
        assert parse_relay_message(b'["EOSE","geo_u"]') == EoseMessage("geo_u")


class TestMalformed:
    """Frames that decode to UnrecognizedMessage."""

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            "{}",
            "[]",
            '"EVENT"',
            '["OK","id",true,""]',
            '["EVENT","geo_u"]',
            '["EVENT",5,{"id":"x","created_at":1,"kind":1}]',
            '["EVENT","geo_u",{"created_at":1,"kind":1}]',
            '["EVENT","geo_u",{"id":"x","created_at":"yesterday","kind":1}]',
            '["EVENT","geo_u",[]]',
            '["NOTICE"]',
            '["NOTICE",42]',
            '["EOSE"]',
        ],
    )
    def test_unrecognized(self, raw):
        message = parse_relay_message(raw)
        assert isinstance(message, UnrecognizedMessage)
        assert message.raw == raw
        assert message.reason

    def test_never_raises_on_garbage_bytes(self):
        assert isinstance(parse_relay_message(b"\xff\xfe\x00"), UnrecognizedMessage)

    def test_deeply_nested_frame(self):
        raw = "[" * 100_000
        message = parse_relay_message(raw)
        assert isinstance(message, UnrecognizedMessage)
        assert message.reason.startswith("invalid json")


class TestFraming:
    """Outbound frames."""

    def test_build_req(self):
        frame = build_req("geo_u4", {"kinds": [1], "#g": ["u4"], "since": 10, "limit": 100})
        assert json.loads(frame) == [
            "REQ",
            "geo_u4",
            {"kinds": [1], "#g": ["u4"], "since": 10, "limit": 100},
        ]

    def test_build_close(self):
        assert json.loads(build_close("geo_u4")) == ["CLOSE", "geo_u4"]
