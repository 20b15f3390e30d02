"""
Unit tests for models.event and models.stored_event modules.

Tests:
- Event construction, tag freezing and validation
- Event.from_dict() required fields and type errors
- to_dict() JSON forms
- tag_values() lookup
"""

import pytest

from geofeed.models import Event, StoredEvent


def _payload(**overrides):
    data = {
        "id": "e" * 64,
        "pubkey": "p" * 64,
        "created_at": 1_700_000_000,
        "kind": 20000,
        "tags": [["g", "u4pru"], ["n", "alice"]],
        "content": "hi",
        "sig": "s" * 128,
    }
    data.update(overrides)
    return data


class TestEvent:
    """Event construction."""

    def test_from_dict(self):
        event = Event.from_dict(_payload())
        assert event.id == "e" * 64
        assert event.kind == 20000
        assert event.tags == (("g", "u4pru"), ("n", "alice"))

    def test_optional_fields_default(self):
        event = Event.from_dict({"id": "x", "created_at": 1, "kind": 1})
        assert event.pubkey == ""
        assert event.tags == ()
        assert event.content == ""

    @pytest.mark.parametrize("missing", ["id", "created_at", "kind"])
    def test_missing_required_field(self, missing):
        data = _payload()
        del data[missing]
        with pytest.raises(ValueError, match=missing):
            Event.from_dict(data)

    def test_non_mapping(self):
        with pytest.raises(TypeError):
            Event.from_dict(["id"])  # type: ignore[arg-type]

    def test_empty_id_rejected(self):
        with pytest.raises(ValueError):
            Event.from_dict(_payload(id=""))

    def test_kind_out_of_range(self):
        with pytest.raises(ValueError):
            Event.from_dict(_payload(kind=70000))

    def test_negative_created_at(self):
        with pytest.raises(ValueError):
            Event.from_dict(_payload(created_at=-1))

    def test_non_string_tag_value(self):
        with pytest.raises(TypeError):
            Event.from_dict(_payload(tags=[["g", 5]]))

    def test_to_dict_round_trips_tags_as_lists(self):
        data = Event.from_dict(_payload()).to_dict()
        assert data["tags"] == [["g", "u4pru"], ["n", "alice"]]
        assert data["kind"] == 20000

    def test_tag_values(self):
        event = Event.from_dict(_payload(tags=[["g", "u4"], ["g", "u4p"], ["g"], ["t", "x"]]))
        assert event.tag_values("g") == ("u4", "u4p")
        assert event.tag_values("missing") == ()


class TestStoredEvent:
    """StoredEvent JSON form."""

    def test_to_dict(self):
        event = Event.from_dict(_payload())
        entry = StoredEvent(event=event, region="u4", relay="wss://nos.lol", received_at=12.3456)
        data = entry.to_dict()
        assert data["region"] == "u4"
        assert data["relay"] == "wss://nos.lol"
        assert data["received_at"] == 12345
        assert data["event"]["id"] == event.id
