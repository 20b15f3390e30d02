"""
Unit tests for core.logger module.

Tests:
- format_kv_pairs() quoting, escaping and truncation
- Logger key=value mode attaches structured fields to the record
- Logger JSON mode emits one parseable object per message
- StructuredFormatter rendering
"""

import json
import logging

from geofeed.core.logger import Logger, StructuredFormatter, format_kv_pairs


class TestFormatKvPairs:
    """Key-value pairs formatting and escaping."""

    def test_simple(self):
        assert format_kv_pairs({"relay": "nos.lol", "regions": 42}) == " relay=nos.lol regions=42"

    def test_quotes_values_with_spaces(self):
        assert format_kv_pairs({"reason": "socket closed"}) == ' reason="socket closed"'

    def test_escapes_double_quotes(self):
        assert format_kv_pairs({"msg": 'say "hi"'}) == ' msg="say \\"hi\\""'

    def test_empty_value_quoted(self):
        assert format_kv_pairs({"key": ""}) == ' key=""'

    def test_empty_dict(self):
        assert format_kv_pairs({}) == ""

    def test_truncation(self):
        result = format_kv_pairs({"key": "x" * 1500}, max_value_length=1000)
        assert "truncated 500 chars" in result

    def test_custom_prefix(self):
        assert format_kv_pairs({"key": "val"}, prefix="") == "key=val"


class TestLogger:
    """Logger output in both modes."""

    def test_name(self):
        assert Logger("multiplexer").name == "multiplexer"

    def test_structured_fields_attached(self, caplog):
        logger = Logger("test_kv")
        with caplog.at_level(logging.INFO, logger="test_kv"):
            logger.info("relay_connected", relay="wss://nos.lol", regions=3)

        record = caplog.records[-1]
        assert record.getMessage() == "relay_connected"
        assert record.structured_kv == {"relay": "wss://nos.lol", "regions": 3}

    def test_long_values_truncated(self, caplog):
        logger = Logger("test_trunc", max_value_length=10)
        with caplog.at_level(logging.INFO, logger="test_trunc"):
            logger.info("msg", blob="y" * 50)
        assert "truncated" in caplog.records[-1].structured_kv["blob"]

    def test_json_output(self, caplog):
        logger = Logger("test_json", json_output=True)
        with caplog.at_level(logging.WARNING, logger="test_json"):
            logger.warning("directory_fallback", relays=3)

        parsed = json.loads(caplog.records[-1].getMessage())
        assert parsed["message"] == "directory_fallback"
        assert parsed["level"] == "warning"
        assert parsed["component"] == "test_json"
        assert parsed["relays"] == 3

    def test_disabled_level_skipped(self, caplog):
        logger = Logger("test_level")
        with caplog.at_level(logging.WARNING, logger="test_level"):
            logger.debug("noise", key="value")
        assert not [r for r in caplog.records if r.name == "test_level"]

    def test_exception_includes_traceback(self, caplog):
        logger = Logger("test_exc")
        with caplog.at_level(logging.ERROR, logger="test_exc"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("callback_failed", region="u4")
        assert caplog.records[-1].exc_info is not None


class TestStructuredFormatter:
    """StructuredFormatter rendering."""

    def test_renders_level_name_message_and_fields(self):
        record = logging.LogRecord("store", logging.INFO, __file__, 1, "events_pruned", None, None)
        record.structured_kv = {"count": 12}
        assert StructuredFormatter().format(record) == "info store events_pruned count=12"

    def test_plain_record(self):
        record = logging.LogRecord(
            "geofeed.utils.http", logging.DEBUG, __file__, 1, "fetch %s", ("ok",), None
        )
        assert StructuredFormatter().format(record) == "debug geofeed.utils.http fetch ok"
