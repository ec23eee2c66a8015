"""
Tests for OpenTelemetry-compliant log formatters.

Tests for JsonFormatter, HumanFormatter, and scoped_logger.
"""

import json
import logging


def _record(level=logging.INFO, msg="Test", name="pinguard.guard", **extra):
    record = logging.LogRecord(
        name=name,
        level=level,
        pathname="pinguard/guard.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def test_otel_structure(self):
        from pinguard._logging import JsonFormatter

        parsed = json.loads(JsonFormatter().format(_record()))

        assert set(parsed) == {"timestamp", "severityText", "body", "attributes", "resource"}
        assert parsed["resource"]["service.name"] == "pinguard"
        assert "service.version" in parsed["resource"]

    def test_timestamp_format(self):
        from pinguard._logging import JsonFormatter

        ts = json.loads(JsonFormatter().format(_record()))["timestamp"]

        assert ts.endswith("Z")
        assert len(ts.split(".")[-1]) == 10  # 9 digits + Z

    def test_severity_text_mapping(self):
        from pinguard._logging import JsonFormatter

        formatter = JsonFormatter()
        for level, expected in [
            (logging.DEBUG, "DEBUG"),
            (logging.INFO, "INFO"),
            (logging.WARNING, "WARN"),
            (logging.ERROR, "ERROR"),
            (logging.CRITICAL, "FATAL"),
        ]:
            parsed = json.loads(formatter.format(_record(level)))
            assert parsed["severityText"] == expected, f"Level {level}"

    def test_addresses_rendered_as_hex(self):
        from pinguard._logging import JsonFormatter

        record = _record(msg="Pin released", scope="pin", guard=3, address=0x7F00, slot=None)
        parsed = json.loads(JsonFormatter().format(record))

        attributes = parsed["attributes"]
        assert attributes["scope"] == "pin"
        assert attributes["guard"] == 3
        assert attributes["address"] == "0x7f00"
        assert attributes["slot"] is None

    def test_code_location_for_debug(self):
        from pinguard._logging import JsonFormatter

        parsed = json.loads(JsonFormatter().format(_record(logging.DEBUG)))

        assert parsed["attributes"]["code.filepath"] == "guard.py"
        assert parsed["attributes"]["code.lineno"] == 42

    def test_no_code_location_for_info(self):
        from pinguard._logging import JsonFormatter

        parsed = json.loads(JsonFormatter().format(_record(logging.INFO)))

        assert "code.filepath" not in parsed["attributes"]

    def test_scope_falls_back_to_logger_leaf(self):
        from pinguard._logging import JsonFormatter

        parsed = json.loads(JsonFormatter().format(_record(name="pinguard.guard")))

        assert parsed["attributes"]["scope"] == "guard"

    def test_scope_for_unnamed_logger(self):
        from pinguard._logging import _infer_scope

        assert _infer_scope("") == "pinguard"


class TestHumanFormatter:
    """Tests for HumanFormatter."""

    def test_plain_output(self):
        from pinguard._logging import HumanFormatter

        output = HumanFormatter(use_colors=False).format(
            _record(msg="Pin established", scope="pin", guard=5, address=0x1000)
        )

        assert "INFO" in output
        assert "[pin]" in output
        assert "Pin established" in output
        assert "(guard=5 address=0x1000)" in output
        assert "\x1b[" not in output

    def test_colors_for_errors(self):
        from pinguard._logging import HumanFormatter

        output = HumanFormatter(use_colors=True).format(_record(logging.ERROR))

        assert "\x1b[31m" in output
        assert "[guard.py:42]" in output


class TestScopedLogger:
    """Tests for scoped_logger()."""

    def test_scope_attached(self, caplog):
        from pinguard._logging import scoped_logger

        caplog.set_level(logging.INFO, logger="pinguard")
        scoped_logger("gate").info("hello", extra={"guard": 1})

        record = caplog.records[-1]
        assert record.scope == "gate"
        assert record.guard == 1
