"""Unit tests for bedtime._logging — JSON formatter and config.

Test Techniques Used:
    - Specification-based Testing: JsonFormatter output schema
    - State Inspection: Root logger handler/level after configure
    - Fixture Isolation: Save/restore root logger state
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from bedtime._logging import JsonFormatter, configure_logging
from bedtime._settings import LoggingSettings


@pytest.fixture
def _restore_root_logger() -> Iterator[None]:
    """Save and restore root logger handlers and level."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    sqlalchemy_level = logging.getLogger("sqlalchemy").level
    yield
    for h in root.handlers:
        if h not in original_handlers:
            h.close()
    root.handlers = original_handlers
    root.setLevel(original_level)
    logging.getLogger("sqlalchemy").setLevel(sqlalchemy_level)


def _make_record(
    message: str = "hello",
    level: int = logging.INFO,
    **extra: object,
) -> logging.LogRecord:
    """Create a minimal LogRecord, optionally with extra attributes."""
    record = logging.LogRecord(
        name="bedtime.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """Tests for JsonFormatter output schema.

    Technique: Specification-based Testing.
    """

    def test_has_required_fields(self) -> None:
        """Output is a JSON object with the core fields."""
        result = json.loads(JsonFormatter(service="bedtime").format(_make_record()))
        assert {"timestamp", "level", "logger", "message", "service"} <= result.keys()
        assert result["service"] == "bedtime"
        assert result["message"] == "hello"

    def test_timestamp_is_utc_iso8601(self) -> None:
        result = json.loads(JsonFormatter().format(_make_record()))
        assert datetime.fromisoformat(result["timestamp"]).tzinfo == UTC

    def test_version_omitted_when_empty(self) -> None:
        result = json.loads(JsonFormatter(version="").format(_make_record()))
        assert "version" not in result

    def test_version_included_when_set(self) -> None:
        result = json.loads(JsonFormatter(version="0.1.0").format(_make_record()))
        assert result["version"] == "0.1.0"

    def test_device_context_included(self) -> None:
        """``device`` and ``address`` extras are copied into the object."""
        record = _make_record(device="Bedroom Lamp", address="10.0.0.7:38899")
        result = json.loads(JsonFormatter().format(record))
        assert result["device"] == "Bedroom Lamp"
        assert result["address"] == "10.0.0.7:38899"

    def test_device_context_absent_by_default(self) -> None:
        result = json.loads(JsonFormatter().format(_make_record()))
        assert "device" not in result
        assert "address" not in result

    def test_exception_included_when_present(self) -> None:
        record = _make_record()
        record.exc_info = (ValueError, ValueError("boom"), None)
        result = json.loads(JsonFormatter().format(record))
        assert "ValueError" in result["exception"]

    def test_output_is_single_line(self) -> None:
        record = _make_record(message="line one\nline two")
        assert "\n" not in JsonFormatter().format(record)


class TestConfigureLogging:
    """Tests for configure_logging() root logger setup.

    Technique: State Inspection.
    """

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_json_mode_sets_json_formatter(self) -> None:
        configure_logging(LoggingSettings(format="json"), service="bedtime")
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JsonFormatter)

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_text_mode_sets_standard_formatter(self) -> None:
        configure_logging(LoggingSettings(format="text"), service="bedtime")
        handler = logging.getLogger().handlers[0]
        assert not isinstance(handler.formatter, JsonFormatter)

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_sets_root_logger_level(self) -> None:
        configure_logging(LoggingSettings(level="WARNING"), service="bedtime")
        assert logging.getLogger().level == logging.WARNING

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_clears_existing_handlers(self) -> None:
        root = logging.getLogger()
        dummy = logging.StreamHandler()
        root.addHandler(dummy)

        configure_logging(LoggingSettings(), service="bedtime")

        assert dummy not in root.handlers

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_file_handler_uses_configured_size(self, tmp_path: Path) -> None:
        """RotatingFileHandler honours max_file_size_mb and backup_count."""
        settings = LoggingSettings(
            file=str(tmp_path / "bedtime.log"),
            max_file_size_mb=2,
            backup_count=5,
        )
        configure_logging(settings, service="bedtime")

        rotating = [
            h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)
        ]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == 2 * 1024 * 1024
        assert rotating[0].backupCount == 5

    @pytest.mark.usefixtures("_restore_root_logger")
    def test_sqlalchemy_quieted_outside_debug(self) -> None:
        configure_logging(LoggingSettings(level="INFO"), service="bedtime")
        assert logging.getLogger("sqlalchemy").level == logging.WARNING
