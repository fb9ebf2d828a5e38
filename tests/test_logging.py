"""Tests for structured logging."""

import logging
import sys

import pytest

from widget_engine.core.config import get_settings
from widget_engine.core.logging import StructuredFormatter, get_logger, log_with_context


def _record(msg="hello", **extra):
    record = logging.LogRecord("widget_engine.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_plain_values_unquoted(self):
        line = StructuredFormatter().format(_record("done", extra_data={"count": 3}))

        assert "level=INFO" in line
        assert "message=done" in line
        assert line.endswith("count=3")

    def test_values_with_spaces_are_quoted(self):
        line = StructuredFormatter().format(_record("Restructured content into 6 widgets"))

        assert 'message="Restructured content into 6 widgets"' in line

    def test_quotes_and_equals_are_escaped(self):
        line = StructuredFormatter().format(_record("ok", extra_data={"error": 'bad "x=1"', "empty": ""}))

        assert 'error="bad \\"x=1\\""' in line
        assert 'empty=""' in line

    def test_context_fields_come_before_extra_data(self):
        record = _record("ok", tab_type="trialOverview", project_id="proj-1", extra_data={"widgets": 2})
        line = StructuredFormatter().format(record)

        assert line.index("project_id=proj-1") < line.index("tab_type=trialOverview") < line.index("widgets=2")

    def test_exception_is_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record("failed")
            record.exc_info = sys.exc_info()

        line = StructuredFormatter().format(record)

        assert "exc_info=" in line
        assert "RuntimeError: boom" in line


class TestLogWithContext:
    def test_context_fields_promoted(self, caplog):
        logger = logging.getLogger("widget_engine.test.context")

        with caplog.at_level(logging.INFO, logger="widget_engine.test.context"):
            log_with_context(
                logger,
                logging.INFO,
                "Restructured",
                project_id="proj-1",
                tab_type="trialOverview",
                persona="trialCoordinator",
                widgets=4,
            )

        record = caplog.records[-1]
        assert record.project_id == "proj-1"
        assert record.tab_type == "trialOverview"
        assert record.persona == "trialCoordinator"
        assert record.extra_data == {"widgets": 4}


class TestGetLogger:
    @pytest.fixture(autouse=True)
    def fresh_settings(self):
        get_settings.cache_clear()
        yield
        get_settings.cache_clear()

    def test_log_level_setting_wins(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        logger = get_logger("widget_engine.test.level_warning")

        assert logger.level == logging.WARNING

    def test_unknown_log_level_uses_env_default(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        monkeypatch.setenv("WIDGET_ENGINE_ENV", "dev")

        logger = get_logger("widget_engine.test.level_unknown")

        assert logger.level == logging.DEBUG

    def test_single_handler(self):
        first = get_logger("widget_engine.test.handlers")
        second = get_logger("widget_engine.test.handlers")

        assert first is second
        assert len(first.handlers) == 1
        assert isinstance(first.handlers[0].formatter, StructuredFormatter)
