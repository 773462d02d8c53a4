"""
Tests for setup_logging() of the observability module.

setup_logging() configures structlog for the whole engine; every layer
logger depends on it.
"""

import json
import logging
from io import StringIO

import pytest
import structlog

from treasury_valuation.infrastructure.observability import setup_logging


@pytest.fixture
def clean_logging():
    """
    Reset logging and structlog between tests.

    Both keep global state.
    """
    original_handlers = logging.root.handlers[:]

    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()

    yield

    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
    structlog.reset_defaults()

    logging.root.handlers = original_handlers


def capture(level=logging.INFO):
    captured_output = StringIO()
    handler = logging.StreamHandler(captured_output)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logging.root.addHandler(handler)
    return captured_output, handler


class TestSetupLogging:
    def test_setup_json_mode(self, clean_logging):
        """
        Test 1/5: JSON mode renders one JSON object per event.
        """
        setup_logging(level="INFO", json_logs=True, include_timestamp=True)
        assert structlog.is_configured()

        logging.root.setLevel(logging.INFO)
        captured_output, handler = capture()

        try:
            structlog.get_logger("test_json").info("block_processed", block=17_620_000)
            handler.flush()

            parsed = json.loads(captured_output.getvalue().strip())
            assert parsed["event"] == "block_processed"
            assert parsed["block"] == 17_620_000
            assert parsed["app"] == "treasury-valuation"
            assert parsed["severity"] == "INFO"
            assert "timestamp" in parsed

        finally:
            logging.root.removeHandler(handler)

    def test_setup_text_mode(self, clean_logging):
        """
        Test 2/5: Console mode still produces output.
        """
        setup_logging(level="INFO", json_logs=False, include_timestamp=True)
        assert structlog.is_configured()

        logging.root.setLevel(logging.INFO)
        captured_output, handler = capture()

        try:
            structlog.get_logger("test_text").info("text_test_event", value=456)
            handler.flush()

            output = captured_output.getvalue().strip()
            assert "text_test_event" in output

        finally:
            logging.root.removeHandler(handler)

    def test_setup_different_log_levels(self, clean_logging):
        """
        Test 3/5: Root level follows the requested level.
        """
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.root.handlers = []
            logging.root.setLevel(logging.WARNING)
            structlog.reset_defaults()

            setup_logging(level=level, json_logs=True)

            assert logging.root.level == getattr(logging, level)

    def test_setup_without_timestamp(self, clean_logging):
        """
        Test 4/5: No timestamp field when disabled; DEBUG filtered at INFO.
        """
        setup_logging(level="INFO", json_logs=True, include_timestamp=False)

        logging.root.setLevel(logging.INFO)
        captured_output, handler = capture()

        try:
            logger = structlog.get_logger("test_no_ts")
            logger.debug("debug_should_not_appear")
            logger.info("no_timestamp_test", test_value=True)
            handler.flush()

            lines = [line for line in captured_output.getvalue().split("\n") if line.strip()]
            assert len(lines) == 1

            parsed = json.loads(lines[0])
            assert parsed["event"] == "no_timestamp_test"
            assert parsed["test_value"] is True
            assert "timestamp" not in parsed

        finally:
            logging.root.removeHandler(handler)

    def test_setup_invalid_log_level_falls_back(self, clean_logging):
        """
        Test 5/5: Unknown level names fall back to INFO.
        """
        # basicConfig is a no-op while the root logger has handlers
        logging.root.handlers = []

        setup_logging(level="INVALID_LEVEL", json_logs=True)

        assert structlog.is_configured()
        assert logging.root.level == logging.INFO
