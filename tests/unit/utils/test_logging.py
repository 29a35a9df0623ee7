"""Tests for logging utility."""

import logging
import sys
from io import StringIO


class TestConfigureLogging:
    """Test the application logger setup."""

    def test_returns_application_logger_at_info(self):
        from src.utils.logging import configure_logging

        logger = configure_logging()

        assert logger.name == "job_match"
        assert logger.level == logging.INFO
        assert logger.propagate is False

    def test_level_can_be_changed_after_configuration(self):
        """Reconfiguring should update the level without adding handlers."""
        from src.utils.logging import configure_logging

        configure_logging(level="debug")
        logger = configure_logging(level="WARNING")

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 1
        assert logger.handlers[0].level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        from src.utils.logging import configure_logging

        assert configure_logging(level="chatty").level == logging.INFO

    def test_handler_writes_to_stderr(self):
        """stdout is reserved for CLI results."""
        from src.utils.logging import configure_logging

        handler = configure_logging().handlers[0]

        assert isinstance(handler, logging.StreamHandler)
        assert handler.stream is sys.stderr

    def test_format_includes_timestamp_module_and_level(self):
        from src.utils.logging import configure_logging, get_logger

        logger = configure_logging(level="INFO")
        buffer = StringIO()
        handler = logging.StreamHandler(buffer)
        handler.setFormatter(logger.handlers[0].formatter)
        logger.addHandler(handler)

        get_logger("matching.cache").info("Cleared match score cache entries=3")

        output = buffer.getvalue()
        assert "job_match.matching.cache - INFO - Cleared match score cache" in output
        assert output[:4].isdigit()


class TestModuleLoggers:
    def test_get_logger_returns_child_logger(self):
        from src.utils.logging import get_logger

        assert get_logger("matching.engine").name == "job_match.matching.engine"

    def test_child_inherits_configured_level(self):
        from src.utils.logging import configure_logging, get_logger

        configure_logging(level="DEBUG")

        assert get_logger("matching.batch").getEffectiveLevel() == logging.DEBUG


class TestResetLogging:
    def test_reset_restores_unconfigured_state(self):
        from src.utils.logging import configure_logging, reset_logging

        logger = configure_logging(level="ERROR")

        reset_logging()

        assert logger.handlers == []
        assert logger.level == logging.NOTSET
        assert logger.propagate is True


class TestLogHelpers:
    def test_format_fields_keeps_order_and_rounds_floats(self):
        from src.utils.logging import format_fields

        assert format_fields(job_id="j1", elapsed_ms=12.345, count=3) == (
            "job_id=j1 elapsed_ms=12.3 count=3"
        )

    def test_log_if_slow_warns_only_over_target(self):
        from src.utils.logging import configure_logging, get_logger, log_if_slow

        buffer = StringIO()
        configure_logging(level="INFO", stream=buffer)
        logger = get_logger("matching.engine")

        assert log_if_slow(logger, "Match calculation", 20.0, 500.0) is False
        assert log_if_slow(logger, "Match calculation", 750.0, 500.0, job_id="j1")

        output = buffer.getvalue()
        assert output.count("WARNING") == 1
        assert (
            "Match calculation exceeded performance target "
            "job_id=j1 elapsed_ms=750.0 target_ms=500.0"
        ) in output
