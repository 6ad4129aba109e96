"""
Tests for the queue based logging setup.
"""

import logging
import logging.handlers

import pytest

from site_stats.logging_config import ThreadSafeLoggingConfig


@pytest.fixture
def restore_root_logger():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestThreadSafeLoggingConfig:
    """setup_logging / stop lifecycle."""

    def test_setup_installs_queue_handler(self, restore_root_logger):
        """The root logger writes through a single queue handler."""
        config = ThreadSafeLoggingConfig()
        config.setup_logging(debug=True)
        try:
            handlers = restore_root_logger.handlers
            assert len(handlers) == 1
            assert isinstance(handlers[0], logging.handlers.QueueHandler)
            assert restore_root_logger.level == logging.DEBUG
        finally:
            config.stop()

        assert config._log_listener is None

    def test_quiet_mode_silences_access_log(self, restore_root_logger):
        """Without debug the werkzeug access log is raised to WARNING."""
        config = ThreadSafeLoggingConfig()
        config.setup_logging(debug=False)
        config.setup_logging(debug=False)
        try:
            assert restore_root_logger.level == logging.INFO
            assert logging.getLogger("werkzeug").level == logging.WARNING
        finally:
            config.stop()
