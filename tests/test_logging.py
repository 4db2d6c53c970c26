"""
Tests for logging setup.
"""

import logging

import pytest

from scaffold.core.observability.logging_config import _parse_level, setup_logging


@pytest.fixture(autouse=True)
def _restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:
    def test_names(self):
        assert _parse_level("debug") == logging.DEBUG
        assert _parse_level("ERROR") == logging.ERROR

    def test_fallback(self):
        assert _parse_level(None) == logging.WARNING
        assert _parse_level("chatty") == logging.WARNING


class TestSetupLogging:
    def test_console_handler(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_file_handler_lowers_root_level(self, tmp_path):
        log_file = tmp_path / "scaffold.log"
        setup_logging("WARNING", log_file=str(log_file))
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("scaffold.test").debug("hello file")
        for handler in root.handlers:
            handler.flush()
        assert "hello file" in log_file.read_text()

    def test_third_party_quieted(self):
        setup_logging("INFO")
        assert logging.getLogger("urllib3").level == logging.WARNING

    def test_log_file_parent_created(self, tmp_path):
        log_file = tmp_path / "logs" / "run.log"
        setup_logging("ERROR", log_file=str(log_file), log_file_level="INFO")
        assert log_file.parent.is_dir()
        assert logging.getLogger().level == logging.INFO
