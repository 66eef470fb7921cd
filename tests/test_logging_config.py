"""
Тесты настройки логирования.
"""
import io
import logging

import pytest

from core.logging_config import QUIET_LOGGERS, get_logger, parse_level, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParseLevel:

    def test_names(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(" WARNING ") == logging.WARNING

    def test_fallback(self):
        assert parse_level("loud") == logging.INFO
        assert parse_level(None, default=logging.ERROR) == logging.ERROR
        assert parse_level(logging.ERROR) == logging.ERROR


class TestSetupLogging:

    def test_writes_to_stream(self, restore_root, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "simple")
        stream = io.StringIO()

        setup_logging("DEBUG", stream=stream)
        get_logger("vision.camera").debug("кадр 64x48")

        assert "[DEBUG] vision.camera: кадр 64x48" in stream.getvalue()
        assert restore_root.level == logging.DEBUG

    def test_level_from_env(self, restore_root, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")

        setup_logging(stream=io.StringIO())

        assert restore_root.level == logging.ERROR

    def test_repeated_setup_replaces_handler(self, restore_root):
        setup_logging("INFO", stream=io.StringIO())
        setup_logging("INFO", stream=io.StringIO())

        assert len(restore_root.handlers) == 1

    def test_http_loggers_stay_quiet(self, restore_root):
        setup_logging("DEBUG", stream=io.StringIO())

        for name in QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
