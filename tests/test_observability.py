"""
Tests for logging setup.
"""

import logging

import pytest

from devkit.core.observability.logging_config import (
    ENV_FILE,
    ENV_FILE_LEVEL,
    ENV_LEVEL,
    parse_level,
    resolve_level,
    setup_logging,
)


@pytest.fixture(autouse=True)
def _restore_root_logger(monkeypatch):
    for name in (ENV_LEVEL, ENV_FILE, ENV_FILE_LEVEL):
        monkeypatch.delenv(name, raising=False)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLevels:
    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level("INFO") == logging.INFO
        assert parse_level(None) == logging.WARNING
        assert parse_level("bogus") == logging.WARNING
        assert parse_level("bogus", default=logging.ERROR) == logging.ERROR

    def test_cli_flag_wins(self, monkeypatch):
        monkeypatch.setenv(ENV_LEVEL, "DEBUG")
        assert resolve_level("ERROR") == "ERROR"

    def test_env_var_next(self, monkeypatch):
        monkeypatch.setenv(ENV_LEVEL, "INFO")
        assert resolve_level(None) == "INFO"

    def test_default_warning(self):
        assert resolve_level(None) == "WARNING"


class TestSetupLogging:
    def test_console_handler(self):
        setup_logging("INFO")
        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert root.level == logging.INFO
        assert "%(name)s" in root.handlers[0].formatter._fmt

    def test_minimal_format_at_warning(self):
        setup_logging("WARNING")
        assert logging.getLogger().handlers[0].formatter._fmt == "%(message)s"

    def test_debug_format_has_line_numbers(self):
        setup_logging("DEBUG")
        assert "%(lineno)d" in logging.getLogger().handlers[0].formatter._fmt

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "devkit.log"
        setup_logging("WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.level == logging.DEBUG

        logging.getLogger("devkit.test").debug("to the file only")
        for handler in root.handlers:
            handler.flush()
        assert "to the file only" in log_file.read_text(encoding="utf-8")

    def test_file_from_env(self, tmp_path, monkeypatch):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv(ENV_FILE, str(log_file))
        monkeypatch.setenv(ENV_FILE_LEVEL, "INFO")
        setup_logging("ERROR")
        root = logging.getLogger()
        assert len(root.handlers) == 2
        assert root.handlers[1].level == logging.INFO

    def test_quiets_asyncio(self):
        setup_logging("INFO")
        assert logging.getLogger("asyncio").level == logging.WARNING
