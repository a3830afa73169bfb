"""Tests for logging setup."""

import logging

from easecut.logger import EaseCutFormatter, get_log_level, setup_logging


class TestLogLevel:
    def test_default_is_warning(self, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        assert get_log_level() == logging.WARNING

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        assert get_log_level() == logging.DEBUG

    def test_unknown_falls_back(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        assert get_log_level() == logging.WARNING


class TestSetupLogging:
    def test_idempotent(self):
        setup_logging()
        log = setup_logging()
        assert log.name == "easecut"
        assert sum(1 for h in log.handlers if getattr(h, "_easecut", False)) == 1

    def test_verbose_forces_debug(self):
        assert setup_logging(verbose=True).level == logging.DEBUG


class TestFormatter:
    def _record(self, level):
        return logging.LogRecord("easecut.x", level, __file__, 1, "hello", None, None)

    def test_info_is_bare(self):
        assert EaseCutFormatter().format(self._record(logging.INFO)) == "hello"

    def test_warning_has_level(self):
        assert "[WARN] hello" in EaseCutFormatter().format(self._record(logging.WARNING))
