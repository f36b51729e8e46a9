"""Unit tests for core.logger module.

Tests the structlog configuration:
- configure_logging() installs one stdout handler on the root logger
- JSON rendering when LOG_FORMAT=json
- Reconfiguring replaces handlers instead of stacking them
- Noisy third-party loggers are quieted
"""

import json
import logging

import pytest
import structlog

from core.logger import configure_logging, get_logger


@pytest.fixture(autouse=True)
def _clean_root_logger():
    """Save and restore root logger state around each test."""
    root = logging.getLogger()
    original_handlers = root.handlers[:]
    original_level = root.level
    yield
    root.handlers = original_handlers
    root.setLevel(original_level)
    structlog.reset_defaults()


@pytest.mark.unit
class TestConfigureLogging:
    def test_installs_single_handler(self):
        configure_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_respects_log_level(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")

        configure_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_unknown_log_level_falls_back_to_info(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")

        configure_logging()

        assert logging.getLogger().level == logging.INFO

    def test_replaces_existing_handlers(self):
        stray = logging.NullHandler()
        logging.getLogger().addHandler(stray)

        configure_logging()
        configure_logging()

        handlers = logging.getLogger().handlers
        assert stray not in handlers
        assert len(handlers) == 1

    def test_quiets_access_logs(self):
        configure_logging()

        assert logging.getLogger("uvicorn.access").level == logging.WARNING
        assert logging.getLogger("aiosqlite").level == logging.WARNING


@pytest.mark.unit
class TestJsonOutput:
    def test_structlog_event_renders_as_json(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        get_logger("tests.logger").info(
            "webhook.user.synced", user_id="user_123", email_count=2
        )

        line = capsys.readouterr().out.strip().splitlines()[-1]
        parsed = json.loads(line)
        assert parsed["event"] == "webhook.user.synced"
        assert parsed["user_id"] == "user_123"
        assert parsed["email_count"] == 2
        assert parsed["level"] == "info"
        assert parsed["logger"] == "tests.logger"
        assert "timestamp" in parsed

    def test_stdlib_records_share_the_pipeline(self, monkeypatch, capsys):
        monkeypatch.setenv("LOG_FORMAT", "json")
        configure_logging()

        logging.getLogger("tests.stdlib").warning("db.rollback.failed")

        parsed = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert parsed["event"] == "db.rollback.failed"
        assert parsed["level"] == "warning"
