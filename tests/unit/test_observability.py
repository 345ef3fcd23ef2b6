"""
tests/unit/test_observability.py — Logging setup + busy guard
"""

from __future__ import annotations

import json
import logging

import pytest
import structlog

from flows.guard import BusyGuard
from observability.logger import bind_user, clear_context, get_logger, setup_logging


@pytest.fixture
def restore_logging():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()
    clear_context()


class TestLogger:
    def test_setup_creates_log_file(self, tmp_path, restore_logging):
        log_dir = tmp_path / "logs"
        setup_logging(level="INFO", log_dir=log_dir, console_output=False)
        get_logger("test").info("progress.opened", path="x")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = (log_dir / "mindx.log").read_text(encoding="utf-8")
        assert "progress.opened" in text

    def test_file_stays_json_with_pretty_console(self, tmp_path, restore_logging):
        setup_logging(level="INFO", log_dir=tmp_path, json_format=False, console_output=True)
        get_logger("test").info("tasks.verify.approved", points=50)
        for handler in logging.getLogger().handlers:
            handler.flush()
        line = (tmp_path / "mindx.log").read_text(encoding="utf-8").strip().splitlines()[-1]
        entry = json.loads(line)
        assert entry["event"] == "tasks.verify.approved"
        assert entry["points"] == 50

    def test_http_client_request_logs_quietened(self, tmp_path, restore_logging):
        setup_logging(level="DEBUG", log_dir=tmp_path, console_output=False)
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_bind_user_sets_contextvars(self, restore_logging):
        bind_user("sam", screen="chat")
        bound = structlog.contextvars.get_contextvars()
        assert bound == {"username": "sam", "screen": "chat"}
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestBusyGuard:
    async def test_flag_released_on_error(self):
        guard = BusyGuard("test")
        with pytest.raises(ValueError):
            async with guard:
                assert guard.busy
                raise ValueError("boom")
        assert not guard.busy
        assert not guard.reject_if_busy()

    async def test_nested_entry_is_a_bug(self):
        guard = BusyGuard("test")
        async with guard:
            assert guard.reject_if_busy()
            with pytest.raises(RuntimeError):
                async with guard:
                    pass
