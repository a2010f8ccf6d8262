import json
import logging
from datetime import UTC, datetime
from enum import Enum, StrEnum
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from shared.logging import _enum_values, log_format_from_env, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture(autouse=True)
def _allow_file_logging():
    """Disable the _is_test guard so logging tests can create real file handlers."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_configures_stdout_handler(self):
        setup_logging()
        root = logging.getLogger()

        assert root.level == logging.INFO
        assert len(root.handlers) == 1

        handler = root.handlers[0]
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_configures_file_handler_in_log_dir(self, tmp_path):
        log_dir = tmp_path / "game"
        setup_logging(log_dir=log_dir)
        root = logging.getLogger()

        assert len(root.handlers) == 2
        file_handler = root.handlers[1]
        assert isinstance(file_handler, logging.FileHandler)
        assert Path(file_handler.baseFilename).parent == log_dir

    def test_log_file_name_carries_utc_timestamp(self, tmp_path):
        fixed_time = datetime(2025, 3, 15, 10, 30, 45, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "game")

        assert log_path is not None
        assert log_path.name == "game-server_20250315T103045Z.log"

    def test_returns_none_without_log_dir(self):
        assert setup_logging() is None

    def test_no_file_under_pytest(self, tmp_path):
        with patch("shared.logging._is_test", return_value=True):
            assert setup_logging(log_dir=tmp_path / "game") is None
        assert not (tmp_path / "game").exists()

    def test_writes_to_file(self, tmp_path):
        log_path = setup_logging(log_dir=tmp_path / "nested" / "dir")

        structlog.get_logger("test.writes_to_file").info("hello from test")

        assert log_path is not None
        assert "hello from test" in log_path.read_text()

    def test_clears_existing_handlers_on_repeated_calls(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_quiets_noisy_loggers(self):
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING

    def test_custom_log_level(self):
        setup_logging(level=logging.DEBUG)
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_invalid_log_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "bogus")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_json_mode_includes_bound_context(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "game")

        structlog.contextvars.bind_contextvars(connection_id="conn-1", account_id=7)
        structlog.get_logger("test.json").info("json test event", code=_Code.ROOM_FULL)

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "json test event"
        assert parsed["connection_id"] == "conn-1"
        assert parsed["account_id"] == 7
        assert parsed["code"] == "room_full"
        assert parsed["level"] == "info"
        assert "timestamp" in parsed

    def test_json_mode_renders_exceptions(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=tmp_path / "game")

        try:
            raise RuntimeError("ledger offline")
        except RuntimeError:
            structlog.get_logger("test.exc").exception("ledger failure")

        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert "ledger offline" in parsed["exception"]


class TestLogFormatFromEnv:
    def test_defaults_to_console(self, monkeypatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)
        assert log_format_from_env() == "console"

    def test_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "JSON")
        assert log_format_from_env() == "json"

    def test_invalid_value_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            log_format_from_env()


class _Code(StrEnum):
    ROOM_FULL = "room_full"


class TestEnumValues:
    class _Color(Enum):
        RED = "red"

    def test_replaces_enum_with_value(self):
        event_dict = {"color": self._Color.RED, "msg": "hello"}
        result = _enum_values(None, "", event_dict)
        assert result == {"color": "red", "msg": "hello"}

    def test_leaves_non_enum_values_unchanged(self):
        event_dict = {"count": 42, "name": "test"}
        assert _enum_values(None, "", event_dict) == {"count": 42, "name": "test"}
