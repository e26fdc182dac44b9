"""
Unit tests for the logging system.
"""

import io
import json

import pytest

from custody_bridge.logging import (
    ConsoleHandler,
    FileHandler,
    JSONFormatter,
    LogConfig,
    LogContext,
    LogEntry,
    LogLevel,
    LogManager,
    MemoryHandler,
    TextFormatter,
    get_log_manager,
    get_logger,
    setup_logging,
    shutdown_logging,
)


def make_entry(**kwargs):
    defaults = dict(
        timestamp=0.0,
        level=LogLevel.INFO,
        message="hello",
        logger_name="custody_bridge.test",
        context=LogContext(component="custody_bridge", operation="deposit", epoch=2),
    )
    defaults.update(kwargs)
    return LogEntry(**defaults)


class TestLogLevel:
    """Test LogLevel."""

    def test_parse(self):
        """Test parsing from strings."""
        assert LogLevel.parse("WARNING") is LogLevel.WARNING
        assert LogLevel.parse(LogLevel.DEBUG) is LogLevel.DEBUG
        with pytest.raises(ValueError):
            LogLevel.parse("verbose")

    def test_rank(self):
        """Test ordering."""
        assert LogLevel.DEBUG.rank < LogLevel.INFO.rank < LogLevel.CRITICAL.rank


class TestLogContext:
    """Test LogContext."""

    def test_merge(self):
        """Test fields on the other context win."""
        base = LogContext(component="custody_bridge", epoch=1, metadata={"a": 1})
        merged = base.merged_with(LogContext(operation="withdraw", epoch=0, metadata={"b": 2}))
        assert merged.component == "custody_bridge"
        assert merged.operation == "withdraw"
        assert merged.epoch == 0
        assert merged.metadata == {"a": 1, "b": 2}
        assert base.merged_with(None) is base


class TestFormatters:
    """Test formatters."""

    def test_json_formatter(self):
        """Test JSON output drops empty context fields."""
        data = json.loads(JSONFormatter().format(make_entry(extra={"amount": 5})))
        assert data["message"] == "hello"
        assert data["level"] == "info"
        assert data["context"] == {
            "component": "custody_bridge",
            "operation": "deposit",
            "epoch": 2,
        }
        assert data["extra"] == {"amount": 5}
        assert data["timestamp"].startswith("1970-01-01T00:00:00")

    def test_json_formatter_exception(self):
        """Test exceptions are included."""
        data = json.loads(JSONFormatter().format(make_entry(exception=ValueError("bad"))))
        assert data["exception"]["type"] == "ValueError"

    def test_text_formatter(self):
        """Test text output tags."""
        line = TextFormatter().format(make_entry(extra={"amount": 5}))
        assert "[INFO] custody_bridge.test: hello" in line
        assert "(op=deposit, epoch=2, amount=5)" in line


class TestHandlers:
    """Test handlers."""

    def test_console_handler_stream(self):
        """Test writing to an explicit stream."""
        stream = io.StringIO()
        handler = ConsoleHandler(stream=stream)
        handler.handle(make_entry())
        assert "hello" in stream.getvalue()

    def test_handler_level(self):
        """Test entries below the handler level are dropped."""
        handler = MemoryHandler()
        handler.set_level(LogLevel.WARNING)
        handler.handle(make_entry())
        handler.handle(make_entry(level=LogLevel.ERROR, message="bad"))
        assert handler.messages() == ["bad"]

    def test_memory_handler_max_size(self):
        """Test the memory handler keeps the newest entries."""
        handler = MemoryHandler(max_size=2)
        for i in range(3):
            handler.handle(make_entry(message=str(i)))
        assert handler.messages() == ["1", "2"]
        handler.clear_logs()
        assert handler.messages() == []

    def test_file_handler(self, tmp_path):
        """Test the file handler appends lines."""
        path = tmp_path / "bridge.log"
        handler = FileHandler(str(path))
        handler.set_formatter(TextFormatter())
        handler.handle(make_entry())
        handler.close()
        assert "hello" in path.read_text()


class TestLogManager:
    """Test LogManager and global helpers."""

    def test_level_filtering(self):
        """Test the manager level gates bound loggers."""
        manager = LogManager(LogConfig(level=LogLevel.WARNING, handlers=["memory"]))
        memory = MemoryHandler()
        manager.add_handler("memory", memory)
        logger = manager.get_logger("test")
        logger.info("dropped")
        logger.warning("kept")
        assert memory.messages() == ["kept"]

    def test_global_context(self):
        """Test the manager context is merged into entries."""
        manager = LogManager(LogConfig(handlers=["memory"]))
        memory = MemoryHandler()
        manager.add_handler("memory", memory)
        manager.set_context(LogContext(component="custody_bridge"))
        manager.get_logger("test").info("x", context=LogContext(operation="pause"))
        entry = memory.get_logs()[0]
        assert entry["context"]["component"] == "custody_bridge"
        assert entry["context"]["operation"] == "pause"

    def test_module_loggers_follow_setup(self):
        """Test loggers fetched before setup_logging route to the new manager."""
        logger = get_logger("custody_bridge.early")
        memory = MemoryHandler()
        setup_logging(LogConfig(handlers=["memory"])).add_handler("memory", memory)
        logger.info("routed")
        assert memory.messages() == ["routed"]

    def test_exception_helper(self):
        """Test exception() attaches the active exception."""
        memory = MemoryHandler()
        setup_logging(LogConfig(handlers=["memory"])).add_handler("memory", memory)
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            get_logger("test").exception("failed")
        assert memory.get_logs(LogLevel.ERROR)[0]["exception"] == "boom"

    def test_shutdown_logging(self):
        """Test shutdown resets the global manager."""
        first = get_log_manager()
        shutdown_logging()
        assert get_log_manager() is not first

    def test_invalid_format(self):
        """Test unsupported formats are rejected."""
        with pytest.raises(ValueError):
            LogConfig(format_type="xml")
