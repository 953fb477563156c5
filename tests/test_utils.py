"""Tests for utility helpers."""
import logging

import pytest

from speedgrabber import setup_logging
from speedgrabber.models import ProgressSnapshot
from speedgrabber.utils import EventEmitter, ProgressReporter, format_duration, format_rate, format_size
from speedgrabber.utils.memory import reclaim, rss_mb


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestFormat:
    @pytest.mark.parametrize("value,expected", [
        (0, "0.00 B"),
        (10, "10.00 B"),
        (1536, "1.50 KB"),
        (5 * 1024 ** 3, "5.00 GB"),
        (3 * 1024 ** 5, "3072.00 TB"),
        (-1, "0.00 B"),
    ])
    def test_format_size(self, value, expected):
        assert format_size(value) == expected

    def test_format_rate(self):
        assert format_rate(2048.7) == "2.00 KB/s"

    @pytest.mark.parametrize("seconds,expected", [
        (1.234, "1.23s"),
        (75, "1m 15s"),
        (3725, "1h 02m 05s"),
    ])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestEventEmitter:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners(self):
        events = EventEmitter()
        seen = []

        async def async_listener(value):
            seen.append(("async", value))

        events.on("progress", lambda value: seen.append(("sync", value)))
        events.on("progress", async_listener)
        await events.emit("progress", 1)

        assert seen == [("sync", 1), ("async", 1)]

    @pytest.mark.asyncio
    async def test_off_and_duplicates(self):
        events = EventEmitter()
        seen = []
        events.on("finish", seen.append)
        events.on("finish", seen.append)
        await events.emit("finish", "a")
        events.off("finish", seen.append)
        await events.emit("finish", "b")

        assert seen == ["a"]
        assert events.has_listeners("finish") is False

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_emit(self):
        events = EventEmitter()
        seen = []

        def broken(_):
            raise ValueError("boom")

        events.on("progress", broken)
        events.on("progress", seen.append)
        await events.emit("progress", 7)

        assert seen == [7]


class TestProgressReporter:
    @pytest.mark.asyncio
    async def test_throttles_by_interval(self):
        clock = FakeClock()
        events = EventEmitter()
        received = []
        events.on("progress", received.append)
        reporter = ProgressReporter(events, interval=1.0, clock=clock)

        assert await reporter.report(ProgressSnapshot(1, 10)) is True
        clock.now = 0.5
        assert await reporter.report(ProgressSnapshot(2, 20)) is False
        clock.now = 1.0
        assert await reporter.report(ProgressSnapshot(3, 30)) is True
        clock.now = 1.1
        assert await reporter.report(ProgressSnapshot(4, 40), force=True) is True

        assert [s.total_files for s in received] == [1, 3, 4]
        assert reporter.emitted == 3

    @pytest.mark.asyncio
    async def test_works_without_listeners(self):
        reporter = ProgressReporter()
        assert await reporter.report(ProgressSnapshot(0, 0)) is True
        assert reporter.events.has_listeners("progress") is False

    @pytest.mark.asyncio
    async def test_extra_topics(self):
        events = EventEmitter()
        seen = []
        events.on("progress", lambda s: seen.append("progress"))
        events.on("scan_progress", lambda s: seen.append("scan_progress"))
        await ProgressReporter(events, topics=("scan_progress",)).report(ProgressSnapshot(1, 1))
        assert seen == ["progress", "scan_progress"]


class TestMemory:
    def test_rss_is_positive(self):
        assert rss_mb() > 0

    def test_reclaim_returns_rss(self):
        assert reclaim("test", collect=True) > 0


class TestSetupLogging:
    @pytest.fixture(autouse=True)
    def restore_logging(self, monkeypatch):
        monkeypatch.delenv("SPEEDGRABBER_LOG_LEVEL", raising=False)
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        logging.disable(logging.NOTSET)
        for handler in list(root.handlers):
            root.removeHandler(handler)
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)

    def test_silent_by_default(self):
        assert setup_logging() == "silent"
        assert logging.getLogger("speedgrabber").isEnabledFor(logging.CRITICAL) is False

    def test_debug(self):
        assert setup_logging(debug=True) == "DEBUG"
        assert logging.getLogger().level == logging.DEBUG

    def test_explicit_level(self):
        assert setup_logging(log_level="warning") == "WARNING"

    def test_env_level(self, monkeypatch):
        monkeypatch.setenv("SPEEDGRABBER_LOG_LEVEL", "info")
        assert setup_logging() == "INFO"

    def test_silent_wins(self):
        assert setup_logging(debug=True, silent=True) == "silent"
