"""
Test: Logger and LoggerStream

1. Entries render through templates with their own fields
2. File logging writes one JSON document per entry with caller metadata
3. Entries below the configured level are dropped
4. Without a file, templated lines go to stderr
5. Logger contexts log the dispatch entry types with their context fields

Run with: pytest tests/unit/logging/test_logger_stream.py
"""

import os

import msgspec
import pytest

from compilefarm.dispatch.logging_models import DispatchInfo, TransferInfo
from compilefarm.logging import Entry, Logger, LoggerStream, LogLevel


def read_lines(path: str) -> list[dict]:
    with open(path, "rb") as logfile:
        return [msgspec.json.decode(line) for line in logfile.read().splitlines()]


class TestEntry:
    def test_to_template(self):
        entry = DispatchInfo(
            message="connected",
            host="builder:3632",
            input_file="foo.c",
            phase="CONNECTING",
        )

        line = entry.to_template("{level} {host} {phase} {message}")

        assert line == "INFO builder:3632 CONNECTING connected"

    def test_level_names(self):
        assert LogLevel.to_level("debug") == LogLevel.DEBUG
        assert LogLevel.to_level("warn") == LogLevel.WARN
        assert LogLevel.to_level("warning") == LogLevel.WARN
        assert LogLevel.to_level("bogus") == LogLevel.INFO


class TestFileLogging:
    @pytest.mark.asyncio
    async def test_writes_json_lines(self, temp_log_directory: str):
        stream = LoggerStream(
            name="test_json",
            filename="test.json",
            directory=temp_log_directory,
        )
        await stream.initialize()

        await stream.log(Entry(message="first", level=LogLevel.INFO))
        await stream.log(Entry(message="second", level=LogLevel.ERROR))
        await stream.close()

        lines = read_lines(os.path.join(temp_log_directory, "test.json"))

        assert [line["entry"]["message"] for line in lines] == ["first", "second"]
        assert [line["entry"]["level"] for line in lines] == ["INFO", "ERROR"]
        assert all(line["filename"] for line in lines)

    @pytest.mark.asyncio
    async def test_filters_below_level(self, temp_log_directory: str, quiet_logging):
        stream = LoggerStream(
            name="test_filter",
            filename="filtered.json",
            directory=temp_log_directory,
        )
        await stream.initialize()

        await stream.log(Entry(message="dropped", level=LogLevel.DEBUG))
        await stream.log(Entry(message="kept", level=LogLevel.ERROR))
        await stream.close()

        lines = read_lines(os.path.join(temp_log_directory, "filtered.json"))

        assert [line["entry"]["message"] for line in lines] == ["kept"]

    @pytest.mark.asyncio
    async def test_logger_configured_path(self, temp_log_directory: str):
        path = os.path.join(temp_log_directory, "dispatch.json")

        logger = Logger()
        logger.configure(name="dispatch", path=path)

        await logger.log(
            TransferInfo(
                message="1024 bytes from foo.c compiled on builder in 0.5000s, rate 2kB/s",
                host="builder",
                input_file="foo.c",
                payload_bytes=1024,
                seconds=0.5,
                rate_kbps=2.0,
            ),
            name="dispatch",
        )
        await logger.close()

        [line] = read_lines(path)

        assert line["entry"]["host"] == "builder"
        assert line["entry"]["payload_bytes"] == 1024
        assert line["function_name"] == "test_logger_configured_path"
        assert line["pid"] == os.getpid()


class TestStreamLogging:
    @pytest.mark.asyncio
    async def test_writes_template_to_stderr(self, capsys: pytest.CaptureFixture):
        stream = LoggerStream(
            name="test_stderr",
            template="{level} - {message}",
        )
        await stream.initialize()

        await stream.log(Entry(message="to stderr", level=LogLevel.WARN))

        captured = capsys.readouterr()
        assert "WARN - to stderr" in captured.err
        assert captured.out == ""
