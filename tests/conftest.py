"""
Pytest configuration shared by the unit tests.

Configures pytest-asyncio for async test support and provides the fakes
the dispatch tests plug into RemoteCompileDispatcher.
"""

import asyncio
from typing import AsyncGenerator, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from compilefarm.dispatch import TempFileRegistry
from compilefarm.env import Env
from compilefarm.errors import ProtocolError, TransportError
from compilefarm.logging import Entry, LoggingConfig, LogLevel
from compilefarm.protocol import TokenReader, TokenWriter


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture(autouse=True)
def configure_log_level():
    config = LoggingConfig()
    config.update(log_level="debug")
    yield
    config.update(log_level="error")


@pytest.fixture
def env(tmp_path) -> Env:
    tmp_top = tmp_path / "tmp"
    tmp_top.mkdir()

    return Env(
        COMPILEFARM_TMPDIR=str(tmp_top),
        COMPILEFARM_LOCK_DIRECTORY=str(tmp_path / "lock"),
        COMPILEFARM_CONNECT_TIMEOUT="2s",
    )


@pytest.fixture
def registry() -> Generator[TempFileRegistry, None, None]:
    registry = TempFileRegistry()
    yield registry
    registry.close()


@pytest.fixture
def sample_entry() -> Entry:
    return Entry(
        message="Test log message",
        level=LogLevel.INFO,
    )


class FakeLockHandle:
    """Admission lock handle that records every release call."""

    def __init__(self, events: list[str] | None = None) -> None:
        self.release_calls = 0
        self._held = True
        self._events = events if events is not None else []

    @property
    def held(self) -> bool:
        return self._held

    def release(self) -> bool:
        self.release_calls += 1

        if not self._held:
            return False

        self._held = False
        self._events.append("release")

        return True


@pytest.fixture
def lock_events() -> list[str]:
    return []


@pytest.fixture
def lock_handle(lock_events: list[str]) -> FakeLockHandle:
    return FakeLockHandle(lock_events)


BODY_TAGS = {"CDIR", "ARGV", "NAME", "LINK", "FILE", "DOTI"}


class FakeCompileServer:
    """
    Loopback stand-in for a compile host. Parses one request per
    connection, records every token it saw as (tag, value) where value is
    the body for string and file tokens, then replies with a fixed result.
    """

    def __init__(
        self,
        status: int = 0,
        object_data: bytes = b"\x7fELF-object",
        deps_data: bytes = b"foo.o: foo.c\n",
        reply: bool = True,
    ) -> None:
        self.status = status
        self.object_data = object_data
        self.deps_data = deps_data
        self.reply = reply
        self.received: list[tuple[str, int | bytes]] = []
        self.errors: list[Exception] = []
        self.connections = 0
        self.handled = asyncio.Event()
        self._server: asyncio.Server | None = None
        self._reader: asyncio.StreamReader | None = None

    @property
    def port(self) -> int:
        return self._server.sockets[0].getsockname()[1]

    def tags(self) -> list[str]:
        return [tag for tag, _ in self.received]

    def values(self, tag: str) -> list[int | bytes]:
        return [value for received_tag, value in self.received if received_tag == tag]

    async def start(self):
        self._server = await asyncio.start_server(
            self._handle,
            "127.0.0.1",
            0,
        )

    async def stop(self):
        self._server.close()
        await self._server.wait_closed()

    async def _handle(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ):
        self.connections += 1
        self._reader = reader

        try:
            protover, server_side = await self._read_request(TokenReader(reader))

            if self.reply:
                await self._write_reply(TokenWriter(writer), protover, server_side)

        except (TransportError, ProtocolError, asyncio.IncompleteReadError) as err:
            self.errors.append(err)

        finally:
            writer.close()
            self.handled.set()

    async def _next(self, tokens: TokenReader) -> tuple[str, int | bytes]:
        tag, value = await tokens.read_token()

        if tag in BODY_TAGS:
            value = await self._reader.readexactly(value)

        self.received.append((tag, value))
        return tag, value

    async def _read_request(self, tokens: TokenReader) -> tuple[int, bool]:
        _, protover = await self._next(tokens)

        tag, value = await self._next(tokens)
        server_side = tag == "CDIR"
        if server_side:
            tag, value = await self._next(tokens)

        for _ in range(value):
            await self._next(tokens)

        tag, value = await self._next(tokens)

        if tag == "NFIL":
            for _ in range(value):
                await self._next(tokens)
                await self._next(tokens)

        else:
            _, present = await self._next(tokens)
            if present:
                await self._next(tokens)

        return protover, server_side

    async def _write_reply(self, tokens: TokenWriter, protover: int, server_side: bool):
        await tokens.write_int("DONE", protover)
        await tokens.write_int("STAT", self.status)
        await tokens.write_string("SERR", b"")
        await tokens.write_string("SOUT", b"")

        if self.status == 0:
            await tokens.write_string("DOTO", self.object_data)

            if server_side:
                await tokens.write_string("DOTD", self.deps_data)

        await tokens.flush()


@pytest.fixture
async def compile_server_factory() -> AsyncGenerator:
    servers: list[FakeCompileServer] = []

    async def create_server(**kwargs) -> FakeCompileServer:
        server = FakeCompileServer(**kwargs)
        await server.start()
        servers.append(server)

        return server

    yield create_server

    for server in servers:
        await server.stop()


@pytest.fixture
async def compile_server(compile_server_factory) -> FakeCompileServer:
    return await compile_server_factory()


@pytest.fixture
def mock_writer() -> MagicMock:
    mock_writer = MagicMock(spec=asyncio.StreamWriter)
    mock_writer.write = MagicMock()
    mock_writer.drain = AsyncMock()
    mock_writer.close = MagicMock()
    mock_writer.wait_closed = AsyncMock()
    mock_writer.is_closing = MagicMock(return_value=False)
    mock_writer.get_extra_info = MagicMock(return_value=None)
    return mock_writer
