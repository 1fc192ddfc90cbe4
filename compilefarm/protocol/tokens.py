"""
Token codec for the compile request protocol.

Every logical unit on the wire is a token: a four character ASCII tag
followed by eight lowercase hex digits. Integer tokens carry their value in
the digits; string and file tokens carry a byte length and are followed by
exactly that many bytes. The layout matches distcc servers byte for byte.
"""

import asyncio
import os
import socket

from compilefarm.errors import ProtocolError, TransportError

from .compression import Compression, compress, decompress


TAG_LENGTH = 4
TOKEN_LENGTH = 12
MAX_TOKEN_VALUE = 0xFFFFFFFF
DEFAULT_CHUNK_SIZE = 64 * 1024


def encode_token(tag: str, value: int) -> bytes:
    if len(tag) != TAG_LENGTH or not tag.isascii():
        raise ValueError(f"Token tag must be {TAG_LENGTH} ASCII characters, got {tag!r}")

    if value < 0 or value > MAX_TOKEN_VALUE:
        raise ValueError(f"Token value {value} does not fit in 32 bits")

    return f"{tag}{value:08x}".encode("ascii")


def decode_token(data: bytes) -> tuple[str, int]:
    if len(data) != TOKEN_LENGTH:
        raise ProtocolError(f"Short token: expected {TOKEN_LENGTH} bytes, got {len(data)}")

    try:
        tag = data[:TAG_LENGTH].decode("ascii")
        value = int(data[TAG_LENGTH:].decode("ascii"), 16)

    except (UnicodeDecodeError, ValueError) as err:
        raise ProtocolError(f"Malformed token {data!r}") from err

    return tag, value


def _read_file_bytes(path: str) -> bytes:
    with open(path, "rb") as source:
        return source.read()


def _read_chunk(source, size: int) -> bytes:
    return source.read(size)


class TokenWriter:
    """
    Writes tokens to the write side of a connection.

    While corked, small tokens are coalesced by the kernel instead of going
    out as individual packets; flush() uncorks and waits until every byte has
    been handed to the transport.
    """

    def __init__(
        self,
        writer: asyncio.StreamWriter,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self._writer = writer
        self._chunk_size = chunk_size
        self._corked = False
        self.bytes_written = 0

    @property
    def corked(self):
        return self._corked

    def cork(self) -> bool:
        self._corked = True
        return self._set_cork(True)

    def uncork(self) -> bool:
        self._corked = False
        return self._set_cork(False)

    def _set_cork(self, enabled: bool) -> bool:
        if not hasattr(socket, "TCP_CORK"):
            return False

        sock = self._writer.get_extra_info("socket")
        if sock is None or sock.family not in (socket.AF_INET, socket.AF_INET6):
            return False

        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_CORK, 1 if enabled else 0)

        except OSError:
            return False

        return True

    async def write_int(self, tag: str, value: int):
        await self._write(encode_token(tag, value))

    async def write_string(self, tag: str, value: str | bytes):
        if isinstance(value, str):
            value = os.fsencode(value)

        await self._write(encode_token(tag, len(value)) + value)

    async def write_argv(self, argc_tag: str, argv_tag: str, argv: list[str]):
        await self.write_int(argc_tag, len(argv))

        for arg in argv:
            await self.write_string(argv_tag, arg)

    async def write_file(
        self,
        tag: str,
        path: str,
        compression: Compression = Compression.NONE,
    ) -> int:
        """
        Send a file body under tag. Returns the number of bytes put on the
        wire for the body (the compressed size when compressing).
        """
        loop = asyncio.get_running_loop()

        if compression != Compression.NONE:
            try:
                data = await loop.run_in_executor(None, _read_file_bytes, path)

            except OSError as err:
                raise TransportError(f"Failed to read {path}: {err}") from err

            body = compress(data, compression)
            await self._write(encode_token(tag, len(body)) + body)

            return len(body)

        try:
            source = await loop.run_in_executor(None, open, path, "rb")

        except OSError as err:
            raise TransportError(f"Failed to open {path}: {err}") from err

        try:
            size = os.fstat(source.fileno()).st_size
            await self.write_int(tag, size)

            remaining = size
            while remaining > 0:
                chunk = await loop.run_in_executor(
                    None,
                    _read_chunk,
                    source,
                    min(self._chunk_size, remaining),
                )

                if not chunk:
                    raise TransportError(
                        f"{path} shrank while sending: {remaining} of {size} bytes missing"
                    )

                await self._write(chunk)
                remaining -= len(chunk)

        except OSError as err:
            raise TransportError(f"Failed to read {path}: {err}") from err

        finally:
            source.close()

        return size

    async def flush(self):
        self.uncork()
        await self._drain()

    async def _write(self, data: bytes):
        if self._writer.is_closing():
            raise TransportError("Connection closed while sending request")

        try:
            self._writer.write(data)

        except (OSError, RuntimeError) as err:
            raise TransportError(f"Write failed: {err}") from err

        self.bytes_written += len(data)
        await self._drain()

    async def _drain(self):
        try:
            await self._writer.drain()

        except (OSError, RuntimeError) as err:
            raise TransportError(f"Write failed: {err}") from err


def _write_file_bytes(path: str, data: bytes):
    with open(path, "wb") as destination:
        destination.write(data)


class TokenReader:
    """Reads tokens from the read side of a connection."""

    def __init__(self, reader: asyncio.StreamReader) -> None:
        self._reader = reader

    async def read_token(self) -> tuple[str, int]:
        return decode_token(await self._read_exactly(TOKEN_LENGTH))

    async def read_int(self, expected_tag: str) -> int:
        tag, value = await self.read_token()

        if tag != expected_tag:
            raise ProtocolError(f"Expected token {expected_tag}, got {tag}")

        return value

    async def read_bytes(self, expected_tag: str) -> bytes:
        length = await self.read_int(expected_tag)
        return await self._read_exactly(length)

    async def read_string(self, expected_tag: str) -> str:
        return os.fsdecode(await self.read_bytes(expected_tag))

    async def read_file_to(
        self,
        expected_tag: str,
        path: str | None,
        compression: Compression = Compression.NONE,
    ) -> int:
        """
        Receive a file body into path, or discard it when path is None.
        Returns the number of bytes written to the file.
        """
        body = decompress(
            await self.read_bytes(expected_tag),
            compression,
        )

        if path is not None:
            loop = asyncio.get_running_loop()

            try:
                await loop.run_in_executor(None, _write_file_bytes, path, body)

            except OSError as err:
                raise TransportError(f"Failed to write {path}: {err}") from err

        return len(body)

    async def _read_exactly(self, length: int) -> bytes:
        try:
            return await self._reader.readexactly(length)

        except asyncio.IncompleteReadError as err:
            raise TransportError(
                f"Connection closed after {len(err.partial)} of {length} bytes"
            ) from err

        except OSError as err:
            raise TransportError(f"Read failed: {err}") from err
