import asyncio


class Connection:
    """
    An open byte stream to a compile host for the lifetime of one attempt.

    A TCP connection is one socket serving both directions. A tunnel
    connection is two pipes to a child process, one per direction, plus
    the child itself which must be reaped.
    """

    __slots__ = (
        "hostname",
        "reader",
        "writer",
        "process",
        "_read_transport",
        "_write_closed",
        "_read_closed",
    )

    def __init__(
        self,
        hostname: str,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        process: asyncio.subprocess.Process | None = None,
        read_transport: asyncio.ReadTransport | None = None,
    ) -> None:
        self.hostname = hostname
        self.reader = reader
        self.writer = writer
        self.process = process
        self._read_transport = read_transport
        self._write_closed = False
        self._read_closed = False

    @property
    def is_duplex(self) -> bool:
        return self._read_transport is None

    @property
    def closed(self) -> bool:
        return self._read_closed and (self.is_duplex or self._write_closed)

    def close_write(self) -> bool:
        if self.is_duplex or self._write_closed:
            return False

        self._write_closed = True
        self.writer.close()

        return True

    async def close_read(self) -> bool:
        if self._read_closed:
            return False

        self._read_closed = True

        if self.is_duplex:
            self.writer.close()

            try:
                await self.writer.wait_closed()

            except (OSError, RuntimeError):
                # Reset by the peer.
                pass

        else:
            self._read_transport.close()

        return True

    async def reap(self) -> int | None:
        if self.process is None:
            return None

        return await self.process.wait()
