"""
Default result retrieval for a dispatched compile.

Reads the reply that follows a fully sent request: the result header, the
remote compiler's wait status, its captured diagnostics and standard output,
and, when the compiler succeeded, the object file (plus the dependency file
for server-side preprocessing).
"""

import asyncio
import sys
from typing import BinaryIO, Protocol

from compilefarm.models import CompileJob, HostDefinition, PreprocessLocation
from compilefarm.errors import ProtocolError

from .compression import Compression, decompress
from .tokens import TokenReader


class ResultRetriever(Protocol):
    async def retrieve(
        self,
        reader: asyncio.StreamReader,
        job: CompileJob,
        host: HostDefinition,
    ) -> int:
        """Return the remote wait status, raising TransportError on failure."""
        ...


def _write_stdout(sink: BinaryIO, data: bytes):
    sink.write(data)
    sink.flush()


class TokenResultRetriever:

    def __init__(self, stdout_sink: BinaryIO | None = None) -> None:
        self._stdout_sink = stdout_sink

    async def retrieve(
        self,
        reader: asyncio.StreamReader,
        job: CompileJob,
        host: HostDefinition,
    ) -> int:
        tokens = TokenReader(reader)
        compression = host.compression

        protover = await tokens.read_int("DONE")
        if protover != host.protover:
            raise ProtocolError(
                f"Server replied with protocol version {protover}, expected {host.protover}",
                hostname=host.hostname,
            )

        status = await tokens.read_int("STAT")

        await tokens.read_file_to(
            "SERR",
            job.server_stderr_fname,
            compression,
        )

        stdout = await tokens.read_bytes("SOUT")
        if compression != Compression.NONE:
            stdout = decompress(stdout, compression)

        if stdout:
            sink = self._stdout_sink or sys.stdout.buffer
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, _write_stdout, sink, stdout)

        if status != 0:
            return status

        await tokens.read_file_to(
            "DOTO",
            job.output_fname,
            compression,
        )

        if (
            host.cpp_where == PreprocessLocation.SERVER
            and job.deps_fname is not None
        ):
            await tokens.read_file_to(
                "DOTD",
                job.deps_fname,
                compression,
            )

        return status
