import asyncio
import os

from compilefarm.errors import TransportError
from compilefarm.models import Compression, HostDefinition, PreprocessLocation
from compilefarm.protocol import TokenWriter


def _read_link_target(path: str) -> str | None:
    if os.path.islink(path):
        return os.readlink(path)

    return None


class RequestSender:
    """
    Writes the request for one attempt, in order: protocol version, working
    directory (server-side preprocessing only), argument vector, then either
    the sources needed to preprocess remotely or the preprocessed unit.

    The stream stays corked from the header until flush(), so the whole
    request leaves in as few packets as the transport allows. Any write
    failure raises TransportError and nothing further is sent.
    """

    def __init__(self, tokens: TokenWriter) -> None:
        self._tokens = tokens

    @property
    def bytes_written(self) -> int:
        return self._tokens.bytes_written

    async def send_header(
        self,
        argv: list[str],
        host: HostDefinition,
    ):
        self._tokens.cork()

        await self._tokens.write_int("DIST", host.protover)

        if host.cpp_where == PreprocessLocation.SERVER:
            loop = asyncio.get_running_loop()
            cwd = await loop.run_in_executor(None, os.getcwd)
            await self._tokens.write_string("CDIR", cwd)

        await self._tokens.write_argv("ARGC", "ARGV", argv)

    async def send_source_files(
        self,
        files: list[str],
        compression: Compression,
    ) -> int:
        loop = asyncio.get_running_loop()
        await self._tokens.write_int("NFIL", len(files))

        sent = 0
        for path in files:
            await self._tokens.write_string("NAME", path)

            try:
                link_target = await loop.run_in_executor(None, _read_link_target, path)

            except OSError as err:
                raise TransportError(f"Failed to read link {path}: {err}") from err

            if link_target is not None:
                await self._tokens.write_string("LINK", link_target)
                continue

            sent += await self._tokens.write_file("FILE", path, compression)

        return sent

    async def send_preprocessed(
        self,
        cpp_fname: str,
        compression: Compression,
    ) -> int:
        return await self._tokens.write_file("DOTI", cpp_fname, compression)

    async def flush(self):
        await self._tokens.flush()
