import asyncio
import os

from compilefarm.env import Env, TimeParser
from compilefarm.errors import ConnectivityError
from compilefarm.models import HostDefinition, TransportMode

from .connection import Connection


class HostConnector:
    """
    Opens the transport for one attempt. Fails fast: the first resolution,
    connect or spawn error is raised as ConnectivityError and the caller's
    host policy decides what to try next.
    """

    def __init__(self, env: Env | None = None) -> None:
        if env is None:
            env = Env()

        self._connect_timeout = TimeParser().parse(env.COMPILEFARM_CONNECT_TIMEOUT)
        self._remote_command = env.get_tunnel_remote_command()

    async def connect(self, host: HostDefinition) -> Connection:
        if host.mode == TransportMode.TCP:
            return await self._connect_tcp(host)

        elif host.mode == TransportMode.TUNNEL:
            return await self._connect_tunnel(host)

        raise ConnectivityError(
            f"Unsupported transport mode {host.mode!r}",
            hostname=host.hostname,
        )

    def tunnel_command(self, host: HostDefinition) -> list[str]:
        command = [host.tunnel_command]

        if host.user:
            command.extend(["-l", host.user])

        command.append(host.hostname)
        command.extend(self._remote_command)

        return command

    async def _connect_tcp(self, host: HostDefinition) -> Connection:
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(host.hostname, host.port),
                timeout=self._connect_timeout,
            )

        except TimeoutError as err:
            raise ConnectivityError(
                f"Timed out connecting to {host.label} after {self._connect_timeout}s",
                hostname=host.hostname,
            ) from err

        except OSError as err:
            raise ConnectivityError(
                f"Failed to connect to {host.label}: {err}",
                hostname=host.hostname,
            ) from err

        return Connection(host.hostname, reader, writer)

    async def _connect_tunnel(self, host: HostDefinition) -> Connection:
        loop = asyncio.get_running_loop()
        command = self.tunnel_command(host)

        to_child_read, to_child_write = os.pipe()
        from_child_read, from_child_write = os.pipe()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=to_child_read,
                stdout=from_child_write,
            )

        except OSError as err:
            for fd in (to_child_read, to_child_write, from_child_read, from_child_write):
                os.close(fd)

            raise ConnectivityError(
                f"Failed to start tunnel {' '.join(command)}: {err}",
                hostname=host.hostname,
            ) from err

        # The child holds its own copies now.
        os.close(to_child_read)
        os.close(from_child_write)

        reader = asyncio.StreamReader()
        from_child = os.fdopen(from_child_read, "rb", buffering=0)
        to_child = os.fdopen(to_child_write, "wb", buffering=0)
        read_transport: asyncio.ReadTransport | None = None

        try:
            read_transport, _ = await loop.connect_read_pipe(
                lambda: asyncio.StreamReaderProtocol(reader),
                from_child,
            )

            write_transport, write_protocol = await loop.connect_write_pipe(
                lambda: asyncio.StreamReaderProtocol(asyncio.StreamReader()),
                to_child,
            )

        except OSError as err:
            if read_transport is None:
                from_child.close()

            else:
                read_transport.close()

            to_child.close()

            if process.returncode is None:
                process.kill()

            await process.wait()

            raise ConnectivityError(
                f"Failed to attach to tunnel {' '.join(command)}: {err}",
                hostname=host.hostname,
            ) from err

        writer = asyncio.StreamWriter(
            write_transport,
            write_protocol,
            None,
            loop,
        )

        return Connection(
            host.hostname,
            reader,
            writer,
            process=process,
            read_transport=read_transport,
        )
