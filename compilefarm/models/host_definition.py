from dataclasses import dataclass
from enum import Enum

from .compression import Compression


class TransportMode(Enum):
    TCP = "tcp"
    TUNNEL = "tunnel"


class PreprocessLocation(Enum):
    CLIENT = "client"
    SERVER = "server"


DEFAULT_PORT = 3632


@dataclass(slots=True, frozen=True)
class HostDefinition:
    """
    Where and how to send one compile. Built by the host scheduler and
    only ever read by the dispatch path.
    """

    hostname: str
    mode: TransportMode = TransportMode.TCP
    port: int = DEFAULT_PORT
    tunnel_command: str = "ssh"
    user: str | None = None
    protover: int = 1
    cpp_where: PreprocessLocation = PreprocessLocation.CLIENT
    compression: Compression = Compression.NONE
    authenticate: bool = False

    @property
    def label(self) -> str:
        if self.mode == TransportMode.TUNNEL:
            return f"@{self.hostname}"

        return f"{self.hostname}:{self.port}"
