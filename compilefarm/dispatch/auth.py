from typing import Protocol

from compilefarm.models import HostDefinition

from .connection import Connection


class AuthenticationContext(Protocol):
    """
    Performs the authentication handshake for one attempt over an open
    connection. Owned by the caller, who creates it per attempt and
    disposes of it afterwards; the dispatcher only calls perform().
    Raising anything means the handshake failed.
    """

    async def perform(self, connection: Connection, host: HostDefinition) -> None:
        ...
