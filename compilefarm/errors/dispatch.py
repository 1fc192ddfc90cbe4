"""
Exceptions raised along the remote dispatch path.

Every failure of a single attempt is raised as a subclass of DispatchFailure
where it happens and converted exactly once, by RemoteCompileDispatcher, into
a DispatchResult code for the caller. Callers decide whether to retry on
another host or fall back to a local compile; nothing here retries.
"""


class DispatchFailure(Exception):
    """Base class for failures of one dispatch attempt."""

    def __init__(self, message: str, hostname: str | None = None):
        self.message = message
        self.hostname = hostname
        super().__init__(message)


class ConnectivityError(DispatchFailure):
    """
    Raised when the transport to a host cannot be established: name
    resolution failed, the connection was refused or timed out, or the
    tunnel command could not be spawned.
    """
    pass


class AuthenticationError(DispatchFailure):
    """Raised when a required authentication handshake fails."""
    pass


class TransportError(DispatchFailure):
    """Raised when a read or write fails part way through the protocol."""
    pass


class ProtocolError(TransportError):
    """
    Raised when the peer sends something other than the expected token,
    or a token whose value cannot be accepted.
    """
    pass


class TempDirError(DispatchFailure):
    """Raised when the process temporary directory cannot be used."""
    pass


class StagingError(DispatchFailure):
    """
    Raised when a profile artifact could not be copied into a private
    temporary file. Absorbed by the profile relay, which then reports the
    artifact as absent.
    """
    pass


class CompressionUnavailableError(DispatchFailure):
    """Raised when a host asks for a compression codec that is not installed."""
    pass
