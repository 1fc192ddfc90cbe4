from .dispatch import (
    AuthenticationError as AuthenticationError,
    CompressionUnavailableError as CompressionUnavailableError,
    ConnectivityError as ConnectivityError,
    DispatchFailure as DispatchFailure,
    ProtocolError as ProtocolError,
    StagingError as StagingError,
    TempDirError as TempDirError,
    TransportError as TransportError,
)
