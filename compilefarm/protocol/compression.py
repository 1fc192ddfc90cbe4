"""
Compression framing for file tokens.

Hosts speaking protocol version 2 or 3 exchange file bodies as headerless
LZO1X blocks. The codec itself comes from python-lzo, which is an optional
install; asking for LZO without it raises CompressionUnavailableError so the
attempt fails as a communication problem rather than crashing the caller.
"""

from compilefarm.errors import CompressionUnavailableError, ProtocolError
from compilefarm.models import Compression


# Upper bound for blind decompression buffers. LZO blocks carry no size header
# on the wire, so the output buffer is grown until the block fits.
MAX_DECOMPRESSED_SIZE = 256 * 1024 * 1024
INITIAL_EXPANSION_FACTOR = 8


def _load_lzo():
    try:
        import lzo

    except ImportError as err:
        raise CompressionUnavailableError(
            "LZO compression requested but python-lzo is not installed "
            "(pip install compilefarm[lzo])"
        ) from err

    return lzo


def compress(data: bytes, compression: Compression) -> bytes:
    if compression == Compression.NONE:
        return data

    lzo = _load_lzo()
    return lzo.compress(data, 1, False)


def decompress(data: bytes, compression: Compression) -> bytes:
    if compression == Compression.NONE:
        return data

    if len(data) == 0:
        return b""

    lzo = _load_lzo()

    buffer_size = max(len(data) * INITIAL_EXPANSION_FACTOR, 64 * 1024)
    while buffer_size <= MAX_DECOMPRESSED_SIZE:
        try:
            return lzo.decompress(data, False, buffer_size)

        except lzo.error:
            buffer_size *= 2

    raise ProtocolError(
        f"LZO block of {len(data)} bytes did not fit in {MAX_DECOMPRESSED_SIZE} bytes"
    )
