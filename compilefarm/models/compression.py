from enum import Enum


class Compression(Enum):
    NONE = "none"
    LZO1X = "lzo1x"

    @classmethod
    def for_protocol(cls, protover: int) -> "Compression":
        if protover >= 2:
            return Compression.LZO1X

        return Compression.NONE
