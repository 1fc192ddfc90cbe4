from __future__ import annotations
from enum import Enum
from typing import Literal

LogLevelName = Literal[
    'trace',
    'debug',
    'info',
    'warn',
    'error',
    'critical',
]


class LogLevel(Enum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    @classmethod
    def to_level(cls, level_name: LogLevelName | str) -> LogLevel:
        """Unknown names fall back to INFO; "warning" is accepted for WARN."""
        name = level_name.upper()
        if name == "WARNING":
            name = "WARN"

        return cls.__members__.get(name, cls.INFO)
