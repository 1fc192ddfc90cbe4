import contextvars
from typing import Literal

from compilefarm.logging.models import LogLevel, LogLevelName

from .log_level_map import LogLevelMap
from .stream_type import StreamType


LogOutput = Literal["stdout", "stderr"]

_log_level = contextvars.ContextVar(
    "compilefarm_log_level",
    default=LogLevel.INFO,
)
_log_output = contextvars.ContextVar(
    "compilefarm_log_output",
    default=StreamType.STDERR,
)
_log_directory: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "compilefarm_log_directory",
    default=None,
)


class LoggingConfig:
    """
    Settings shared by every LoggerStream in the process. Lines go to stderr
    unless told otherwise, so nothing mixes with compiler output on stdout.
    """

    def __init__(self) -> None:
        self._level_map = LogLevelMap()

    def update(
        self,
        log_directory: str | None = None,
        log_level: LogLevelName | None = None,
        log_output: LogOutput | None = None,
    ):
        if log_directory:
            _log_directory.set(log_directory)

        if log_level:
            _log_level.set(LogLevel.to_level(log_level))

        if log_output:
            _log_output.set(
                StreamType.STDOUT if log_output == "stdout" else StreamType.STDERR
            )

    def enabled(self, log_level: LogLevel) -> bool:
        return self._level_map[log_level] >= self._level_map[_log_level.get()]

    @property
    def level(self) -> LogLevel:
        return _log_level.get()

    @property
    def output(self) -> StreamType:
        return _log_output.get()

    @property
    def directory(self) -> str | None:
        return _log_directory.get()
