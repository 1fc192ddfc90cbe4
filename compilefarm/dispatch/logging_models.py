"""
Logging models for the dispatch module.

Every entry carries the host the attempt targets, the input file being
compiled and the phase the attempt was in when the entry was written.
"""

from compilefarm.logging.models import Entry, LogLevel


class DispatchTrace(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.TRACE


class DispatchDebug(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.DEBUG


class DispatchInfo(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.INFO


class DispatchWarning(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.WARN


class DispatchError(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.ERROR


class DispatchCritical(Entry, kw_only=True):
    host: str
    input_file: str
    phase: str
    level: LogLevel = LogLevel.CRITICAL


class TransferInfo(Entry, kw_only=True):
    """Per-attempt transfer statistics, written once the reply is in."""
    host: str
    input_file: str
    payload_bytes: int
    seconds: float
    rate_kbps: float
    level: LogLevel = LogLevel.INFO


class ProfileRelayDebug(Entry, kw_only=True):
    input_file: str
    profile_path: str
    level: LogLevel = LogLevel.DEBUG


class ProfileRelayWarning(Entry, kw_only=True):
    input_file: str
    profile_path: str
    level: LogLevel = LogLevel.WARN


class ProfileRelayError(Entry, kw_only=True):
    input_file: str
    profile_path: str
    level: LogLevel = LogLevel.ERROR


class PreprocessorWarning(Entry, kw_only=True):
    role: str
    input_file: str
    status: int
    level: LogLevel = LogLevel.WARN
