from dataclasses import dataclass, field
from enum import Enum

from .dispatch_phase import DispatchPhase
from .profile_relay_state import ProfileRelayState


class DispatchResult(Enum):
    COMPLETED = "COMPLETED"
    PREPROCESSOR_FAILED = "PREPROCESSOR_FAILED"
    CONNECT_FAILED = "CONNECT_FAILED"
    AUTH_FAILED = "AUTH_FAILED"
    SEND_FAILED = "SEND_FAILED"
    RECEIVE_FAILED = "RECEIVE_FAILED"

    @property
    def communication_ok(self) -> bool:
        return self in (
            DispatchResult.COMPLETED,
            DispatchResult.PREPROCESSOR_FAILED,
        )


@dataclass(slots=True)
class TransferMetrics:
    payload_bytes: int = 0
    profile_bytes: int = 0
    send_seconds: float = 0.0
    total_seconds: float = 0.0

    @property
    def rate_kbps(self) -> float:
        if self.send_seconds <= 0:
            return 0.0

        return (self.payload_bytes + self.profile_bytes) / 1024.0 / self.send_seconds


@dataclass(slots=True)
class JobOutcome:
    """
    Result of one dispatch attempt.

    status is a POSIX wait status: the remote compiler's when the request
    completed, the local preprocessor's when it failed, 0 otherwise. Only a
    communication failure should lead the caller to retry elsewhere or
    compile locally.

    tooling_failure marks a PREPROCESSOR_FAILED outcome where the
    preprocessor itself broke (killed by a signal) rather than rejecting
    the input. log_error holds the first failure to write a log entry.
    """

    result: DispatchResult
    status: int = 0
    phase: DispatchPhase = DispatchPhase.INIT
    error: str | None = None
    tooling_failure: bool = False
    log_error: str | None = None
    metrics: TransferMetrics = field(default_factory=TransferMetrics)
    profile: ProfileRelayState | None = None

    @property
    def communication_ok(self) -> bool:
        return self.result.communication_ok
