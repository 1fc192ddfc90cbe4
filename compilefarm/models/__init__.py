from .compression import Compression as Compression
from .lock_handle import LockHandle as LockHandle
from .compile_job import CompileJob as CompileJob
from .dispatch_phase import DispatchPhase as DispatchPhase
from .host_definition import (
    DEFAULT_PORT as DEFAULT_PORT,
    HostDefinition as HostDefinition,
    PreprocessLocation as PreprocessLocation,
    TransportMode as TransportMode,
)
from .job_outcome import (
    DispatchResult as DispatchResult,
    JobOutcome as JobOutcome,
    TransferMetrics as TransferMetrics,
)
from .profile_relay_state import ProfileRelayState as ProfileRelayState
