"""
Dispatch module - one remote compile attempt, end to end.

Orchestration:
- RemoteCompileDispatcher: connect, send, retrieve and clean up one job

Components:
- HostConnector, Connection: TCP or tunnelled transport to a compile host
- RequestSender: request header and payload tokens
- LocalPreprocessCoordinator: joins the local preprocessor, frees its CPU slot
- ProfileDataRelay: stages and sends .gcda profile data
- AdmissionLock: local CPU slots shared between concurrent jobs
- TempFileRegistry: temporary files removed at the latest on exit

Logging models:
- DispatchTrace/Debug/Info/Warning/Error/Critical
- TransferInfo, ProfileRelayDebug/Warning/Error, PreprocessorWarning
"""

from compilefarm.dispatch.admission_lock import (
    AdmissionLock as AdmissionLock,
    AdmissionLockHandle as AdmissionLockHandle,
)
from compilefarm.dispatch.auth import AuthenticationContext as AuthenticationContext
from compilefarm.dispatch.classifier import (
    DiagnosticClassifier as DiagnosticClassifier,
    ExitStatusClassifier as ExitStatusClassifier,
    returncode_to_wait_status as returncode_to_wait_status,
)
from compilefarm.dispatch.connection import Connection as Connection
from compilefarm.dispatch.dispatcher import RemoteCompileDispatcher as RemoteCompileDispatcher
from compilefarm.dispatch.host_connector import HostConnector as HostConnector
from compilefarm.dispatch.logging_models import (
    DispatchTrace as DispatchTrace,
    DispatchDebug as DispatchDebug,
    DispatchInfo as DispatchInfo,
    DispatchWarning as DispatchWarning,
    DispatchError as DispatchError,
    DispatchCritical as DispatchCritical,
    TransferInfo as TransferInfo,
    ProfileRelayDebug as ProfileRelayDebug,
    ProfileRelayWarning as ProfileRelayWarning,
    ProfileRelayError as ProfileRelayError,
    PreprocessorWarning as PreprocessorWarning,
)
from compilefarm.dispatch.path_mangler import (
    mangle_path as mangle_path,
    strip_extension as strip_extension,
)
from compilefarm.dispatch.preprocess_coordinator import (
    LocalPreprocessCoordinator as LocalPreprocessCoordinator,
    PreprocessVerdict as PreprocessVerdict,
)
from compilefarm.dispatch.profile_relay import (
    ProfileDataRelay as ProfileDataRelay,
    find_profile_use as find_profile_use,
    resolve_profile_path as resolve_profile_path,
)
from compilefarm.dispatch.request_sender import RequestSender as RequestSender
from compilefarm.dispatch.tempfile_registry import (
    TempFileRegistry as TempFileRegistry,
    get_default_registry as get_default_registry,
)
