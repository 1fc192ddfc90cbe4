from compilefarm.dispatch import RemoteCompileDispatcher as RemoteCompileDispatcher
from compilefarm.models import (
    CompileJob as CompileJob,
    DispatchResult as DispatchResult,
    HostDefinition as HostDefinition,
    JobOutcome as JobOutcome,
)
