"""
Remote compile dispatch for a single attempt.

The sequence for one job on one host:

    connect -> authenticate -> header -> (wait for local cpp, release the
    CPU slot) -> payload -> profile token -> flush -> retrieve -> cleanup

Every failure along the way is raised as a DispatchFailure subclass (or a
stray OSError) where it happens and turned into a DispatchResult here, once.
Cleanup runs in a finally block and touches each resource exactly once,
whatever happened before it. Resources are let go before anything is
logged, and a log entry that cannot be written is recorded on the outcome
instead of aborting the attempt.
"""

import time
from dataclasses import dataclass, field

from compilefarm.env import Env
from compilefarm.errors import (
    AuthenticationError,
    ConnectivityError,
    DispatchFailure,
    TransportError,
)
from compilefarm.logging import Entry, Logger, LoggingConfig
from compilefarm.models import (
    CompileJob,
    DispatchPhase,
    DispatchResult,
    HostDefinition,
    JobOutcome,
    LockHandle,
    PreprocessLocation,
    ProfileRelayState,
)
from compilefarm.protocol import ResultRetriever, TokenResultRetriever, TokenWriter

from .auth import AuthenticationContext
from .classifier import DiagnosticClassifier
from .connection import Connection
from .host_connector import HostConnector
from .logging_models import (
    DispatchCritical,
    DispatchDebug,
    DispatchError,
    DispatchInfo,
    DispatchTrace,
    DispatchWarning,
    TransferInfo,
)
from .preprocess_coordinator import LocalPreprocessCoordinator, PreprocessVerdict
from .profile_relay import ProfileDataRelay
from .request_sender import RequestSender
from .tempfile_registry import TempFileRegistry, get_default_registry


@dataclass(slots=True)
class _Attempt:
    job: CompileJob
    host: HostDefinition
    outcome: JobOutcome
    admission_lock: LockHandle | None = None
    connection: Connection | None = None
    started: float = field(default_factory=time.monotonic)


class RemoteCompileDispatcher:
    """
    Runs one compile attempt against one host and reports how it went.

    Callers own host selection and fallback: when the returned outcome's
    communication_ok is False they may try another host or compile locally.
    A PREPROCESSOR_FAILED outcome is final: the local preprocessor failed
    before anything was sent, and another host cannot change that.
    """

    def __init__(
        self,
        env: Env | None = None,
        connector: HostConnector | None = None,
        retriever: ResultRetriever | None = None,
        classifier: DiagnosticClassifier | None = None,
        registry: TempFileRegistry | None = None,
    ) -> None:
        if env is None:
            env = Env()

        if connector is None:
            connector = HostConnector(env)

        if retriever is None:
            retriever = TokenResultRetriever()

        if registry is None:
            registry = get_default_registry()

        self._env = env
        self._connector = connector
        self._retriever = retriever
        self._registry = registry
        self._coordinator = LocalPreprocessCoordinator(classifier)
        self._relay = ProfileDataRelay(env, registry)
        self._logger = Logger()
        self._logging_config: LoggingConfig | None = None

    async def compile_remote(
        self,
        job: CompileJob,
        host: HostDefinition,
        auth: AuthenticationContext | None = None,
    ) -> JobOutcome:
        if self._logging_config is None:
            self._logging_config = LoggingConfig()
            self._logging_config.update(
                log_directory=self._env.COMPILEFARM_LOGS_DIRECTORY,
                log_level=self._env.COMPILEFARM_LOG_LEVEL,
                log_output=self._env.COMPILEFARM_LOG_OUTPUT,
            )

        attempt = _Attempt(
            job=job,
            host=host,
            outcome=JobOutcome(result=DispatchResult.COMPLETED),
            admission_lock=job.admission_lock,
        )

        # The handle is ours from here on.
        job.admission_lock = None

        try:
            await self._run(attempt, auth)

        except ConnectivityError as err:
            await self._fail(attempt, DispatchResult.CONNECT_FAILED, err.message)

        except AuthenticationError as err:
            await self._fail(attempt, DispatchResult.AUTH_FAILED, err.message)

        except TransportError as err:
            await self._fail(attempt, self._transfer_failure(attempt), err.message)

        except DispatchFailure as err:
            await self._fail(attempt, DispatchResult.SEND_FAILED, err.message)

        except OSError as err:
            await self._fail(attempt, self._transfer_failure(attempt), str(err))

        finally:
            await self._cleanup(attempt)

        return attempt.outcome

    async def close(self):
        await self._logger.close()

    async def _run(
        self,
        attempt: _Attempt,
        auth: AuthenticationContext | None,
    ):
        job = attempt.job
        host = attempt.host
        outcome = attempt.outcome
        metrics = outcome.metrics

        await self._enter(attempt, DispatchPhase.CONNECTING)
        attempt.connection = await self._connector.connect(host)

        if host.authenticate:
            await self._enter(attempt, DispatchPhase.AUTHENTICATING)
            await self._authenticate(attempt.connection, host, auth)

        tokens = TokenWriter(
            attempt.connection.writer,
            chunk_size=self._env.COMPILEFARM_COPY_CHUNK_SIZE,
        )
        sender = RequestSender(tokens)

        await self._enter(attempt, DispatchPhase.SENDING_HEADER)
        await sender.send_header(job.argv, host)

        if host.cpp_where == PreprocessLocation.SERVER:
            await self._enter(attempt, DispatchPhase.SENDING_PAYLOAD)
            metrics.payload_bytes = await sender.send_source_files(
                job.files,
                host.compression,
            )

        else:
            await self._enter(attempt, DispatchPhase.PREPROCESSING)

            status, verdict = await self._coordinator.complete(
                job.preprocessor,
                job.input_fname,
                attempt.admission_lock,
            )

            if verdict != PreprocessVerdict.SUCCEEDED:
                outcome.result = DispatchResult.PREPROCESSOR_FAILED
                outcome.status = status
                outcome.tooling_failure = verdict == PreprocessVerdict.TOOLING_FAILED

                if outcome.tooling_failure:
                    await self._log_warning(
                        attempt,
                        f"Preprocessor for {job.input_fname} failed with wait status {status}, not sending to {host.label}",
                    )

                else:
                    await self._log_info(
                        attempt,
                        f"Preprocessor rejected {job.input_fname}, not sending to {host.label}",
                    )

                return

            await self._enter(attempt, DispatchPhase.SENDING_PAYLOAD)
            metrics.payload_bytes = await sender.send_preprocessed(
                job.cpp_fname,
                host.compression,
            )

            # Cleanup finds the staged copy through the outcome.
            outcome.profile = ProfileRelayState()
            await self._relay.relay(tokens, job, host, outcome.profile)
            metrics.profile_bytes = outcome.profile.sent_bytes

        await sender.flush()
        metrics.send_seconds = time.monotonic() - attempt.started

        await self._enter(attempt, DispatchPhase.AWAITING_RESULT)
        outcome.status = await self._retriever.retrieve(
            attempt.connection.reader,
            job,
            host,
        )

        metrics.total_seconds = time.monotonic() - attempt.started

        await self._enter(attempt, DispatchPhase.DONE)

        if host.cpp_where == PreprocessLocation.CLIENT:
            await self._log_transfer(attempt)

    async def _authenticate(
        self,
        connection: Connection,
        host: HostDefinition,
        auth: AuthenticationContext | None,
    ):
        if auth is None:
            raise AuthenticationError(
                f"{host.label} requires authentication but no context was supplied",
                hostname=host.hostname,
            )

        try:
            await auth.perform(connection, host)

        except AuthenticationError:
            raise

        except Exception as err:
            raise AuthenticationError(
                f"Authentication with {host.label} failed: {err}",
                hostname=host.hostname,
            ) from err

    def _transfer_failure(self, attempt: _Attempt) -> DispatchResult:
        if attempt.outcome.phase == DispatchPhase.AWAITING_RESULT:
            return DispatchResult.RECEIVE_FAILED

        return DispatchResult.SEND_FAILED

    async def _fail(
        self,
        attempt: _Attempt,
        result: DispatchResult,
        message: str,
    ):
        attempt.outcome.result = result
        attempt.outcome.error = message

        await self._log_error(
            attempt,
            f"{result.value} during {attempt.outcome.phase.value}: {message}",
        )

    async def _cleanup(self, attempt: _Attempt):
        # outcome.phase keeps the last phase the attempt reached.
        entries: list[Entry] = []

        handle = attempt.admission_lock
        if handle is not None and handle.held:
            try:
                handle.release()

            except OSError as err:
                entries.append(
                    DispatchError(
                        message=f"Failed to release admission lock: {err}",
                        **self._get_log_context(attempt),
                    )
                )

        connection = attempt.connection
        if connection is not None:
            try:
                connection.close_write()
                await connection.close_read()

            except OSError as err:
                entries.append(
                    DispatchWarning(
                        message=f"Failed to close connection to {attempt.host.label}: {err}",
                        **self._get_log_context(attempt),
                    )
                )

            if connection.process is not None:
                entry = await self._reap(attempt, connection)
                if entry is not None:
                    entries.append(entry)

        profile = attempt.outcome.profile
        if profile is not None and profile.staged_path is not None:
            try:
                self._registry.discard(profile.staged_path)

            except OSError as err:
                entries.append(
                    DispatchCritical(
                        message=f"Failed to remove staged profile data {profile.staged_path}: {err}",
                        **self._get_log_context(attempt),
                    )
                )

        await self._log_trace(attempt, f"Finished {DispatchPhase.CLEANUP.value}")

        for entry in entries:
            await self._log(attempt, entry)

    async def _reap(self, attempt: _Attempt, connection: Connection) -> Entry | None:
        try:
            returncode = await connection.reap()

        except (ChildProcessError, ProcessLookupError) as err:
            return DispatchWarning(
                message=f"Failed to collect tunnel process for {attempt.host.label}: {err}",
                **self._get_log_context(attempt),
            )

        if returncode:
            return DispatchWarning(
                message=f"Tunnel process for {attempt.host.label} exited with code {returncode}",
                **self._get_log_context(attempt),
            )

        return None

    async def _enter(self, attempt: _Attempt, phase: DispatchPhase):
        attempt.outcome.phase = phase
        await self._log_debug(attempt, f"Entering {phase.value}")

    async def _log_transfer(self, attempt: _Attempt):
        metrics = attempt.outcome.metrics
        seconds = metrics.total_seconds
        rate = metrics.payload_bytes / 1024.0 / seconds if seconds > 0 else 0.0

        await self._log(
            attempt,
            TransferInfo(
                message=(
                    f"{metrics.payload_bytes} bytes from {attempt.job.input_fname} "
                    f"compiled on {attempt.host.hostname} in {seconds:.4f}s, "
                    f"rate {rate:.0f}kB/s"
                ),
                host=attempt.host.hostname,
                input_file=attempt.job.input_fname,
                payload_bytes=metrics.payload_bytes,
                seconds=seconds,
                rate_kbps=rate,
            ),
        )

    async def _log(self, attempt: _Attempt, entry: Entry):
        try:
            await self._logger.log(entry)

        except OSError as err:
            if attempt.outcome.log_error is None:
                attempt.outcome.log_error = str(err)

    def _get_log_context(self, attempt: _Attempt) -> dict:
        return {
            "host": attempt.host.label,
            "input_file": attempt.job.input_fname,
            "phase": attempt.outcome.phase.value,
        }

    async def _log_trace(self, attempt: _Attempt, message: str) -> None:
        await self._log(attempt, DispatchTrace(message=message, **self._get_log_context(attempt)))

    async def _log_debug(self, attempt: _Attempt, message: str) -> None:
        await self._log(attempt, DispatchDebug(message=message, **self._get_log_context(attempt)))

    async def _log_info(self, attempt: _Attempt, message: str) -> None:
        await self._log(attempt, DispatchInfo(message=message, **self._get_log_context(attempt)))

    async def _log_warning(self, attempt: _Attempt, message: str) -> None:
        await self._log(attempt, DispatchWarning(message=message, **self._get_log_context(attempt)))

    async def _log_error(self, attempt: _Attempt, message: str) -> None:
        await self._log(attempt, DispatchError(message=message, **self._get_log_context(attempt)))
