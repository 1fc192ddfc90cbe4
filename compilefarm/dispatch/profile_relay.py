"""
Profile-guided optimization relay.

When a job consumes profile data (-fprofile-use) and preprocessing happens
locally, the matching .gcda artifact has to travel with the preprocessed
unit, since the remote compiler cannot see the client's filesystem. The
artifact is copied into a private temporary file first so a concurrent
profiling run cannot change it mid-transfer.

The peer always expects exactly one GCDA token once the preprocessed unit
has been sent: GCDA 1 followed by a DOTI file token, or GCDA 0. Every
branch below ends in one of the two.
"""

import asyncio
import os
import secrets

from compilefarm.env import Env
from compilefarm.errors import StagingError, TempDirError
from compilefarm.logging import Logger
from compilefarm.models import (
    CompileJob,
    HostDefinition,
    PreprocessLocation,
    ProfileRelayState,
)
from compilefarm.protocol import TokenWriter

from .logging_models import (
    ProfileRelayDebug,
    ProfileRelayError,
    ProfileRelayWarning,
)
from .path_mangler import (
    PROFILE_EXTENSION,
    SEPARATOR_MARKER,
    mangle_path,
    strip_extension,
)
from .tempfile_registry import TempFileRegistry, get_default_registry


PROFILE_USE_FLAG = "-fprofile-use"
PROFILE_USE_DIR_FLAG = "-fprofile-use="


def find_profile_use(
    argv: list[str],
    dist_lto: bool = False,
) -> tuple[bool, str | None]:
    if dist_lto:
        return False, None

    found = False
    profile_use_path: str | None = None

    for arg in argv:
        if not arg.startswith("-"):
            continue

        if arg.startswith(PROFILE_USE_FLAG):
            found = True

        if arg.startswith(PROFILE_USE_DIR_FLAG):
            profile_use_path = arg[len(PROFILE_USE_DIR_FLAG):]

    return found, profile_use_path


def resolve_profile_path(
    output_fname: str,
    cwd: str,
    profile_use_path: str | None = None,
) -> str:
    """
    Locate the .gcda file the compiler would read for output_fname.

    With -fprofile-use=<dir> the compiler looks for a flattened name inside
    <dir>: the mangled working directory joined to the mangled object path
    for relative outputs, or just the mangled object path for absolute ones.
    Without a directory the artifact sits beside the object file.
    """
    output_stem = strip_extension(output_fname)
    is_absolute = os.path.isabs(output_fname)

    if profile_use_path:
        if is_absolute:
            flattened = mangle_path(output_stem)

        else:
            flattened = (
                mangle_path(cwd)
                + SEPARATOR_MARKER
                + mangle_path(output_stem)
            )

        return f"{profile_use_path}/{flattened}{PROFILE_EXTENSION}"

    if is_absolute:
        return f"{output_stem}{PROFILE_EXTENSION}"

    return f"{cwd}/{output_stem}{PROFILE_EXTENSION}"


def _check_tmp_dir(tmp_top: str):
    if not os.path.isdir(tmp_top):
        raise TempDirError(f"Temporary directory {tmp_top} does not exist")

    if not os.access(tmp_top, os.W_OK | os.X_OK):
        raise TempDirError(f"Temporary directory {tmp_top} is not writable and searchable")


class ProfileDataRelay:

    def __init__(
        self,
        env: Env | None = None,
        registry: TempFileRegistry | None = None,
    ) -> None:
        if env is None:
            env = Env()

        if registry is None:
            registry = get_default_registry()

        self._tmp_top = env.get_tmp_top()
        self._attempts = max(env.COMPILEFARM_STAGING_ATTEMPTS, 1)
        self._chunk_size = env.COMPILEFARM_COPY_CHUNK_SIZE
        self._registry = registry
        self._logger = Logger()

    async def relay(
        self,
        tokens: TokenWriter,
        job: CompileJob,
        host: HostDefinition,
        state: ProfileRelayState | None = None,
    ) -> ProfileRelayState:
        if state is None:
            state = ProfileRelayState()

        if host.cpp_where != PreprocessLocation.CLIENT:
            return state

        state.requested, state.profile_use_path = find_profile_use(
            job.argv,
            dist_lto=job.dist_lto,
        )

        if state.requested and job.output_fname:
            try:
                await self._stage(job, state)

            except TempDirError as err:
                state.error = err.message
                await self._logger.log(
                    ProfileRelayError(
                        message=f"Cannot stage profile data: {err.message}",
                        input_file=job.input_fname,
                        profile_path=state.source_path or "",
                    )
                )

            except StagingError as err:
                state.error = err.message
                await self._logger.log(
                    ProfileRelayWarning(
                        message=f"Sending without profile data: {err.message}",
                        input_file=job.input_fname,
                        profile_path=state.source_path or "",
                    )
                )

        if state.present:
            await tokens.write_int("GCDA", 1)
            state.sent_bytes = await tokens.write_file(
                "DOTI",
                state.staged_path,
                host.compression,
            )

        else:
            await tokens.write_int("GCDA", 0)

        return state

    async def _stage(self, job: CompileJob, state: ProfileRelayState):
        loop = asyncio.get_running_loop()

        await loop.run_in_executor(None, _check_tmp_dir, self._tmp_top)

        cwd = await loop.run_in_executor(None, os.getcwd)
        state.source_path = resolve_profile_path(
            job.output_fname,
            cwd,
            state.profile_use_path,
        )

        if job.cpp_fname:
            staging_stem = strip_extension(job.cpp_fname)

        else:
            staging_stem = os.path.join(
                self._tmp_top,
                f"compilefarm_{os.getpid()}",
            )

        staged_path = await loop.run_in_executor(
            None,
            self._stage_sync,
            state.source_path,
            staging_stem,
        )

        if staged_path is None:
            await self._logger.log(
                ProfileRelayDebug(
                    message=f"No profile data at {state.source_path}",
                    input_file=job.input_fname,
                    profile_path=state.source_path,
                )
            )

            return

        try:
            self._registry.register(staged_path)

        except RuntimeError as err:
            try:
                os.unlink(staged_path)

            except OSError as unlink_err:
                raise StagingError(f"{err}; failed to remove {staged_path}: {unlink_err}") from err

            raise StagingError(str(err)) from err

        state.staged_path = staged_path
        state.staged = True

        await self._logger.log(
            ProfileRelayDebug(
                message=f"Staged {state.source_path} as {staged_path}",
                input_file=job.input_fname,
                profile_path=state.source_path,
            )
        )

    def _stage_sync(self, source_path: str, staging_stem: str) -> str | None:
        try:
            source_fd = os.open(source_path, os.O_RDONLY)

        except FileNotFoundError:
            return None

        except OSError as err:
            raise StagingError(f"Failed to open {source_path}: {err}") from err

        try:
            destination_fd, staged_path = self._create_exclusive(staging_stem)

            try:
                self._copy(source_fd, destination_fd)

            except OSError as err:
                os.close(destination_fd)
                os.unlink(staged_path)

                raise StagingError(
                    f"Failed to copy {source_path} to {staged_path}: {err}"
                ) from err

            try:
                os.close(destination_fd)

            except OSError as err:
                os.unlink(staged_path)

                raise StagingError(f"Failed to close {staged_path}: {err}") from err

        finally:
            os.close(source_fd)

        return staged_path

    def _create_exclusive(self, staging_stem: str) -> tuple[int, str]:
        candidate = f"{staging_stem}{PROFILE_EXTENSION}"

        for _ in range(self._attempts):
            try:
                fd = os.open(
                    candidate,
                    os.O_WRONLY | os.O_CREAT | os.O_EXCL,
                    0o600,
                )

                return fd, candidate

            except FileExistsError:
                candidate = f"{staging_stem}.{secrets.token_hex(4)}{PROFILE_EXTENSION}"

            except OSError as err:
                raise StagingError(f"Failed to create {candidate}: {err}") from err

        raise StagingError(
            f"No free staging name for {staging_stem}{PROFILE_EXTENSION} after {self._attempts} attempts"
        )

    def _copy(self, source_fd: int, destination_fd: int):
        while chunk := os.read(source_fd, self._chunk_size):
            view = memoryview(chunk)

            while view:
                written = os.write(destination_fd, view)
                view = view[written:]
