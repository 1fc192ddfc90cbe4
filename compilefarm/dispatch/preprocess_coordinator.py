import asyncio
from enum import Enum

from compilefarm.models import LockHandle

from .classifier import (
    DiagnosticClassifier,
    ExitStatusClassifier,
    returncode_to_wait_status,
)


class PreprocessVerdict(Enum):
    SUCCEEDED = "SUCCEEDED"
    COMPILER_REJECTED = "COMPILER_REJECTED"
    TOOLING_FAILED = "TOOLING_FAILED"


class LocalPreprocessCoordinator:
    """
    Joins the preprocessor that was started in the background before the
    dispatch began, and gives its CPU slot back the moment it has exited so
    the next local job can start preprocessing while this one is on the
    network.
    """

    def __init__(self, classifier: DiagnosticClassifier | None = None) -> None:
        if classifier is None:
            classifier = ExitStatusClassifier()

        self._classifier = classifier

    async def wait_for_preprocessor(
        self,
        process: asyncio.subprocess.Process | None,
    ) -> int:
        if process is None:
            return 0

        return returncode_to_wait_status(await process.wait())

    def release(self, handle: LockHandle | None) -> bool:
        if handle is None or not handle.held:
            return False

        return handle.release()

    async def classify(self, status: int, input_fname: str) -> PreprocessVerdict:
        if status == 0:
            return PreprocessVerdict.SUCCEEDED

        if await self._classifier.critique(status, "cpp", input_fname):
            return PreprocessVerdict.COMPILER_REJECTED

        return PreprocessVerdict.TOOLING_FAILED

    async def complete(
        self,
        process: asyncio.subprocess.Process | None,
        input_fname: str,
        handle: LockHandle | None,
    ) -> tuple[int, PreprocessVerdict]:
        status = await self.wait_for_preprocessor(process)

        # Local CPU work is over; free the slot before anything else.
        self.release(handle)

        return status, await self.classify(status, input_fname)
