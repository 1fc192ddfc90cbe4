import os
import signal
from typing import Protocol

from compilefarm.logging import Logger

from .logging_models import PreprocessorWarning


# Signals that mean the user stopped the build rather than the tool breaking.
INTERRUPT_SIGNALS = (
    signal.SIGINT,
    signal.SIGTERM,
    signal.SIGHUP,
)


class DiagnosticClassifier(Protocol):
    async def critique(self, status: int, role: str, input_fname: str) -> bool:
        """True when status is a genuine compile failure not worth retrying."""
        ...


class ExitStatusClassifier:
    """
    A tool that exited with a non-zero code looked at the input and rejected
    it, and would do the same anywhere else. A tool killed by a signal hit an
    environment problem, unless the signal was an interrupt from the user.
    """

    def __init__(self) -> None:
        self._logger = Logger()

    async def critique(self, status: int, role: str, input_fname: str) -> bool:
        if status == 0:
            return False

        if os.WIFSIGNALED(status):
            signal_number = os.WTERMSIG(status)
            await self._logger.log(
                PreprocessorWarning(
                    message=f"{role} {input_fname} killed by signal {signal_number}",
                    role=role,
                    input_file=input_fname,
                    status=status,
                )
            )

            return signal_number in INTERRUPT_SIGNALS

        await self._logger.log(
            PreprocessorWarning(
                message=f"{role} {input_fname} failed with exit code {os.WEXITSTATUS(status)}",
                role=role,
                input_file=input_fname,
                status=status,
            )
        )

        return True


def returncode_to_wait_status(returncode: int | None) -> int:
    """Convert an asyncio returncode (negative for signals) to a wait status."""
    if returncode is None or returncode == 0:
        return 0

    if returncode < 0:
        return -returncode & 0x7F

    return (returncode & 0xFF) << 8
