"""
Test: LocalPreprocessCoordinator and the exit status classifier

1. Return codes convert to POSIX wait statuses
2. A normal non-zero exit is a genuine compile error
3. A crash signal is a tooling failure; an interrupt is not retried
4. The admission lock is released as soon as the preprocessor exits, once

Run with: pytest tests/unit/dispatch/test_preprocess_coordinator.py
"""

import asyncio
import os
import signal

import pytest

from compilefarm.dispatch.classifier import ExitStatusClassifier, returncode_to_wait_status
from compilefarm.dispatch.preprocess_coordinator import (
    LocalPreprocessCoordinator,
    PreprocessVerdict,
)


async def spawn(script: str) -> asyncio.subprocess.Process:
    return await asyncio.create_subprocess_exec("sh", "-c", script)


class TestWaitStatus:
    def test_success(self):
        assert returncode_to_wait_status(0) == 0
        assert returncode_to_wait_status(None) == 0

    def test_exit_code(self):
        status = returncode_to_wait_status(1)

        assert os.WIFEXITED(status)
        assert os.WEXITSTATUS(status) == 1

    def test_signal(self):
        status = returncode_to_wait_status(-signal.SIGSEGV)

        assert os.WIFSIGNALED(status)
        assert os.WTERMSIG(status) == signal.SIGSEGV


class TestExitStatusClassifier:
    @pytest.mark.asyncio
    async def test_exit_code_is_genuine_error(self):
        classifier = ExitStatusClassifier()

        assert await classifier.critique(1 << 8, "cpp", "foo.c") is True

    @pytest.mark.asyncio
    async def test_crash_is_tooling_failure(self):
        classifier = ExitStatusClassifier()

        assert await classifier.critique(int(signal.SIGSEGV), "cpp", "foo.c") is False

    @pytest.mark.asyncio
    async def test_interrupt_is_not_retried(self):
        classifier = ExitStatusClassifier()

        assert await classifier.critique(int(signal.SIGINT), "cpp", "foo.c") is True

    @pytest.mark.asyncio
    async def test_success_is_not_an_error(self):
        classifier = ExitStatusClassifier()

        assert await classifier.critique(0, "cpp", "foo.c") is False


class TestCoordinator:
    @pytest.mark.asyncio
    async def test_no_process_is_success(self, lock_handle):
        coordinator = LocalPreprocessCoordinator()

        status, verdict = await coordinator.complete(None, "foo.c", lock_handle)

        assert status == 0
        assert verdict == PreprocessVerdict.SUCCEEDED
        assert lock_handle.held is False

    @pytest.mark.asyncio
    async def test_successful_preprocessor(self, lock_handle):
        coordinator = LocalPreprocessCoordinator()

        status, verdict = await coordinator.complete(await spawn("exit 0"), "foo.c", lock_handle)

        assert status == 0
        assert verdict == PreprocessVerdict.SUCCEEDED
        assert lock_handle.release_calls == 1

    @pytest.mark.asyncio
    async def test_rejected_input(self, lock_handle):
        coordinator = LocalPreprocessCoordinator()

        status, verdict = await coordinator.complete(await spawn("exit 1"), "foo.c", lock_handle)

        assert os.WEXITSTATUS(status) == 1
        assert verdict == PreprocessVerdict.COMPILER_REJECTED
        assert lock_handle.held is False

    @pytest.mark.asyncio
    async def test_crashed_preprocessor(self, lock_handle):
        coordinator = LocalPreprocessCoordinator()

        status, verdict = await coordinator.complete(
            await spawn("kill -SEGV $$"),
            "foo.c",
            lock_handle,
        )

        assert os.WIFSIGNALED(status)
        assert verdict == PreprocessVerdict.TOOLING_FAILED
        assert lock_handle.held is False

    @pytest.mark.asyncio
    async def test_release_never_twice(self, lock_handle):
        coordinator = LocalPreprocessCoordinator()

        assert coordinator.release(lock_handle) is True
        assert coordinator.release(lock_handle) is False
        assert coordinator.release(None) is False
        assert lock_handle.release_calls == 1
