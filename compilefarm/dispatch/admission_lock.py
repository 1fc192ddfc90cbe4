"""
Local CPU admission lock.

Bounds how many jobs preprocess on this machine at once. Each slot is an
flock()ed file under the lock directory, so the bound holds across every
process sharing that directory, not just within one interpreter.
"""

from __future__ import annotations

import asyncio
import fcntl
import os

from compilefarm.env import Env


class AdmissionLockHandle:
    __slots__ = (
        "slot",
        "path",
        "_fd",
        "_release_count",
    )

    def __init__(self, slot: int, path: str, fd: int) -> None:
        self.slot = slot
        self.path = path
        self._fd = fd
        self._release_count = 0

    @property
    def held(self) -> bool:
        return self._fd is not None

    @property
    def release_count(self) -> int:
        return self._release_count

    def release(self) -> bool:
        if self._fd is None:
            return False

        fd = self._fd
        self._fd = None
        self._release_count += 1

        try:
            fcntl.flock(fd, fcntl.LOCK_UN)

        finally:
            os.close(fd)

        return True


class AdmissionLock:
    """
    Usage:
        lock = AdmissionLock("/home/me/.compilefarm/lock", slots=4)
        handle = await lock.acquire()
        ... start the preprocessor, hand the handle to the dispatcher ...
    """

    def __init__(
        self,
        lock_directory: str,
        slots: int,
        role: str = "cpu",
        hostname: str = "localhost",
        poll_interval: float = 0.1,
    ) -> None:
        if slots < 1:
            raise ValueError(f"Admission lock needs at least one slot, got {slots}")

        self._lock_directory = lock_directory
        self._slots = slots
        self._role = role
        self._hostname = hostname
        self._poll_interval = poll_interval

    @classmethod
    def from_env(cls, env: Env) -> AdmissionLock:
        return cls(
            env.get_lock_directory(),
            env.COMPILEFARM_LOCAL_SLOTS,
        )

    @property
    def slots(self) -> int:
        return self._slots

    def slot_path(self, slot: int) -> str:
        return os.path.join(
            self._lock_directory,
            f"{self._role}_{self._hostname}_{slot}",
        )

    def try_acquire(self) -> AdmissionLockHandle | None:
        os.makedirs(self._lock_directory, mode=0o700, exist_ok=True)

        for slot in range(self._slots):
            path = self.slot_path(slot)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT, 0o600)

            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)

            except BlockingIOError:
                os.close(fd)
                continue

            except OSError:
                os.close(fd)
                raise

            return AdmissionLockHandle(slot, path, fd)

        return None

    async def acquire(self, timeout: float | None = None) -> AdmissionLockHandle:
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        while True:
            handle = await loop.run_in_executor(None, self.try_acquire)
            if handle is not None:
                return handle

            if deadline is not None and loop.time() >= deadline:
                raise TimeoutError(
                    f"No free {self._role} slot on {self._hostname} after {timeout}s"
                )

            await asyncio.sleep(self._poll_interval)
