from typing import Protocol


class LockHandle(Protocol):
    """A held local-CPU slot. release() frees it once; later calls do nothing."""

    @property
    def held(self) -> bool:
        ...

    def release(self) -> bool:
        ...
