import asyncio
from dataclasses import dataclass, field

from .lock_handle import LockHandle


@dataclass(slots=True)
class CompileJob:
    """
    One compile request. The admission lock handle is handed over to the
    dispatcher, which clears the attribute on entry and releases the lock
    before it returns.
    """

    argv: list[str]
    input_fname: str
    cpp_fname: str | None = None
    output_fname: str | None = None
    deps_fname: str | None = None
    server_stderr_fname: str | None = None
    files: list[str] = field(default_factory=list)
    preprocessor: asyncio.subprocess.Process | None = None
    admission_lock: LockHandle | None = None
    dist_lto: bool = False
