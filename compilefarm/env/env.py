from __future__ import annotations
import os
from pydantic import BaseModel, StrictInt, StrictStr
from typing import Callable, Dict, Literal, Union

PrimaryType = Union[str, int, float, bytes, bool]


class Env(BaseModel):
    COMPILEFARM_LOG_LEVEL: StrictStr = "info"
    COMPILEFARM_LOG_OUTPUT: Literal["stdout", "stderr"] = "stderr"
    COMPILEFARM_LOGS_DIRECTORY: StrictStr | None = None
    COMPILEFARM_TMPDIR: StrictStr | None = None
    COMPILEFARM_LOCK_DIRECTORY: StrictStr | None = None
    COMPILEFARM_LOCAL_SLOTS: StrictInt = os.cpu_count() or 2
    COMPILEFARM_CONNECT_TIMEOUT: StrictStr = "4s"
    COMPILEFARM_TUNNEL_REMOTE_COMMAND: StrictStr = "distccd --inetd"
    COMPILEFARM_STAGING_ATTEMPTS: StrictInt = 8
    COMPILEFARM_COPY_CHUNK_SIZE: StrictInt = 64 * 1024

    @classmethod
    def types_map(cls) -> Dict[str, Callable[[str], PrimaryType]]:
        return {
            "COMPILEFARM_LOG_LEVEL": str,
            "COMPILEFARM_LOG_OUTPUT": str,
            "COMPILEFARM_LOGS_DIRECTORY": str,
            "COMPILEFARM_TMPDIR": str,
            "COMPILEFARM_LOCK_DIRECTORY": str,
            "COMPILEFARM_LOCAL_SLOTS": int,
            "COMPILEFARM_CONNECT_TIMEOUT": str,
            "COMPILEFARM_TUNNEL_REMOTE_COMMAND": str,
            "COMPILEFARM_STAGING_ATTEMPTS": int,
            "COMPILEFARM_COPY_CHUNK_SIZE": int,
        }

    def get_tmp_top(self) -> str:
        """
        Directory that holds per-job temporaries. Mirrors the usual
        TMPDIR lookup when no explicit override is configured.
        """
        if self.COMPILEFARM_TMPDIR:
            return self.COMPILEFARM_TMPDIR

        return os.environ.get("TMPDIR") or "/tmp"

    def get_lock_directory(self) -> str:
        if self.COMPILEFARM_LOCK_DIRECTORY:
            return self.COMPILEFARM_LOCK_DIRECTORY

        return os.path.join(
            os.path.expanduser("~"),
            ".compilefarm",
            "lock",
        )

    def get_tunnel_remote_command(self) -> list[str]:
        return self.COMPILEFARM_TUNNEL_REMOTE_COMMAND.split()
