"""
Registry of temporary files that must not outlive the process.

Paths are removed when the dispatcher discards them or, for anything still
registered, when the interpreter exits. Once closed the registry refuses new
paths, since nothing would be left to remove them.
"""

import atexit
import os
import threading


class TempFileRegistry:

    def __init__(self) -> None:
        self._paths: list[str] = []
        self._lock = threading.Lock()
        self._closed = False

    def __contains__(self, path: str):
        with self._lock:
            return path in self._paths

    def __len__(self):
        with self._lock:
            return len(self._paths)

    @property
    def closed(self):
        return self._closed

    def register(self, path: str):
        with self._lock:
            if self._closed:
                raise RuntimeError(f"Cannot register {path}: temp file registry is closed")

            if path not in self._paths:
                self._paths.append(path)

    def discard(self, path: str) -> bool:
        """Unlink path and stop tracking it. Returns True if a file was removed."""
        with self._lock:
            if path in self._paths:
                self._paths.remove(path)

        return _unlink(path)

    def cleanup(self) -> int:
        with self._lock:
            paths = list(reversed(self._paths))
            self._paths.clear()

        return sum(1 for path in paths if _unlink(path))

    def close(self) -> int:
        with self._lock:
            self._closed = True

        return self.cleanup()


def _unlink(path: str) -> bool:
    try:
        os.unlink(path)

    except FileNotFoundError:
        return False

    return True


_default_registry = TempFileRegistry()
atexit.register(_default_registry.close)


def get_default_registry() -> TempFileRegistry:
    return _default_registry
