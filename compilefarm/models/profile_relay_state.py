from dataclasses import dataclass


@dataclass(slots=True)
class ProfileRelayState:
    requested: bool = False
    profile_use_path: str | None = None
    source_path: str | None = None
    staged_path: str | None = None
    staged: bool = False
    sent_bytes: int = 0
    error: str | None = None

    @property
    def present(self) -> bool:
        return self.staged and self.staged_path is not None
