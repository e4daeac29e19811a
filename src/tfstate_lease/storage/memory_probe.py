"""In-memory lock probe for unit tests and dry runs."""

from __future__ import annotations

from typing import Iterable

from tfstate_lease.models.lease import LockStatus


class MemoryLockProbe:
    """Scripted ILockStatusProbe.

    Replays ``script`` one entry per call; an entry that is an exception is
    raised instead of returned. The last entry repeats once the script is
    exhausted.
    """

    def __init__(self, script: Iterable[LockStatus | Exception]) -> None:
        self._script: list[LockStatus | Exception] = list(script)
        if not self._script:
            raise ValueError("MemoryLockProbe needs at least one scripted result")
        self.calls: list[tuple[str, str, str]] = []
        self.timeouts: list[float | None] = []

    def get_lock_status(
        self,
        storage_account_name: str,
        container_name: str,
        object_key: str,
        timeout: float | None = None,
    ) -> LockStatus:
        self.calls.append((storage_account_name, container_name, object_key))
        self.timeouts.append(timeout)
        index = min(len(self.calls), len(self._script)) - 1
        result = self._script[index]
        if isinstance(result, Exception):
            raise result
        return result
