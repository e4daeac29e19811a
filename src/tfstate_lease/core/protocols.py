"""Protocol interfaces for the lease checker's collaborators.

The waiter and the task runner only talk to these Protocols: structural
typing, no inheritance required, easy to swap for in-memory fakes.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from tfstate_lease.models.lease import LockStatus, ServicePrincipal


# ---------------------------------------------------------------------------
# Storage: Lock Status Probe
# ---------------------------------------------------------------------------

@runtime_checkable
class ILockStatusProbe(Protocol):
    """One remote read of an object's lease state.

    ``timeout`` is the wall-clock budget in seconds the read may use,
    retries included; None leaves the backend defaults in place.

    Raises AccountUnreachableError, ContainerMissingError or
    TransientProbeError.
    """

    def get_lock_status(
        self,
        storage_account_name: str,
        container_name: str,
        object_key: str,
        timeout: float | None = None,
    ) -> LockStatus: ...


# ---------------------------------------------------------------------------
# Host: Credential Provider
# ---------------------------------------------------------------------------

@runtime_checkable
class ICredentialProvider(Protocol):
    """Resolves a host-managed service connection into a service principal."""

    def get_service_principal(self, connection_name: str) -> ServicePrincipal: ...


# ---------------------------------------------------------------------------
# Host: Configuration Reader
# ---------------------------------------------------------------------------

@runtime_checkable
class IHostConfig(Protocol):
    """Task input lookup."""

    def get_required_input(self, name: str) -> str: ...

    def get_optional_input(self, name: str) -> str | None: ...


# ---------------------------------------------------------------------------
# Host: Task Result Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class ITaskResultSink(Protocol):
    """Terminal success/failure reporting."""

    def report_success(self, message: str) -> None: ...

    def report_failure(self, message: str) -> None: ...


# ---------------------------------------------------------------------------
# Local Filesystem Reader
# ---------------------------------------------------------------------------

@runtime_checkable
class IFileReader(Protocol):
    """Reads local files. Raises FileNotFoundError for missing paths."""

    def read_text_file(self, path: str) -> bytes: ...

    def exists(self, path: str) -> bool: ...
