"""Lease checker exception hierarchy."""

from __future__ import annotations


class LeaseCheckerError(Exception):
    """Base exception for all lease checker errors."""


class ConfigError(LeaseCheckerError):
    """Missing or invalid task input (project path, wait/poll settings)."""


class StateParseError(LeaseCheckerError):
    """Terraform state file is not valid JSON."""


class StateValidationError(LeaseCheckerError):
    """Terraform state file parsed but violates the backend descriptor schema."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")


class AuthResolutionError(LeaseCheckerError):
    """Service connection credentials could not be resolved."""


class ProbeError(LeaseCheckerError):
    """Lock status query against the storage backend failed."""

    def __init__(self, storage_account_name: str, container_name: str, message: str) -> None:
        self.storage_account_name = storage_account_name
        self.container_name = container_name
        super().__init__(message)


class AccountUnreachableError(ProbeError):
    """Storage account cannot be found, or access is denied at account level."""


class ContainerMissingError(ProbeError):
    """Storage account is reachable but the container does not exist."""


class TransientProbeError(ProbeError):
    """Retryable network or service error while probing."""


class LeaseTimeoutError(LeaseCheckerError, TimeoutError):
    """State file lease was not released within the configured wait budget."""

    def __init__(self, max_wait_time_seconds: int, probes: int, elapsed_seconds: int) -> None:
        self.max_wait_time_seconds = max_wait_time_seconds
        self.probes = probes
        self.elapsed_seconds = elapsed_seconds
        super().__init__(
            f"Timeout: Terraform state file still has a lease after {max_wait_time_seconds} seconds "
            f"({round(max_wait_time_seconds / 60)} minutes)"
        )
