"""Pluggable lock status probes behind the ILockStatusProbe protocol."""

from __future__ import annotations

from tfstate_lease.core.config import AppSettings
from tfstate_lease.core.protocols import ILockStatusProbe
from tfstate_lease.models.lease import LockStatus, ServicePrincipal
from tfstate_lease.storage.blob_probe import AzureBlobLockProbe
from tfstate_lease.storage.credentials import build_azure_credential
from tfstate_lease.storage.memory_probe import MemoryLockProbe


def create_lock_probe(
    settings: AppSettings | None = None, principal: ServicePrincipal | None = None
) -> ILockStatusProbe:
    """Create the lock probe configured by application settings.

    ``TFLEASE_DRY_RUN_STATUS`` swaps in a MemoryLockProbe replaying that
    status, so pipeline wiring can be smoke-tested without storage access.
    """
    if settings is None:
        settings = AppSettings()

    if settings.dry_run_status is not None:
        return MemoryLockProbe([LockStatus(settings.dry_run_status)])

    return AzureBlobLockProbe(
        credential=build_azure_credential(principal),
        config=settings.storage,
    )


__all__ = ["AzureBlobLockProbe", "MemoryLockProbe", "create_lock_probe"]
