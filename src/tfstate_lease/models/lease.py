"""Backend descriptor, lock status and wait outcome models."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, SecretStr

AZURERM_BACKEND = "azurerm"
DEFAULT_WORKSPACE = "default"


class LockStatus(StrEnum):
    UNLOCKED = "UNLOCKED"
    LOCKED = "LOCKED"
    NOT_FOUND = "NOT_FOUND"

    @property
    def is_free(self) -> bool:
        """Nothing to wait for: no active lease, or no object at all."""
        return self is not LockStatus.LOCKED


class BackendDescriptor(BaseModel):
    """Remote state coordinates recovered from .terraform/terraform.tfstate."""

    model_config = ConfigDict(frozen=True)

    version: int
    terraform_version: str
    backend_type: str = AZURERM_BACKEND
    storage_account_name: str
    container_name: str
    key: str
    resource_group_name: str


class ServicePrincipal(BaseModel):
    """Credentials resolved from a host service connection."""

    model_config = ConfigDict(frozen=True)

    principal_id: str
    principal_secret: SecretStr
    tenant_id: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.principal_id and self.principal_secret.get_secret_value() and self.tenant_id)


class WaitOutcome(BaseModel):
    """Terminal success of a lease wait."""

    model_config = ConfigDict(frozen=True)

    status: LockStatus
    probes: int
    elapsed_seconds: int
    object_key: str
